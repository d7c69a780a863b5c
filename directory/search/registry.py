"""
Named searches per entity type.

A search binds typed request parameters to a predicate and runs it through
the entity's repository with the regular pagination contract. The only
predicate kind is a case-insensitive substring match on a scalar field.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from directory.errors import BadRequest, ConfigurationError, NotFound
from directory.resources.entities import EntityDescriptor, EntityRegistry

logger = logging.getLogger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class SearchParameter:
    name: str
    type: type = str
    required: bool = True
    description: str = ""

    def convert(self, raw: str) -> Any:
        if self.type is str:
            return raw
        if self.type is int:
            try:
                return int(raw)
            except ValueError:
                raise BadRequest(f"Parameter '{self.name}' must be an integer") from None
        if self.type is bool:
            lowered = raw.strip().lower()
            if lowered in _TRUE_VALUES:
                return True
            if lowered in _FALSE_VALUES:
                return False
            raise BadRequest(f"Parameter '{self.name}' must be a boolean")
        raise BadRequest(f"Parameter '{self.name}' has an unsupported type")


@dataclass(frozen=True)
class SubstringMatch:
    """Case-insensitive ``field LIKE %value%`` with wildcards in the value escaped."""

    field: str
    parameter: str

    def criterion(self, model: type, values: Mapping[str, Any]):
        column = getattr(model, self.field)
        value = str(values[self.parameter])
        escaped = value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
        return column.ilike(f"%{escaped}%", escape="\\")


@dataclass(frozen=True)
class SearchDescriptor:
    entity: str
    name: str
    parameters: Tuple[SearchParameter, ...]
    predicate: SubstringMatch
    description: str = ""

    @property
    def parameter_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.parameters)

    def bind(self, raw_params: Mapping[str, str]) -> Dict[str, Any]:
        """Convert request parameters; missing required or malformed values are a BadRequest."""
        values: Dict[str, Any] = {}
        for param in self.parameters:
            raw = raw_params.get(param.name)
            if raw is None or raw == "":
                if param.required:
                    raise BadRequest(f"Search '{self.name}' requires parameter '{param.name}'")
                continue
            values[param.name] = param.convert(raw)
        return values

    def execute(self, repository, raw_params: Mapping[str, str], page_request):
        values = self.bind(raw_params)
        if self.predicate.parameter not in values:
            # optional predicate parameter omitted: no filtering
            return repository.find_page(page_request)
        criterion = self.predicate.criterion(repository.model, values)
        return repository.find_matching(criterion, page_request)


class SearchRegistry:
    def __init__(self, entities: EntityRegistry) -> None:
        self.entities = entities
        self._searches: Dict[str, Dict[str, SearchDescriptor]] = {}

    def register(self, descriptor: SearchDescriptor) -> SearchDescriptor:
        entity = self._entity(descriptor.entity)
        by_name = self._searches.setdefault(entity.name, {})
        if descriptor.name in by_name:
            raise ConfigurationError(f"Duplicate search '{descriptor.name}' on '{entity.name}'")
        self._validate(entity, descriptor)
        by_name[descriptor.name] = descriptor
        return descriptor

    def register_all(self, descriptors: Iterable[SearchDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)

    def get(self, entity: str, name: str) -> SearchDescriptor:
        try:
            return self._searches[entity][name]
        except KeyError:
            raise NotFound(f"Search '{name}' does not exist for '{entity}'") from None

    def for_entity(self, entity: str) -> List[SearchDescriptor]:
        return list(self._searches.get(entity, {}).values())

    def _entity(self, name: str) -> EntityDescriptor:
        if name not in self.entities:
            raise ConfigurationError(f"Search registered for unknown entity '{name}'")
        return self.entities.get(name)

    @staticmethod
    def _validate(entity: EntityDescriptor, descriptor: SearchDescriptor) -> None:
        names = descriptor.parameter_names
        if len(set(names)) != len(names):
            raise ConfigurationError(f"Search '{entity.name}.{descriptor.name}' declares a parameter twice")
        reserved = {"page", "size", "sort", "projection"} & set(names)
        if reserved:
            raise ConfigurationError(
                f"Search '{entity.name}.{descriptor.name}' uses reserved parameter(s) {sorted(reserved)}"
            )
        predicate = descriptor.predicate
        if predicate.field not in entity.fields:
            raise ConfigurationError(
                f"Search '{entity.name}.{descriptor.name}' matches undeclared field '{predicate.field}'"
            )
        param: Optional[SearchParameter] = next(
            (p for p in descriptor.parameters if p.name == predicate.parameter), None
        )
        if param is None:
            raise ConfigurationError(
                f"Search '{entity.name}.{descriptor.name}' predicate uses undeclared parameter '{predicate.parameter}'"
            )
        if param.type is not str:
            raise ConfigurationError(
                f"Search '{entity.name}.{descriptor.name}' substring parameter '{param.name}' must be a string"
            )
        logger.debug("registered search %s.%s", entity.name, descriptor.name)
