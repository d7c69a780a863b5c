"""
Entity and relation descriptors.

Static description of every exposed entity type: its ORM model, scalar
fields, write schemas and many-to-many relations. The resource layer, the
repositories and the projection engine are all driven from these records.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple, Type

from sqlalchemy import Table
from pydantic import BaseModel

from directory.errors import ConfigurationError, NotFound

logger = logging.getLogger(__name__)

SortKey = Tuple[str, str]


@dataclass(frozen=True)
class RelationDescriptor:
    """One navigable direction of a many-to-many association.

    ``owner_column`` references the entity declaring the relation and
    ``target_column`` the related entity; the inverse direction uses the same
    table with the columns swapped.
    """

    name: str
    target: str
    association: Table
    owner_column: str
    target_column: str
    inverse: Optional[str] = None


@dataclass(frozen=True)
class EntityDescriptor:
    name: str
    collection: str
    model: type
    fields: Tuple[str, ...]
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    relations: Tuple[RelationDescriptor, ...] = ()
    readonly_fields: Tuple[str, ...] = ()
    default_sort: Tuple[SortKey, ...] = ()

    @property
    def sortable(self) -> Tuple[str, ...]:
        return self.fields + self.readonly_fields

    @property
    def relation_names(self) -> Tuple[str, ...]:
        return tuple(r.name for r in self.relations)

    def relation(self, name: str) -> RelationDescriptor:
        for rel in self.relations:
            if rel.name == name:
                return rel
        raise NotFound(f"Relation '{name}' does not exist on '{self.collection}'")


class EntityRegistry:
    def __init__(self) -> None:
        self._by_name: Dict[str, EntityDescriptor] = {}
        self._by_collection: Dict[str, EntityDescriptor] = {}

    def register(self, descriptor: EntityDescriptor) -> EntityDescriptor:
        if descriptor.name in self._by_name:
            raise ConfigurationError(f"Entity '{descriptor.name}' is already registered")
        if descriptor.collection in self._by_collection:
            raise ConfigurationError(f"Collection path '{descriptor.collection}' is already registered")
        self._by_name[descriptor.name] = descriptor
        self._by_collection[descriptor.collection] = descriptor
        return descriptor

    def register_all(self, descriptors: Iterable[EntityDescriptor]) -> None:
        for descriptor in descriptors:
            self.register(descriptor)
        self.validate()

    def get(self, name: str) -> EntityDescriptor:
        try:
            return self._by_name[name]
        except KeyError:
            raise NotFound(f"Entity '{name}' is not exposed") from None

    def __contains__(self, name: str) -> bool:
        return name in self._by_name

    def all(self) -> List[EntityDescriptor]:
        return list(self._by_name.values())

    def validate(self) -> None:
        """Check fields against the models and that every relation has a consistent inverse."""
        for descriptor in self._by_name.values():
            columns = set(descriptor.model.__table__.columns.keys())
            for name in descriptor.fields + descriptor.readonly_fields:
                if name not in columns:
                    raise ConfigurationError(
                        f"Field '{name}' of '{descriptor.name}' is not a column of {descriptor.model.__name__}"
                    )
            for key, direction in descriptor.default_sort:
                if key not in descriptor.sortable or direction not in ("asc", "desc"):
                    raise ConfigurationError(f"Invalid default sort '{key},{direction}' on '{descriptor.name}'")
            seen = set()
            for rel in descriptor.relations:
                if rel.name in seen:
                    raise ConfigurationError(f"Duplicate relation '{rel.name}' on '{descriptor.name}'")
                seen.add(rel.name)
                if rel.name in columns:
                    raise ConfigurationError(f"Relation '{rel.name}' on '{descriptor.name}' shadows a column")
                if rel.target not in self._by_name:
                    raise ConfigurationError(
                        f"Relation '{descriptor.name}.{rel.name}' targets unknown entity '{rel.target}'"
                    )
                assoc_columns = set(rel.association.columns.keys())
                if rel.owner_column not in assoc_columns or rel.target_column not in assoc_columns:
                    raise ConfigurationError(
                        f"Relation '{descriptor.name}.{rel.name}' names columns missing from '{rel.association.name}'"
                    )
                if rel.inverse is None:
                    continue
                target = self._by_name[rel.target]
                inverse = next((r for r in target.relations if r.name == rel.inverse), None)
                if (
                    inverse is None
                    or inverse.target != descriptor.name
                    or inverse.association is not rel.association
                    or inverse.owner_column != rel.target_column
                    or inverse.target_column != rel.owner_column
                ):
                    raise ConfigurationError(
                        f"Relation '{descriptor.name}.{rel.name}' and its inverse "
                        f"'{rel.target}.{rel.inverse}' do not describe the same association"
                    )
        logger.debug("entity registry validated: %s", sorted(self._by_name))
