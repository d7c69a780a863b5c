"""
Projection definitions and their validation.

A projection is a named view of one entity type: an ordered list of scalar
fields plus relation fields that are rendered either raw (minimal
representation) or through a named projection of the related type. The set
of projections forms a graph of ``(entity, projection)`` nodes; it must be
acyclic, which is checked whenever projections are registered.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from directory.errors import ConfigurationError, UnknownProjection
from directory.resources.entities import EntityRegistry

logger = logging.getLogger(__name__)

ProjectionKey = Tuple[str, str]


@dataclass(frozen=True)
class RelationProjection:
    relation: str
    projection: Optional[str] = None  # None renders related entities raw


@dataclass(frozen=True)
class ProjectionDescriptor:
    entity: str
    name: str
    fields: Tuple[str, ...] = ()
    relations: Tuple[RelationProjection, ...] = ()

    @property
    def key(self) -> ProjectionKey:
        return (self.entity, self.name)


class ProjectionRegistry:
    def __init__(self, entities: EntityRegistry) -> None:
        self.entities = entities
        self._projections: Dict[ProjectionKey, ProjectionDescriptor] = {}

    def register(self, descriptor: ProjectionDescriptor) -> ProjectionDescriptor:
        self.register_all([descriptor])
        return descriptor

    def register_all(self, descriptors: Iterable[ProjectionDescriptor]) -> None:
        """Register a batch atomically; the batch may reference itself in any order.

        Raises ConfigurationError (and registers nothing) on duplicate names,
        unknown fields or relations, chains into missing projections, or cycles.
        """
        candidate = dict(self._projections)
        for descriptor in descriptors:
            if descriptor.key in candidate:
                raise ConfigurationError(
                    f"Duplicate projection '{descriptor.name}' on '{descriptor.entity}'"
                )
            candidate[descriptor.key] = descriptor
        for descriptor in candidate.values():
            self._validate_shape(descriptor, candidate)
        self._check_acyclic(candidate)
        self._projections = candidate
        logger.debug("projection registry now holds %d projection(s)", len(candidate))

    def get(self, entity: str, name: str) -> ProjectionDescriptor:
        try:
            return self._projections[(entity, name)]
        except KeyError:
            raise UnknownProjection(entity, name) from None

    def for_entity(self, entity: str) -> List[ProjectionDescriptor]:
        return [p for (e, _), p in self._projections.items() if e == entity]

    def depth(self, entity: str, name: str) -> int:
        """Number of chained projection links below ``(entity, name)``."""
        projection = self.get(entity, name)
        descriptor = self.entities.get(entity)
        deepest = 0
        for rel in projection.relations:
            if rel.projection is None:
                continue
            target = descriptor.relation(rel.relation).target
            deepest = max(deepest, 1 + self.depth(target, rel.projection))
        return deepest

    def _validate_shape(
        self,
        projection: ProjectionDescriptor,
        candidate: Dict[ProjectionKey, ProjectionDescriptor],
    ) -> None:
        label = f"{projection.entity}.{projection.name}"
        if projection.entity not in self.entities:
            raise ConfigurationError(f"Projection '{label}' is declared on unknown entity")
        entity = self.entities.get(projection.entity)
        allowed = set(entity.fields + entity.readonly_fields)
        for name in projection.fields:
            if name not in allowed:
                raise ConfigurationError(f"Projection '{label}' includes undeclared field '{name}'")
        if len(set(projection.fields)) != len(projection.fields):
            raise ConfigurationError(f"Projection '{label}' lists a field twice")
        seen = set()
        for rel in projection.relations:
            if rel.relation in seen:
                raise ConfigurationError(f"Projection '{label}' lists relation '{rel.relation}' twice")
            seen.add(rel.relation)
            if rel.relation not in entity.relation_names:
                raise ConfigurationError(f"Projection '{label}' names unknown relation '{rel.relation}'")
            if rel.projection is None:
                continue
            target = entity.relation(rel.relation).target
            if (target, rel.projection) not in candidate:
                raise ConfigurationError(
                    f"Projection '{label}' chains into unknown projection '{target}.{rel.projection}'"
                )

    def _check_acyclic(self, candidate: Dict[ProjectionKey, ProjectionDescriptor]) -> None:
        edges: Dict[ProjectionKey, List[ProjectionKey]] = {}
        for key, projection in candidate.items():
            entity = self.entities.get(projection.entity)
            edges[key] = [
                (entity.relation(rel.relation).target, rel.projection)
                for rel in projection.relations
                if rel.projection is not None
            ]

        # iterative DFS, colouring nodes white(absent)/grey(1)/black(2)
        state: Dict[ProjectionKey, int] = {}
        for root in edges:
            if state.get(root):
                continue
            stack = [(root, iter(edges[root]))]
            path = [root]
            state[root] = 1
            while stack:
                node, children = stack[-1]
                child = next(children, None)
                if child is None:
                    state[node] = 2
                    stack.pop()
                    path.pop()
                    continue
                if state.get(child) == 1:
                    cycle = path[path.index(child):] + [child]
                    rendered = " -> ".join(f"{e}.{p}" for e, p in cycle)
                    raise ConfigurationError(f"Projection cycle detected: {rendered}")
                if not state.get(child):
                    state[child] = 1
                    stack.append((child, iter(edges[child])))
                    path.append(child)
