"""Aggregate of the entity, search and projection registries served by the API."""
from __future__ import annotations

from dataclasses import dataclass

from directory.projections.registry import ProjectionRegistry
from directory.resources.entities import EntityRegistry
from directory.search.registry import SearchRegistry


@dataclass
class ResourceRegistry:
    entities: EntityRegistry
    searches: SearchRegistry
    projections: ProjectionRegistry

    @classmethod
    def empty(cls) -> "ResourceRegistry":
        entities = EntityRegistry()
        return cls(
            entities=entities,
            searches=SearchRegistry(entities),
            projections=ProjectionRegistry(entities),
        )
