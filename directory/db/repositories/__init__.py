"""
Repository access for exposed entities.

One generic ``EntityRepository`` serves every entity type; the descriptor
passed in decides the model, fields, sort keys and relations.
"""
from sqlalchemy.orm import Session

from directory.resources.entities import EntityRegistry

from .base import EntityRepository, Page, PageRequest, storage_errors


def get_repository(db: Session, entities: EntityRegistry, entity_name: str) -> EntityRepository:
    return EntityRepository(db, entities.get(entity_name), entities)


__all__ = [
    "EntityRepository",
    "Page",
    "PageRequest",
    "get_repository",
    "storage_errors",
]
