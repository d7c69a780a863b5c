"""
Generic entity repository.

Implements find/save/delete, paged queries and relation mutation for any
entity described by an ``EntityDescriptor``. Relation edges are written
directly to the association table inside one transaction, so both navigation
directions always change together.
"""
from __future__ import annotations

import logging
import math
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Generic, Iterator, List, Optional, Sequence, Tuple, TypeVar

from sqlalchemy import and_, delete, insert, select
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Query, Session

from directory.errors import (
    BadRequest,
    ConflictError,
    NotFound,
    StorageTimeout,
    StorageUnavailable,
)
from directory.resources.entities import EntityDescriptor, EntityRegistry, RelationDescriptor, SortKey

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TIMEOUT_MARKERS = (
    "timeout",
    "timed out",
    "canceling statement",
    "lock wait",
    "database is locked",
)


@dataclass(frozen=True)
class PageRequest:
    offset: int = 0
    limit: int = 20
    sort: Tuple[SortKey, ...] = ()

    @classmethod
    def of(cls, page: int, size: int, sort: Sequence[SortKey] = ()) -> "PageRequest":
        return cls(offset=page * size, limit=size, sort=tuple(sort))

    @property
    def page_index(self) -> int:
        return self.offset // self.limit if self.limit else 0


@dataclass
class Page(Generic[T]):
    items: List[T]
    total_count: int
    page_index: int
    page_size: int

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return math.ceil(self.total_count / self.page_size)

    @property
    def has_next(self) -> bool:
        return self.page_index < self.total_pages - 1

    @property
    def has_previous(self) -> bool:
        return self.page_index > 0


def _coerce_uuid(val: Any) -> Optional[uuid.UUID]:
    if val is None:
        return None
    if isinstance(val, uuid.UUID):
        return val
    try:
        return uuid.UUID(str(val))
    except (TypeError, ValueError):
        return None


def _is_timeout(exc: Exception) -> bool:
    message = str(getattr(exc, "orig", None) or exc).lower()
    return any(marker in message for marker in _TIMEOUT_MARKERS)


@contextmanager
def storage_errors(db: Session, action: str) -> Iterator[None]:
    """Roll back and translate storage failures into directory errors."""
    try:
        yield
    except IntegrityError as exc:
        db.rollback()
        logger.info("%s rejected by storage constraint: %s", action, exc.orig)
        raise ConflictError(f"{action} conflicts with an existing record") from exc
    except PoolTimeoutError as exc:
        db.rollback()
        logger.warning("%s timed out waiting for a connection: %s", action, exc)
        raise StorageTimeout(f"{action} timed out waiting for the storage engine") from exc
    except OperationalError as exc:
        db.rollback()
        if _is_timeout(exc):
            logger.warning("%s timed out: %s", action, exc.orig)
            raise StorageTimeout(f"{action} timed out in the storage engine") from exc
        logger.error("%s failed, storage unavailable: %s", action, exc.orig)
        raise StorageUnavailable(f"{action} failed: storage engine unavailable") from exc
    except InterfaceError as exc:
        db.rollback()
        logger.error("%s failed, storage connection lost: %s", action, exc.orig)
        raise StorageUnavailable(f"{action} failed: storage engine unavailable") from exc


class EntityRepository:
    """CRUD, paging and relation access for one entity type."""

    def __init__(self, db: Session, descriptor: EntityDescriptor, entities: EntityRegistry):
        self.db = db
        self.descriptor = descriptor
        self.entities = entities
        self.model = descriptor.model

    def find_by_id(self, entity_id: Any):
        key = _coerce_uuid(entity_id)
        if key is None:
            raise NotFound(f"{self.descriptor.name} '{entity_id}' not found")
        with storage_errors(self.db, f"load {self.descriptor.name}"):
            instance = self.db.get(self.model, key)
        if instance is None:
            raise NotFound(f"{self.descriptor.name} '{entity_id}' not found")
        return instance

    def find_page(self, page_request: PageRequest) -> Page:
        return self._page(self.db.query(self.model), self.descriptor, page_request)

    def find_matching(self, criterion, page_request: PageRequest) -> Page:
        return self._page(self.db.query(self.model).filter(criterion), self.descriptor, page_request)

    def list_related(self, entity_id: Any, relation_name: str, page_request: PageRequest) -> Page:
        relation = self.descriptor.relation(relation_name)
        owner = self.find_by_id(entity_id)
        target = self.entities.get(relation.target)
        return self._page(self._related_query(owner.id, relation, target), target, page_request)

    def has_relation(self, entity_id: Any, relation_name: str, related_id: Any) -> bool:
        relation = self.descriptor.relation(relation_name)
        owner = self.find_by_id(entity_id)
        related = EntityRepository(self.db, self.entities.get(relation.target), self.entities).find_by_id(related_id)
        with storage_errors(self.db, f"read {self.descriptor.name}.{relation.name}"):
            return self._edge_exists(relation, owner.id, related.id)

    def find_related(self, entity_id: Any, relation_name: str, related_id: Any):
        """Return the related entity if it is associated with ``entity_id``."""
        if not self.has_relation(entity_id, relation_name, related_id):
            raise NotFound(
                f"'{related_id}' is not in {self.descriptor.name} '{entity_id}' {relation_name}"
            )
        relation = self.descriptor.relation(relation_name)
        return EntityRepository(self.db, self.entities.get(relation.target), self.entities).find_by_id(related_id)

    def save(self, instance):
        """Insert ``instance`` when it has no identity yet, otherwise update it."""
        action = f"save {self.descriptor.name}"
        with storage_errors(self.db, action):
            if instance.id is None:
                self.db.add(instance)
            elif instance not in self.db:
                instance = self.db.merge(instance)
            self.db.commit()
            self.db.refresh(instance)
        logger.debug("saved %s %s", self.descriptor.name, instance.id)
        return instance

    def create(self, values: Dict[str, Any]):
        payload = {k: v for k, v in values.items() if k in self.descriptor.fields}
        return self.save(self.model(**payload))

    def update(self, entity_id: Any, values: Dict[str, Any], *, partial: bool = False):
        """Apply ``values`` to an existing entity.

        A full update resets declared fields missing from ``values`` to None;
        a partial update only touches the supplied keys.
        """
        instance = self.find_by_id(entity_id)
        for name in self.descriptor.fields:
            if name in values:
                setattr(instance, name, values[name])
            elif not partial:
                setattr(instance, name, None)
        return self.save(instance)

    def delete_by_id(self, entity_id: Any) -> None:
        instance = self.find_by_id(entity_id)
        key = instance.id
        with storage_errors(self.db, f"delete {self.descriptor.name}"):
            for relation in self.descriptor.relations:
                owner_col = relation.association.c[relation.owner_column]
                self.db.execute(delete(relation.association).where(owner_col == key))
            self.db.delete(instance)
            self.db.commit()
        logger.info("deleted %s %s", self.descriptor.name, key)

    def add_relation(self, entity_id: Any, relation_name: str, related_id: Any) -> bool:
        """Associate ``related_id``; returns False when the edge already existed."""
        relation = self.descriptor.relation(relation_name)
        owner = self.find_by_id(entity_id)
        related = EntityRepository(self.db, self.entities.get(relation.target), self.entities).find_by_id(related_id)
        owner_key, related_key = owner.id, related.id
        action = f"add {self.descriptor.name}.{relation.name}"
        with storage_errors(self.db, action):
            if self._edge_exists(relation, owner_key, related_key):
                self.db.rollback()
                return False
            try:
                self.db.execute(
                    insert(relation.association).values(
                        {relation.owner_column: owner_key, relation.target_column: related_key}
                    )
                )
                self.db.commit()
            except IntegrityError:
                # A concurrent request inserted the same edge first.
                self.db.rollback()
                if self._edge_exists(relation, owner_key, related_key):
                    return False
                raise
        self.db.expire_all()
        logger.info("%s: %s -> %s", action, owner_key, related_key)
        return True

    def remove_relation(self, entity_id: Any, relation_name: str, related_id: Any) -> bool:
        """Dissociate ``related_id``; returns False when there was no such edge."""
        relation = self.descriptor.relation(relation_name)
        owner = self.find_by_id(entity_id)
        related = EntityRepository(self.db, self.entities.get(relation.target), self.entities).find_by_id(related_id)
        owner_key, related_key = owner.id, related.id
        action = f"remove {self.descriptor.name}.{relation.name}"
        with storage_errors(self.db, action):
            result = self.db.execute(
                delete(relation.association).where(self._edge_clause(relation, owner_key, related_key))
            )
            self.db.commit()
        self.db.expire_all()
        logger.info("%s: %s -x- %s (rows=%s)", action, owner_key, related_key, result.rowcount)
        return bool(result.rowcount)

    @staticmethod
    def _edge_clause(relation: RelationDescriptor, owner_key, related_key):
        assoc = relation.association
        return and_(
            assoc.c[relation.owner_column] == owner_key,
            assoc.c[relation.target_column] == related_key,
        )

    def _edge_exists(self, relation: RelationDescriptor, owner_key, related_key) -> bool:
        stmt = select(relation.association).where(self._edge_clause(relation, owner_key, related_key))
        return self.db.execute(stmt).first() is not None

    def _related_query(self, owner_key, relation: RelationDescriptor, target: EntityDescriptor) -> Query:
        assoc = relation.association
        return (
            self.db.query(target.model)
            .join(assoc, assoc.c[relation.target_column] == target.model.id)
            .filter(assoc.c[relation.owner_column] == owner_key)
        )

    @staticmethod
    def _order_by(query: Query, descriptor: EntityDescriptor, sort: Sequence[SortKey]) -> Query:
        keys = list(sort) or list(descriptor.default_sort)
        clauses = []
        for name, direction in keys:
            if name not in descriptor.sortable:
                raise BadRequest(f"Cannot sort '{descriptor.collection}' by '{name}'")
            column = getattr(descriptor.model, name)
            clauses.append(column.desc() if direction == "desc" else column.asc())
        # primary key tie-breaker keeps pages stable
        clauses.append(descriptor.model.id.asc())
        return query.order_by(*clauses)

    def _page(self, query: Query, descriptor: EntityDescriptor, page_request: PageRequest) -> Page:
        ordered = self._order_by(query, descriptor, page_request.sort)
        with storage_errors(self.db, f"query {descriptor.collection}"):
            total = query.order_by(None).count()
            items = ordered.offset(page_request.offset).limit(page_request.limit).all()
        return Page(
            items=items,
            total_count=total,
            page_index=page_request.page_index,
            page_size=page_request.limit,
        )
