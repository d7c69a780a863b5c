"""
Generic entity renderer.

Turns ORM instances into hypermedia documents:

- default representation: every declared field plus a link per relation,
  nothing expanded inline;
- projected representation: the projection's fields, with each declared
  relation fetched as a bounded page and rendered raw or through the chained
  projection;
- minimal representation: identity and ``self`` link only.

Projection graphs are validated acyclic at registration, so recursion depth
is bounded by the declared chain length.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from directory.db.repositories import EntityRepository, PageRequest
from directory.projections.registry import ProjectionDescriptor
from directory.resources.entities import EntityDescriptor
from directory.resources.links import LinkBuilder, link
from directory.resources.registry import ResourceRegistry

logger = logging.getLogger(__name__)


class Renderer:
    def __init__(self, db: Session, registry: ResourceRegistry, links: LinkBuilder, relation_limit: int):
        self.db = db
        self.registry = registry
        self.links = links
        self.relation_limit = max(1, relation_limit)

    def render(self, descriptor: EntityDescriptor, instance: Any, projection: Optional[str] = None) -> Dict[str, Any]:
        if projection is None:
            return self.default(descriptor, instance)
        return self.projected(descriptor, instance, self.registry.projections.get(descriptor.name, projection))

    def default(self, descriptor: EntityDescriptor, instance: Any) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"id": str(instance.id)}
        for name in descriptor.fields + descriptor.readonly_fields:
            doc[name] = getattr(instance, name)
        doc["_links"] = self.entity_links(descriptor, instance)
        return doc

    def minimal(self, descriptor: EntityDescriptor, instance: Any) -> Dict[str, Any]:
        return {
            "id": str(instance.id),
            "_links": {"self": link(self.links.item(descriptor, instance.id))},
        }

    def projected(self, descriptor: EntityDescriptor, instance: Any, projection: ProjectionDescriptor) -> Dict[str, Any]:
        doc: Dict[str, Any] = {"id": str(instance.id)}
        for name in projection.fields:
            doc[name] = getattr(instance, name)
        if projection.relations:
            repository = EntityRepository(self.db, descriptor, self.registry.entities)
            for rel in projection.relations:
                target = self.registry.entities.get(descriptor.relation(rel.relation).target)
                page = repository.list_related(
                    instance.id,
                    rel.relation,
                    PageRequest(offset=0, limit=self.relation_limit),
                )
                if page.total_count > len(page.items):
                    logger.debug(
                        "%s.%s expansion truncated to %d of %d",
                        descriptor.name, rel.relation, len(page.items), page.total_count,
                    )
                if rel.projection is None:
                    doc[rel.relation] = [self.minimal(target, item) for item in page.items]
                else:
                    chained = self.registry.projections.get(target.name, rel.projection)
                    doc[rel.relation] = [self.projected(target, item, chained) for item in page.items]
        doc["_links"] = self.entity_links(descriptor, instance)
        return doc

    def entity_links(self, descriptor: EntityDescriptor, instance: Any) -> Dict[str, Any]:
        links = {"self": link(self.links.item(descriptor, instance.id))}
        for rel in descriptor.relations:
            links[rel.name] = link(self.links.relation(descriptor, instance.id, rel.name))
        return links
