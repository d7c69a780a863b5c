"""
Generic resource router.

``build_resource_router`` turns one ``EntityDescriptor`` into the full set of
collection, item, relation, search and projection endpoints. Request bodies
are validated with the descriptor's own pydantic schemas.
"""
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request, Response, status
from sqlalchemy.orm import Session

from directory.api.deps import get_db, get_page_request, get_renderer
from directory.api.hal import collection_document
from directory.db.repositories import EntityRepository, PageRequest
from directory.db.schemas import RelationTarget
from directory.errors import BadRequest
from directory.projections.renderer import Renderer
from directory.resources.entities import EntityDescriptor
from directory.resources.links import link
from directory.resources.registry import ResourceRegistry
from directory.utils.urls import last_path_segment

logger = logging.getLogger(__name__)

_PAGING_PARAMS = ("page", "size", "sort", "projection")


def _related_id(payload: RelationTarget, target: EntityDescriptor) -> str:
    if payload.id:
        return payload.id
    href = payload.href.split("?", 1)[0].rstrip("/")
    parts = href.rsplit("/", 2)
    if len(parts) == 3 and parts[1] != target.collection:
        raise BadRequest(f"Link '{payload.href}' does not point into '{target.collection}'")
    return last_path_segment(href)


def build_resource_router(descriptor: EntityDescriptor, registry: ResourceRegistry) -> APIRouter:
    router = APIRouter(prefix=f"/{descriptor.collection}", tags=[descriptor.collection])
    entities = registry.entities
    create_schema = descriptor.create_schema
    update_schema = descriptor.update_schema
    name = descriptor.name

    def repository(db: Session) -> EntityRepository:
        return EntityRepository(db, descriptor, entities)

    def check_projection(entity: str, projection: Optional[str]) -> None:
        # fail before touching storage
        if projection is not None:
            registry.projections.get(entity, projection)

    def item_document(renderer: Renderer, instance: Any, projection: Optional[str] = None) -> Dict[str, Any]:
        return renderer.render(descriptor, instance, projection)

    @router.get("", name=f"list_{descriptor.collection}")
    def list_items(
        request: Request,
        projection: Optional[str] = None,
        page_request: PageRequest = Depends(get_page_request),
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        check_projection(name, projection)
        page = repository(db).find_page(page_request)
        links = renderer.links
        return collection_document(
            descriptor.collection,
            [item_document(renderer, item, projection) for item in page.items],
            page,
            lambda query: links.collection(descriptor, query),
            request.query_params,
            extra_links={
                "search": link(links.search_index(descriptor)),
                "projections": link(links.projections(descriptor)),
            },
        )

    @router.post("", status_code=status.HTTP_201_CREATED, name=f"create_{name}")
    def create_item(
        payload: create_schema,
        response: Response,
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        instance = repository(db).create(payload.model_dump())
        response.headers["Location"] = renderer.links.item(descriptor, instance.id)
        return item_document(renderer, instance)

    @router.get("/search", name=f"list_{name}_searches")
    def list_searches(renderer: Renderer = Depends(get_renderer)):
        links = renderer.links
        doc_links: Dict[str, Any] = {"self": link(links.search_index(descriptor))}
        for search in registry.searches.for_entity(name):
            params = ",".join(search.parameter_names + _PAGING_PARAMS)
            doc_links[search.name] = link(
                links.search(descriptor, search.name) + "{?" + params + "}",
                templated=True,
                title=search.description,
            )
        return {"_links": doc_links}

    @router.get("/search/{search_name}", name=f"run_{name}_search")
    def run_search(
        search_name: str,
        request: Request,
        projection: Optional[str] = None,
        page_request: PageRequest = Depends(get_page_request),
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        search = registry.searches.get(name, search_name)
        check_projection(name, projection)
        page = search.execute(repository(db), request.query_params, page_request)
        links = renderer.links
        return collection_document(
            descriptor.collection,
            [item_document(renderer, item, projection) for item in page.items],
            page,
            lambda query: links.search(descriptor, search_name, query),
            request.query_params,
        )

    @router.get("/projections", name=f"list_{name}_projections")
    def list_projections(renderer: Renderer = Depends(get_renderer)):
        projections = [
            {
                "name": p.name,
                "fields": list(p.fields),
                "depth": registry.projections.depth(name, p.name),
                "relations": {r.relation: r.projection for r in p.relations},
            }
            for p in registry.projections.for_entity(name)
        ]
        return {
            "projections": projections,
            "_links": {
                "self": link(renderer.links.projections(descriptor)),
                descriptor.collection: link(renderer.links.collection(descriptor) + "{?projection}", templated=True),
            },
        }

    @router.get("/{item_id}", name=f"get_{name}")
    def get_item(
        item_id: str,
        projection: Optional[str] = None,
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        check_projection(name, projection)
        return item_document(renderer, repository(db).find_by_id(item_id), projection)

    @router.put("/{item_id}", name=f"replace_{name}")
    def replace_item(
        item_id: str,
        payload: create_schema,
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        instance = repository(db).update(item_id, payload.model_dump(), partial=False)
        return item_document(renderer, instance)

    @router.patch("/{item_id}", name=f"update_{name}")
    def update_item(
        item_id: str,
        payload: update_schema,
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        instance = repository(db).update(item_id, payload.model_dump(exclude_unset=True), partial=True)
        return item_document(renderer, instance)

    @router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT, name=f"delete_{name}")
    def delete_item(item_id: str, db: Session = Depends(get_db)):
        repository(db).delete_by_id(item_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.get("/{item_id}/{relation_name}", name=f"list_{name}_related")
    def list_related(
        item_id: str,
        relation_name: str,
        request: Request,
        projection: Optional[str] = None,
        page_request: PageRequest = Depends(get_page_request),
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        relation = descriptor.relation(relation_name)
        target = entities.get(relation.target)
        check_projection(target.name, projection)
        page = repository(db).list_related(item_id, relation_name, page_request)
        links = renderer.links
        return collection_document(
            target.collection,
            [renderer.render(target, item, projection) for item in page.items],
            page,
            lambda query: links.relation(descriptor, item_id, relation_name, query),
            request.query_params,
            extra_links={"owner": link(links.item(descriptor, item_id))},
        )

    @router.post("/{item_id}/{relation_name}", status_code=status.HTTP_204_NO_CONTENT, name=f"add_{name}_related")
    def add_related(
        item_id: str,
        relation_name: str,
        payload: RelationTarget,
        db: Session = Depends(get_db),
    ):
        relation = descriptor.relation(relation_name)
        related_id = _related_id(payload, entities.get(relation.target))
        repository(db).add_relation(item_id, relation_name, related_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    @router.get("/{item_id}/{relation_name}/{related_id}", name=f"get_{name}_related")
    def get_related(
        item_id: str,
        relation_name: str,
        related_id: str,
        projection: Optional[str] = None,
        db: Session = Depends(get_db),
        renderer: Renderer = Depends(get_renderer),
    ):
        target = entities.get(descriptor.relation(relation_name).target)
        check_projection(target.name, projection)
        instance = repository(db).find_related(item_id, relation_name, related_id)
        return renderer.render(target, instance, projection)

    @router.delete(
        "/{item_id}/{relation_name}/{related_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        name=f"remove_{name}_related",
    )
    def remove_related(
        item_id: str,
        relation_name: str,
        related_id: str,
        db: Session = Depends(get_db),
    ):
        removed = repository(db).remove_relation(item_id, relation_name, related_id)
        if not removed:
            logger.debug("%s.%s: no edge %s -> %s to remove", name, relation_name, item_id, related_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return router
