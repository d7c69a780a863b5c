"""
Shared dependencies for the generated resource routers.

Query parsing for the pagination contract lives here so every collection,
relation and search endpoint reads ``page``, ``size`` and ``sort`` the same
way.
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from directory.db.database import get_db
from directory.db.repositories import PageRequest
from directory.errors import BadRequest
from directory.projections.renderer import Renderer
from directory.resources.entities import SortKey
from directory.resources.links import LinkBuilder
from directory.resources.registry import ResourceRegistry
from directory.utils.settings import get_settings
from directory.utils.urls import get_api_base_url

__all__ = [
    "get_db",
    "get_registry",
    "get_links",
    "get_renderer",
    "get_page_request",
    "parse_page_request",
    "parse_sort",
]

_DIRECTIONS = ("asc", "desc")
# largest OFFSET a signed 64-bit SQL integer can hold
_MAX_OFFSET = 2**63 - 1


def _int_param(raw: Optional[str], name: str, default: int, minimum: int) -> int:
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise BadRequest(f"Query parameter '{name}' must be an integer") from None
    if value < minimum:
        raise BadRequest(f"Query parameter '{name}' must be >= {minimum}")
    return value


def parse_sort(values: Sequence[str]) -> List[SortKey]:
    """Parse repeated ``sort=field[,field...][,asc|desc]`` values.

    A trailing direction applies to every field in the same value.
    """
    keys: List[SortKey] = []
    for raw in values:
        tokens = [t.strip() for t in raw.split(",") if t.strip()]
        if not tokens:
            raise BadRequest("Query parameter 'sort' must name a field")
        direction = "asc"
        if tokens[-1].lower() in _DIRECTIONS:
            direction = tokens.pop().lower()
            if not tokens:
                raise BadRequest(f"Sort value '{raw}' has a direction but no field")
        for field in tokens:
            keys.append((field, direction))
    return keys


def parse_page_request(request: Request) -> PageRequest:
    settings = get_settings()
    params = request.query_params
    page = _int_param(params.get("page"), "page", default=0, minimum=0)
    size = _int_param(params.get("size"), "size", default=settings.default_page_size, minimum=1)
    size = min(size, settings.max_page_size)
    if page * size > _MAX_OFFSET:
        raise BadRequest(f"Query parameter 'page' is out of range for size {size}")
    return PageRequest.of(page, size, parse_sort(params.getlist("sort")))


def get_page_request(request: Request) -> PageRequest:
    return parse_page_request(request)


def get_registry(request: Request) -> ResourceRegistry:
    return request.app.state.registry


def get_links(request: Request) -> LinkBuilder:
    return LinkBuilder(get_api_base_url(str(request.base_url)))


def get_renderer(
    db: Session = Depends(get_db),
    registry: ResourceRegistry = Depends(get_registry),
    links: LinkBuilder = Depends(get_links),
) -> Renderer:
    return Renderer(db, registry, links, get_settings().projection_relation_limit)
