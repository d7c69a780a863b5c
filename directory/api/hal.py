"""HAL-style document assembly for paged collections."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional

from starlette.datastructures import QueryParams

from directory.db.repositories import Page
from directory.resources.links import link
from directory.utils.urls import QueryValue

HrefFor = Callable[[Mapping[str, QueryValue]], str]


def preserved_query(params: QueryParams) -> Dict[str, List[str]]:
    """Query parameters carried over to pagination links (everything but page/size)."""
    preserved: Dict[str, List[str]] = {}
    for key, value in params.multi_items():
        if key in ("page", "size"):
            continue
        preserved.setdefault(key, []).append(value)
    return preserved


def page_links(page: Page, href_for: HrefFor, params: QueryParams) -> Dict[str, Any]:
    base = preserved_query(params)

    def href(index: int) -> str:
        return href_for({**base, "page": index, "size": page.page_size})

    canonical = {k: v for k, v in base.items() if k != "projection"}
    links: Dict[str, Any] = {
        "self": link(href_for({**canonical, "page": page.page_index, "size": page.page_size})),
    }
    if page.total_pages > 0:
        links["first"] = link(href(0))
    if page.has_previous:
        links["prev"] = link(href(page.page_index - 1))
    if page.has_next:
        links["next"] = link(href(page.page_index + 1))
    if page.total_pages > 0:
        links["last"] = link(href(page.total_pages - 1))
    return links


def page_metadata(page: Page) -> Dict[str, int]:
    return {
        "size": page.page_size,
        "totalElements": page.total_count,
        "totalPages": page.total_pages,
        "number": page.page_index,
    }


def collection_document(
    rel: str,
    items: List[Dict[str, Any]],
    page: Page,
    href_for: HrefFor,
    params: QueryParams,
    extra_links: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    links = page_links(page, href_for, params)
    if extra_links:
        links.update(extra_links)
    return {
        "_embedded": {rel: items},
        "_links": links,
        "page": page_metadata(page),
    }
