"""Hypermedia link construction for exposed resources."""
from __future__ import annotations

from typing import Any, Mapping, Optional

from directory.resources.entities import EntityDescriptor
from directory.utils.urls import QueryValue, build_href


def link(href: str, **attrs: Any) -> dict:
    return {"href": href, **attrs}


class LinkBuilder:
    """Builds absolute hrefs for collections, items, relations and searches."""

    def __init__(self, base_url: str):
        self.base_url = base_url

    def root(self) -> str:
        return self.base_url + "/"

    def collection(self, descriptor: EntityDescriptor, query: Optional[Mapping[str, QueryValue]] = None) -> str:
        return build_href(self.base_url, descriptor.collection, query=query)

    def item(self, descriptor: EntityDescriptor, entity_id: Any) -> str:
        return build_href(self.base_url, descriptor.collection, entity_id)

    def relation(
        self,
        descriptor: EntityDescriptor,
        entity_id: Any,
        relation_name: str,
        query: Optional[Mapping[str, QueryValue]] = None,
    ) -> str:
        return build_href(self.base_url, descriptor.collection, entity_id, relation_name, query=query)

    def search_index(self, descriptor: EntityDescriptor) -> str:
        return build_href(self.base_url, descriptor.collection, "search")

    def search(
        self,
        descriptor: EntityDescriptor,
        name: str,
        query: Optional[Mapping[str, QueryValue]] = None,
    ) -> str:
        return build_href(self.base_url, descriptor.collection, "search", name, query=query)

    def projections(self, descriptor: EntityDescriptor) -> str:
        return build_href(self.base_url, descriptor.collection, "projections")
