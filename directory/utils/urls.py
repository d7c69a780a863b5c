"""
URL utilities for building absolute hypermedia links.

Primary source: DIRECTORY_PUBLIC_BASE_URL (e.g., https://directory.example.com)
Fallback: the base URL of the incoming request.
The configured DIRECTORY_API_PREFIX is appended to either.
"""
from __future__ import annotations

from typing import Iterable, Mapping, Optional, Sequence, Tuple, Union
from urllib.parse import urlencode

from directory.utils.settings import get_settings

QueryValue = Union[str, int, Sequence[str], None]


def _add_scheme_if_missing(host: str) -> str:
    h = host.strip()
    if not h:
        return "http://localhost:8000"
    if h.startswith("http://") or h.startswith("https://"):
        return h
    # Simple heuristic: use http for localhost, otherwise https
    lower = h.lower()
    if lower.startswith("localhost") or lower.startswith("127.0.0.1"):
        return f"http://{h}"
    return f"https://{h}"


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


def get_api_base_url(request_base_url: Optional[str] = None) -> str:
    """Return the absolute base URL every link is built on.

    Precedence:
    1. DIRECTORY_PUBLIC_BASE_URL
    2. the request base URL (``request.base_url``)
    Defaults to http://localhost:8000 if neither is available.
    """
    settings = get_settings()
    if settings.public_base_url:
        base = _add_scheme_if_missing(settings.public_base_url)
    elif request_base_url:
        base = _add_scheme_if_missing(str(request_base_url))
    else:
        base = "http://localhost:8000"
    return _strip_trailing_slash(base) + settings.api_prefix


def _flatten_query(params: Mapping[str, QueryValue]) -> Iterable[Tuple[str, str]]:
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            for item in value:
                yield key, str(item)
        else:
            yield key, str(value)


def build_href(base_url: str, *segments: object, query: Optional[Mapping[str, QueryValue]] = None) -> str:
    """Join path segments onto ``base_url`` and append an encoded query string."""
    path = "/".join(str(s).strip("/") for s in segments if s is not None and str(s) != "")
    url = f"{base_url}/{path}" if path else base_url
    if query:
        qs = urlencode(list(_flatten_query(query)))
        if qs:
            url = f"{url}?{qs}"
    return url


def last_path_segment(href: str) -> str:
    """Return the final path segment of a link, ignoring query and trailing slash."""
    path = href.split("?", 1)[0].split("#", 1)[0]
    return _strip_trailing_slash(path).rsplit("/", 1)[-1]
