import pytest
from starlette.requests import Request

from directory.api.deps import parse_page_request, parse_sort
from directory.errors import BadRequest
from directory.utils.settings import refresh_settings_cache


def _request(query: str) -> Request:
    return Request({"type": "http", "method": "GET", "path": "/accounts", "query_string": query.encode(), "headers": []})


def test_defaults():
    page_request = parse_page_request(_request(""))
    assert page_request.offset == 0
    assert page_request.limit == 20
    assert page_request.sort == ()


def test_page_and_size():
    page_request = parse_page_request(_request("page=2&size=5"))
    assert page_request.offset == 10
    assert page_request.limit == 5
    assert page_request.page_index == 2


def test_size_is_clamped_to_max(monkeypatch):
    monkeypatch.setenv("DIRECTORY_MAX_PAGE_SIZE", "50")
    refresh_settings_cache()
    assert parse_page_request(_request("size=500")).limit == 50


@pytest.mark.parametrize("query", ["page=-1", "page=one", "size=0", "size=big", "sort=", "sort=desc"])
def test_malformed_values(query):
    with pytest.raises(BadRequest):
        parse_page_request(_request(query))


def test_sort_parsing():
    assert parse_sort(["username"]) == [("username", "asc")]
    assert parse_sort(["lastname,DESC", "firstname"]) == [("lastname", "desc"), ("firstname", "asc")]
    assert parse_sort(["lastname,firstname,desc"]) == [("lastname", "desc"), ("firstname", "desc")]
