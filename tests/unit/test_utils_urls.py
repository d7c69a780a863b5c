from directory.utils.settings import refresh_settings_cache
from directory.utils.urls import build_href, get_api_base_url, last_path_segment


def test_base_url_prefers_public_setting(monkeypatch):
    monkeypatch.setenv("DIRECTORY_PUBLIC_BASE_URL", "directory.example.com")
    refresh_settings_cache()
    assert get_api_base_url("http://internal:8000/") == "https://directory.example.com"


def test_base_url_falls_back_to_request():
    assert get_api_base_url("http://testserver/") == "http://testserver"


def test_base_url_localhost_default():
    assert get_api_base_url() == "http://localhost:8000"


def test_base_url_appends_prefix(monkeypatch):
    monkeypatch.setenv("DIRECTORY_API_PREFIX", "/api")
    refresh_settings_cache()
    assert get_api_base_url("localhost:9000") == "http://localhost:9000/api"


def test_build_href_joins_segments_and_query():
    href = build_href("http://h", "accounts", "abc", "groups", query={"page": 1, "sort": ["code,desc", "name"], "q": None})
    assert href == "http://h/accounts/abc/groups?page=1&sort=code%2Cdesc&sort=name"


def test_build_href_without_segments():
    assert build_href("http://h") == "http://h"


def test_last_path_segment():
    assert last_path_segment("http://h/groups/123/") == "123"
    assert last_path_segment("http://h/groups/123?projection=summary") == "123"
    assert last_path_segment("123") == "123"
