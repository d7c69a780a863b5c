from directory.utils.settings import get_settings, refresh_settings_cache


def test_defaults():
    settings = get_settings()
    assert settings.default_page_size == 20
    assert settings.max_page_size == 100
    assert settings.projection_relation_limit == 20
    assert settings.api_prefix == ""
    assert settings.public_base_url is None
    assert settings.require_identity is False
    assert settings.db_pool_timeout == 30
    assert settings.db_statement_timeout_ms is None


def test_settings_are_cached_until_refreshed(monkeypatch):
    first = get_settings()
    monkeypatch.setenv("DIRECTORY_DEFAULT_PAGE_SIZE", "5")
    assert get_settings() is first
    refresh_settings_cache()
    assert get_settings().default_page_size == 5


def test_invalid_numbers_fall_back_to_defaults(monkeypatch):
    monkeypatch.setenv("DIRECTORY_MAX_PAGE_SIZE", "lots")
    monkeypatch.setenv("DIRECTORY_DEFAULT_PAGE_SIZE", "0")
    monkeypatch.setenv("DIRECTORY_PROJECTION_RELATION_LIMIT", "-3")
    refresh_settings_cache()
    settings = get_settings()
    assert settings.max_page_size == 100
    assert settings.default_page_size == 20
    assert settings.projection_relation_limit == 20


def test_default_page_size_is_clamped_to_max(monkeypatch):
    monkeypatch.setenv("DIRECTORY_MAX_PAGE_SIZE", "10")
    monkeypatch.setenv("DIRECTORY_DEFAULT_PAGE_SIZE", "50")
    refresh_settings_cache()
    settings = get_settings()
    assert settings.max_page_size == 10
    assert settings.default_page_size == 10
    assert settings.projection_relation_limit == 10


def test_prefix_and_base_url_are_normalized(monkeypatch):
    monkeypatch.setenv("DIRECTORY_API_PREFIX", "api/v1/")
    monkeypatch.setenv("DIRECTORY_PUBLIC_BASE_URL", "https://directory.example.com/")
    refresh_settings_cache()
    settings = get_settings()
    assert settings.api_prefix == "/api/v1"
    assert settings.public_base_url == "https://directory.example.com"


def test_require_identity_flag(monkeypatch):
    monkeypatch.setenv("DIRECTORY_REQUIRE_IDENTITY", "Yes")
    refresh_settings_cache()
    assert get_settings().require_identity is True
