import os

# Tests always run against in-memory SQLite, whatever the shell exports.
os.environ["DATABASE_URL"] = "sqlite+pysqlite:///:memory:"
os.environ.setdefault("PYTEST_RUNNING", "1")

import pytest
from fastapi.testclient import TestClient

from directory.utils.settings import refresh_settings_cache

_SETTINGS_ENV = (
    "DIRECTORY_DEFAULT_PAGE_SIZE",
    "DIRECTORY_MAX_PAGE_SIZE",
    "DIRECTORY_PROJECTION_RELATION_LIMIT",
    "DIRECTORY_API_PREFIX",
    "DIRECTORY_PUBLIC_BASE_URL",
    "DIRECTORY_REQUIRE_IDENTITY",
)


@pytest.fixture(autouse=True)
def _clean_settings(monkeypatch):
    """Clear env + cached settings for each test to avoid cross-contamination."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    refresh_settings_cache()
    yield
    refresh_settings_cache()


@pytest.fixture
def registry():
    from directory.domain import build_registry

    return build_registry()


@pytest.fixture
def db_session():
    """Fresh schema per test; yields a session on the shared in-memory engine."""
    from directory.db import database, models

    models.Base.metadata.drop_all(bind=database.engine)
    models.Base.metadata.create_all(bind=database.engine)
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def db(db_session):
    return db_session


@pytest.fixture
def make_client(db_session):
    """Build a TestClient for an app created with the current environment."""
    from directory.api.main import create_app

    def _make(**kwargs):
        return TestClient(create_app(), **kwargs)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
