"""
Database engine and session management.

Builds the SQLAlchemy engine from environment configuration with a test
fallback (SQLite in-memory) and exposes the FastAPI session dependency.
"""
import os
import sys

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from directory.utils.settings import get_settings


# Database connection URL
# Generate dynamically from individual components if DATABASE_URL is not provided
def _get_database_url() -> str:
    # If DATABASE_URL is explicitly set, use it
    if os.getenv("DATABASE_URL"):
        return os.getenv("DATABASE_URL")

    db_user = os.getenv("POSTGRES_USER")
    db_password = os.getenv("POSTGRES_PASSWORD")
    db_host = os.getenv("POSTGRES_HOST")
    db_port = os.getenv("POSTGRES_PORT")
    db_name = os.getenv("POSTGRES_DB")

    if all([db_user, db_password, db_host, db_port, db_name]):
        return f"postgresql://{db_user}:{db_password}@{db_host}:{db_port}/{db_name}"

    if _is_pytest_runtime():
        return "sqlite+pysqlite:///:memory:"

    missing = [
        name
        for name, value in (
            ("POSTGRES_USER", db_user),
            ("POSTGRES_PASSWORD", db_password),
            ("POSTGRES_HOST", db_host),
            ("POSTGRES_PORT", db_port),
            ("POSTGRES_DB", db_name),
        )
        if not value
    ]
    raise ValueError(f"Missing required database environment variables: {', '.join(missing)}")


def _is_pytest_runtime() -> bool:
    """Best-effort detection that we're executing under pytest.

    ``PYTEST_CURRENT_TEST`` is only set while an individual test is running,
    so module import during collection is detected through ``sys.modules``.
    """
    if os.getenv("PYTEST_RUNNING") == "1":
        return True
    if "PYTEST_CURRENT_TEST" in os.environ:
        return True
    return "pytest" in sys.modules


def _engine_kwargs(url: str) -> dict:
    settings = get_settings()
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url:
            # In-memory SQLite with StaticPool so the schema persists across connections
            kwargs["poolclass"] = StaticPool
        return kwargs
    kwargs = {"pool_pre_ping": True, "pool_timeout": settings.db_pool_timeout}
    if url.startswith("postgresql") and settings.db_statement_timeout_ms:
        kwargs["connect_args"] = {"options": f"-c statement_timeout={settings.db_statement_timeout_ms}"}
    return kwargs


DATABASE_URL = _get_database_url()

engine = create_engine(DATABASE_URL, **_engine_kwargs(DATABASE_URL))

# When using an in-memory SQLite database the schema must exist before the
# first session is handed out; there is no migration step in that context.
if DATABASE_URL.startswith("sqlite") and ":memory:" in DATABASE_URL:
    from directory.db import models  # local import to avoid circular import at module load

    models.Base.metadata.create_all(bind=engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Dependency to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
