"""
App assembly entry point.

Re-exports the FastAPI `app` from `directory.api.main` so the service can be
started with `uvicorn app:app`.
"""

from directory.api.main import app  # noqa: F401
