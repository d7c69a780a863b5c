"""
Error taxonomy for the directory service.

Generic layers (repositories, registries, renderer) raise these; the API
layer translates them into HTTP responses with a stable machine-readable
``kind`` and a human-readable ``detail``.
"""
from __future__ import annotations


class DirectoryError(Exception):
    kind = "directory_error"
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"kind": self.kind, "detail": self.detail}


class NotFound(DirectoryError):
    kind = "not_found"
    status_code = 404


class BadRequest(DirectoryError):
    kind = "bad_request"
    status_code = 400


class ConflictError(DirectoryError):
    kind = "conflict"
    status_code = 409


class UnknownProjection(DirectoryError):
    kind = "unknown_projection"
    status_code = 400

    def __init__(self, entity: str, projection: str):
        super().__init__(f"Projection '{projection}' is not registered for '{entity}'")
        self.entity = entity
        self.projection = projection


class StorageTimeout(DirectoryError):
    """Backing store did not answer in time; safe for the caller to retry."""

    kind = "storage_timeout"
    status_code = 503


class StorageUnavailable(DirectoryError):
    kind = "storage_unavailable"
    status_code = 503


class ConfigurationError(DirectoryError):
    """Invalid registry declarations. Raised at startup, never per request."""

    kind = "configuration_error"
    status_code = 500
