import pytest

from directory.errors import (
    BadRequest,
    ConfigurationError,
    ConflictError,
    DirectoryError,
    NotFound,
    StorageTimeout,
    StorageUnavailable,
    UnknownProjection,
)


@pytest.mark.parametrize(
    "exc_type,kind,status",
    [
        (NotFound, "not_found", 404),
        (BadRequest, "bad_request", 400),
        (ConflictError, "conflict", 409),
        (StorageTimeout, "storage_timeout", 503),
        (StorageUnavailable, "storage_unavailable", 503),
        (ConfigurationError, "configuration_error", 500),
    ],
)
def test_error_kinds(exc_type, kind, status):
    exc = exc_type("boom")
    assert isinstance(exc, DirectoryError)
    assert exc.kind == kind
    assert exc.status_code == status
    assert exc.to_dict() == {"kind": kind, "detail": "boom"}


def test_unknown_projection_names_entity_and_projection():
    exc = UnknownProjection("account", "nope")
    assert exc.kind == "unknown_projection"
    assert exc.status_code == 400
    assert "nope" in exc.detail and "account" in exc.detail
