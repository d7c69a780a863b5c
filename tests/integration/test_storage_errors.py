import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from directory.db.repositories import storage_errors
from directory.errors import ConflictError, StorageTimeout, StorageUnavailable


class _Orig(Exception):
    pass


@pytest.mark.parametrize(
    "raised,expected",
    [
        (IntegrityError("INSERT", {}, _Orig("UNIQUE constraint failed")), ConflictError),
        (PoolTimeoutError("QueuePool limit reached, connection timed out"), StorageTimeout),
        (OperationalError("SELECT", {}, _Orig("canceling statement due to statement timeout")), StorageTimeout),
        (OperationalError("SELECT", {}, _Orig("could not connect to server")), StorageUnavailable),
    ],
)
def test_storage_failures_are_translated_and_rolled_back(db, raised, expected):
    calls = []
    db.rollback = lambda: calls.append("rollback")
    with pytest.raises(expected):
        with storage_errors(db, "load account"):
            raise raised
    assert calls == ["rollback"]


def test_storage_unavailable_maps_to_503_with_retry_after(client, monkeypatch):
    from directory.db.repositories import base

    def _unavailable(self, page_request):
        raise base.StorageUnavailable("query accounts failed: storage engine unavailable")

    monkeypatch.setattr(base.EntityRepository, "find_page", _unavailable)
    r = client.get("/accounts")
    assert r.status_code == 503
    assert r.headers["retry-after"] == "1"
    assert r.json()["kind"] == "storage_unavailable"
