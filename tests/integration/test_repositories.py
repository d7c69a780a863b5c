import uuid

import pytest
from sqlalchemy.exc import OperationalError

from directory.db.repositories import PageRequest, get_repository
from directory.domain import ACCOUNT, GROUP, ROLE
from directory.errors import BadRequest, ConflictError, NotFound, StorageUnavailable


@pytest.fixture
def accounts(db, registry):
    return get_repository(db, registry.entities, ACCOUNT)


@pytest.fixture
def groups(db, registry):
    return get_repository(db, registry.entities, GROUP)


@pytest.fixture
def roles(db, registry):
    return get_repository(db, registry.entities, ROLE)


def test_create_then_find_round_trip(accounts):
    created = accounts.create({"username": "ada", "firstname": "Ada", "lastname": "Lovelace", "ignored": 1})
    found = accounts.find_by_id(str(created.id))
    assert found.username == "ada"
    assert found.firstname == "Ada"
    assert found.lastname == "Lovelace"
    assert found.created_at is not None


def test_find_by_malformed_or_missing_id(accounts):
    with pytest.raises(NotFound):
        accounts.find_by_id("not-a-uuid")
    with pytest.raises(NotFound):
        accounts.find_by_id(uuid.uuid4())


def test_full_update_clears_missing_fields(accounts):
    created = accounts.create({"username": "bob", "firstname": "Bob", "lastname": "Builder"})
    updated = accounts.update(created.id, {"username": "bob", "lastname": "Smith"})
    assert updated.firstname is None
    assert updated.lastname == "Smith"


def test_partial_update_touches_supplied_fields_only(accounts):
    created = accounts.create({"username": "cy", "firstname": "Cy", "lastname": "Young"})
    updated = accounts.update(created.id, {"lastname": "Twombly"}, partial=True)
    assert updated.firstname == "Cy"
    assert updated.lastname == "Twombly"


def test_duplicate_username_conflicts_without_mutation(accounts):
    accounts.create({"username": "dup"})
    with pytest.raises(ConflictError):
        accounts.create({"username": "dup"})
    page = accounts.find_page(PageRequest.of(0, 10))
    assert page.total_count == 1


def test_paging_and_sorting(accounts):
    for name in ("e", "c", "a", "d", "b"):
        accounts.create({"username": name})
    first = accounts.find_page(PageRequest.of(0, 2))
    assert [a.username for a in first.items] == ["a", "b"]
    assert first.total_count == 5
    assert first.total_pages == 3
    assert first.has_next and not first.has_previous
    last = accounts.find_page(PageRequest.of(2, 2, [("username", "desc")]))
    assert [a.username for a in last.items] == ["a"]
    assert not last.has_next


def test_unsortable_field(accounts):
    with pytest.raises(BadRequest):
        accounts.find_page(PageRequest.of(0, 2, [("password", "asc")]))


def test_relation_is_visible_from_both_sides(accounts, groups):
    account = accounts.create({"username": "eve"})
    group = groups.create({"name": "Admins", "code": "ADM"})

    assert accounts.add_relation(account.id, "groups", group.id) is True
    assert accounts.add_relation(account.id, "groups", group.id) is False

    from_account = accounts.list_related(account.id, "groups", PageRequest.of(0, 10))
    from_group = groups.list_related(group.id, "accounts", PageRequest.of(0, 10))
    assert [g.id for g in from_account.items] == [group.id]
    assert [a.id for a in from_group.items] == [account.id]

    assert groups.remove_relation(group.id, "accounts", account.id) is True
    assert groups.remove_relation(group.id, "accounts", account.id) is False
    assert accounts.list_related(account.id, "groups", PageRequest.of(0, 10)).total_count == 0
    assert groups.list_related(group.id, "accounts", PageRequest.of(0, 10)).total_count == 0


def test_find_related(accounts, groups):
    account = accounts.create({"username": "fay"})
    member = groups.create({"name": "Ops", "code": "OPS"})
    other = groups.create({"name": "Dev", "code": "DEV"})
    accounts.add_relation(account.id, "groups", member.id)
    assert accounts.find_related(account.id, "groups", member.id).code == "OPS"
    with pytest.raises(NotFound):
        accounts.find_related(account.id, "groups", other.id)


def test_relation_to_missing_entity(accounts):
    account = accounts.create({"username": "gus"})
    with pytest.raises(NotFound):
        accounts.add_relation(account.id, "groups", uuid.uuid4())
    with pytest.raises(NotFound):
        accounts.add_relation(account.id, "roles", uuid.uuid4())


def test_delete_removes_edges(accounts, groups, roles):
    group = groups.create({"name": "Ops", "code": "OPS"})
    role = roles.create({"name": "Reader", "code": "READ"})
    account = accounts.create({"username": "hal"})
    groups.add_relation(group.id, "roles", role.id)
    groups.add_relation(group.id, "accounts", account.id)
    group_id = group.id

    groups.delete_by_id(group_id)

    # the caller's reference stays readable after the delete
    assert group.id == group_id
    assert group.code == "OPS"
    with pytest.raises(NotFound):
        groups.find_by_id(group_id)
    assert roles.list_related(role.id, "groups", PageRequest.of(0, 10)).total_count == 0
    assert accounts.list_related(account.id, "groups", PageRequest.of(0, 10)).total_count == 0


def _ids(page):
    return sorted(str(item.id) for item in page.items)


def _fail_next_commit(db, monkeypatch):
    real_commit = db.commit

    def _commit():
        monkeypatch.setattr(db, "commit", real_commit)
        raise OperationalError("COMMIT", {}, Exception("server closed the connection unexpectedly"))

    monkeypatch.setattr(db, "commit", _commit)


def test_failed_relation_add_leaves_both_directions_unchanged(db, monkeypatch, accounts, groups):
    account = accounts.create({"username": "ivy"})
    kept = groups.create({"name": "Ops", "code": "OPS"})
    other = groups.create({"name": "Dev", "code": "DEV"})
    accounts.add_relation(account.id, "groups", kept.id)
    account_id, kept_id, other_id = account.id, kept.id, other.id

    _fail_next_commit(db, monkeypatch)
    with pytest.raises(StorageUnavailable):
        accounts.add_relation(account_id, "groups", other_id)

    every = PageRequest.of(0, 10)
    assert _ids(accounts.list_related(account_id, "groups", every)) == [str(kept_id)]
    assert _ids(groups.list_related(kept_id, "accounts", every)) == [str(account_id)]
    assert _ids(groups.list_related(other_id, "accounts", every)) == []


def test_failed_relation_remove_leaves_both_directions_unchanged(db, monkeypatch, groups, roles):
    group = groups.create({"name": "Ops", "code": "OPS"})
    role = roles.create({"name": "Reader", "code": "READ"})
    groups.add_relation(group.id, "roles", role.id)
    group_id, role_id = group.id, role.id

    _fail_next_commit(db, monkeypatch)
    with pytest.raises(StorageUnavailable):
        roles.remove_relation(role_id, "groups", group_id)

    every = PageRequest.of(0, 10)
    assert _ids(groups.list_related(group_id, "roles", every)) == [str(role_id)]
    assert _ids(roles.list_related(role_id, "groups", every)) == [str(group_id)]
