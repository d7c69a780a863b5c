import dataclasses

import pytest

from directory.domain import ACCOUNT, ENTITIES, GROUP
from directory.errors import ConfigurationError, NotFound
from directory.resources.entities import EntityRegistry


def _replace(name, /, **changes):
    descriptor = next(d for d in ENTITIES if d.name == name)
    return dataclasses.replace(descriptor, **changes)


def test_register_and_lookup():
    registry = EntityRegistry()
    registry.register_all(ENTITIES)
    assert registry.get(ACCOUNT).collection == "accounts"
    assert registry.get(GROUP).relation_names == ("accounts", "roles")
    assert ACCOUNT in registry
    assert [d.collection for d in registry.all()] == ["accounts", "groups", "roles"]


def test_unknown_lookups_are_not_found():
    registry = EntityRegistry()
    registry.register_all(ENTITIES)
    with pytest.raises(NotFound):
        registry.get("tenant")
    with pytest.raises(NotFound):
        registry.get(ACCOUNT).relation("roles")


def test_duplicate_registration():
    registry = EntityRegistry()
    registry.register_all(ENTITIES)
    with pytest.raises(ConfigurationError):
        registry.register(ENTITIES[0])


def test_unknown_field_rejected():
    registry = EntityRegistry()
    with pytest.raises(ConfigurationError):
        registry.register_all([_replace(ACCOUNT, fields=("username", "password")), *ENTITIES[1:]])


def test_bad_default_sort_rejected():
    registry = EntityRegistry()
    with pytest.raises(ConfigurationError):
        registry.register_all([_replace(ACCOUNT, default_sort=(("username", "sideways"),)), *ENTITIES[1:]])


def test_relation_without_target_rejected():
    registry = EntityRegistry()
    with pytest.raises(ConfigurationError):
        registry.register_all(ENTITIES[:1])


def test_mismatched_inverse_rejected():
    account = next(d for d in ENTITIES if d.name == ACCOUNT)
    broken = dataclasses.replace(account.relations[0], inverse="roles")
    registry = EntityRegistry()
    with pytest.raises(ConfigurationError):
        registry.register_all([dataclasses.replace(account, relations=(broken,)), *ENTITIES[1:]])


def test_duplicate_collection_path_rejected():
    registry = EntityRegistry()
    registry.register_all(ENTITIES)
    with pytest.raises(ConfigurationError):
        registry.register(_replace(ACCOUNT, name="member"))
