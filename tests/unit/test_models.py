import pytest
from sqlalchemy import inspect

from directory.db import models


@pytest.mark.parametrize("model", [models.Account, models.Group, models.Role])
def test_models_expose_no_relationship_collections(model):
    # edges live only in the association tables
    assert list(inspect(model).relationships) == []
    assert set(inspect(model).columns.keys()) >= {"id", "created_at", "updated_at"}


def test_association_tables_are_registered_on_metadata():
    tables = models.Base.metadata.tables
    assert set(tables["account_groups"].c.keys()) == {"account_id", "group_id"}
    assert set(tables["group_roles"].c.keys()) == {"group_id", "role_id"}
