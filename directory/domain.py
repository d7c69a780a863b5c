"""
Concrete wiring of the directory domain.

Declares the Account, Group and Role resources, their searches and their
projections. ``build_registry()`` is called once at application startup;
any inconsistency raises ConfigurationError before traffic is served.
"""
from __future__ import annotations

import logging

from directory.db import models, schemas
from directory.projections.registry import ProjectionDescriptor, RelationProjection
from directory.resources.entities import EntityDescriptor, RelationDescriptor
from directory.resources.registry import ResourceRegistry
from directory.search.registry import SearchDescriptor, SearchParameter, SubstringMatch

logger = logging.getLogger(__name__)

ACCOUNT = "account"
GROUP = "group"
ROLE = "role"

_TIMESTAMPS = ("created_at", "updated_at")

ENTITIES = (
    EntityDescriptor(
        name=ACCOUNT,
        collection="accounts",
        model=models.Account,
        fields=("username", "firstname", "lastname"),
        readonly_fields=_TIMESTAMPS,
        create_schema=schemas.AccountCreate,
        update_schema=schemas.AccountUpdate,
        default_sort=(("username", "asc"),),
        relations=(
            RelationDescriptor(
                name="groups",
                target=GROUP,
                association=models.account_groups,
                owner_column="account_id",
                target_column="group_id",
                inverse="accounts",
            ),
        ),
    ),
    EntityDescriptor(
        name=GROUP,
        collection="groups",
        model=models.Group,
        fields=("name", "code", "description"),
        readonly_fields=_TIMESTAMPS,
        create_schema=schemas.GroupCreate,
        update_schema=schemas.GroupUpdate,
        default_sort=(("code", "asc"),),
        relations=(
            RelationDescriptor(
                name="accounts",
                target=ACCOUNT,
                association=models.account_groups,
                owner_column="group_id",
                target_column="account_id",
                inverse="groups",
            ),
            RelationDescriptor(
                name="roles",
                target=ROLE,
                association=models.group_roles,
                owner_column="group_id",
                target_column="role_id",
                inverse="groups",
            ),
        ),
    ),
    EntityDescriptor(
        name=ROLE,
        collection="roles",
        model=models.Role,
        fields=("name", "code", "description"),
        readonly_fields=_TIMESTAMPS,
        create_schema=schemas.RoleCreate,
        update_schema=schemas.RoleUpdate,
        default_sort=(("code", "asc"),),
        relations=(
            RelationDescriptor(
                name="groups",
                target=GROUP,
                association=models.group_roles,
                owner_column="role_id",
                target_column="group_id",
                inverse="roles",
            ),
        ),
    ),
)


def _contains(entity: str, name: str, field: str) -> SearchDescriptor:
    return SearchDescriptor(
        entity=entity,
        name=name,
        parameters=(SearchParameter("q", str, required=True, description=f"substring of {field}"),),
        predicate=SubstringMatch(field=field, parameter="q"),
        description=f"Case-insensitive substring match on {field}",
    )


SEARCHES = (
    _contains(ACCOUNT, "findByUsernameContaining", "username"),
    _contains(ACCOUNT, "findByLastnameContaining", "lastname"),
    _contains(GROUP, "findByNameContaining", "name"),
    _contains(GROUP, "findByCodeContaining", "code"),
    _contains(ROLE, "findByNameContaining", "name"),
    _contains(ROLE, "findByCodeContaining", "code"),
)

_ACCOUNT_FIELDS = ("username", "firstname", "lastname")
_GROUP_FIELDS = ("name", "code", "description")

PROJECTIONS = (
    ProjectionDescriptor(ACCOUNT, "summary", fields=_ACCOUNT_FIELDS),
    ProjectionDescriptor(
        ACCOUNT, "withGroups",
        fields=_ACCOUNT_FIELDS,
        relations=(RelationProjection("groups"),),
    ),
    ProjectionDescriptor(
        ACCOUNT, "withGroupsAndRoles",
        fields=_ACCOUNT_FIELDS,
        relations=(RelationProjection("groups", "withRoles"),),
    ),
    ProjectionDescriptor(GROUP, "summary", fields=("name", "code")),
    ProjectionDescriptor(
        GROUP, "withRoles",
        fields=_GROUP_FIELDS,
        relations=(RelationProjection("roles", "summary"),),
    ),
    ProjectionDescriptor(
        GROUP, "withAccounts",
        fields=_GROUP_FIELDS,
        relations=(RelationProjection("accounts", "summary"),),
    ),
    ProjectionDescriptor(ROLE, "summary", fields=("name", "code", "description")),
    ProjectionDescriptor(
        ROLE, "withGroups",
        fields=("name", "code", "description"),
        relations=(RelationProjection("groups"),),
    ),
)


def build_registry() -> ResourceRegistry:
    """Assemble and validate the registries for Account, Group and Role."""
    registry = ResourceRegistry.empty()
    registry.entities.register_all(ENTITIES)
    registry.searches.register_all(SEARCHES)
    registry.projections.register_all(PROJECTIONS)
    logger.info(
        "registry_built: entities=%s searches=%d projections=%d",
        [d.collection for d in registry.entities.all()],
        len(SEARCHES),
        len(PROJECTIONS),
    )
    return registry
