"""
Pydantic request schemas, one module per entity.

Responses are rendered by the projection engine, so only the write-side
payloads (full create/replace, partial update, relation attach) are modelled
here.
"""

from .accounts import AccountBase, AccountCreate, AccountUpdate
from .groups import GroupBase, GroupCreate, GroupUpdate
from .roles import RoleBase, RoleCreate, RoleUpdate
from .links import RelationTarget

__all__ = [
    "AccountBase",
    "AccountCreate",
    "AccountUpdate",
    "GroupBase",
    "GroupCreate",
    "GroupUpdate",
    "RoleBase",
    "RoleCreate",
    "RoleUpdate",
    "RelationTarget",
]
