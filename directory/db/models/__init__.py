"""
SQLAlchemy models for the directory domain.

Exposes `Base`, `now_utc`, the association tables and all ORM classes.
"""

from .base import Base, now_utc  # re-export

from .associations import account_groups, group_roles
from .accounts import Account
from .groups import Group
from .roles import Role

__all__ = [
    # base
    "Base",
    "now_utc",
    # associations
    "account_groups",
    "group_roles",
    # entities
    "Account",
    "Group",
    "Role",
]
