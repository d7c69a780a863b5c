"""
Association tables for the many-to-many relations.

Each table is the only storage of an edge; both navigation directions
(accounts.groups / groups.accounts and groups.roles / roles.groups) read it.
The models declare no ORM relationship collections, so edges are only ever
read and written through these tables.
"""
from sqlalchemy import Column, ForeignKey, Index, Table
from sqlalchemy.dialects.postgresql import UUID

from .base import Base


account_groups = Table(
    'account_groups',
    Base.metadata,
    Column('account_id', UUID(as_uuid=True), ForeignKey('accounts.id', ondelete='CASCADE'), primary_key=True),
    Column('group_id', UUID(as_uuid=True), ForeignKey('groups.id', ondelete='CASCADE'), primary_key=True),
    Index('idx_account_groups_group_id', 'group_id'),
)

group_roles = Table(
    'group_roles',
    Base.metadata,
    Column('group_id', UUID(as_uuid=True), ForeignKey('groups.id', ondelete='CASCADE'), primary_key=True),
    Column('role_id', UUID(as_uuid=True), ForeignKey('roles.id', ondelete='CASCADE'), primary_key=True),
    Index('idx_group_roles_role_id', 'role_id'),
)
