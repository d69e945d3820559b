"""
RBAC Join Tables
================

Many-to-many association tables.

Both tables use a composite primary key, so the same pair can never be
stored twice: a second assignment of the same pair fails at the database
even if the service-level check is bypassed.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Table
from sqlalchemy.sql import func

from portal.db.base import Base


role_has_permissions = Table(
    "role_has_permissions",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)


user_has_roles = Table(
    "user_has_roles",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)
