"""
Model Package Initialization
============================

Ensures models are properly registered when imported by the application.

All SQLAlchemy ORM models are exported from this module.

Usage:
    from portal.models import User, Role, Permission, Tier
"""

from .associations import role_has_permissions, user_has_roles
from .permission import Permission
from .role import Role
from .terms import TermsAndConditions
from .tier import Tier
from .user import User

__all__ = [
    "Permission",
    "Role",
    "TermsAndConditions",
    "Tier",
    "User",
    "role_has_permissions",
    "user_has_roles",
]
