"""
Default role catalog.

Each entry is the role's attributes plus the permission names it starts
with. ``None`` means every permission in the catalog.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from portal.core.permissions import Permissions as P


@dataclass(frozen=True)
class RoleSpec:
    name: str
    display_name: str
    description: str
    color: str
    is_system: bool = False
    permissions: Optional[Tuple[str, ...]] = ()


ROLE_CATALOG: Tuple[RoleSpec, ...] = (
    RoleSpec(
        name="super_admin",
        display_name="Super Administrator",
        description="Full system access with all permissions",
        color="#DC2626",
        is_system=True,
        permissions=None,
    ),
    RoleSpec(
        name="admin",
        display_name="Administrator",
        description="Administrative access to manage users, roles and content",
        color="#EA580C",
        permissions=(
            P.USERS_VIEW, P.USERS_CREATE, P.USERS_UPDATE, P.USERS_MANAGE,
            P.ROLES_VIEW, P.ROLES_CREATE, P.ROLES_UPDATE, P.ROLES_ASSIGN_PERMISSIONS,
            P.PERMISSIONS_VIEW,
            P.USER_ROLES_VIEW, P.USER_ROLES_ASSIGN, P.USER_ROLES_REMOVE,
            P.ANALYTICS_VIEW, P.ANALYTICS_CREATE, P.ANALYTICS_UPDATE, P.ANALYTICS_DELETE, P.ANALYTICS_EXPORT,
            P.DATA_VIEW, P.DATA_IMPORT, P.DATA_EXPORT,
            P.ADMIN_VIEW, P.ADMIN_LOGS,
            P.TERMS_VIEW, P.TERMS_MANAGE,
            P.IP_BLOCKS_VIEW, P.IP_BLOCKS_MANAGE,
            P.INVITATIONS_VIEW, P.INVITATIONS_SEND, P.INVITATIONS_MANAGE,
        ),
    ),
    RoleSpec(
        name="manager",
        display_name="Manager",
        description="Manage analytics and view user information",
        color="#D97706",
        permissions=(
            P.USERS_VIEW,
            P.ANALYTICS_VIEW, P.ANALYTICS_CREATE, P.ANALYTICS_UPDATE, P.ANALYTICS_EXPORT,
            P.DATA_VIEW, P.DATA_EXPORT,
            P.ADMIN_VIEW,
            P.TERMS_VIEW,
        ),
    ),
    RoleSpec(
        name="analyst",
        display_name="Data Analyst",
        description="Create and analyze data reports",
        color="#059669",
        permissions=(
            P.ANALYTICS_VIEW, P.ANALYTICS_CREATE, P.ANALYTICS_EXPORT,
            P.DATA_VIEW, P.DATA_EXPORT,
            P.TERMS_VIEW,
        ),
    ),
    RoleSpec(
        name="viewer",
        display_name="Viewer",
        description="Read-only access to analytics and data",
        color="#0284C7",
        permissions=(P.ANALYTICS_VIEW, P.DATA_VIEW, P.TERMS_VIEW),
    ),
    RoleSpec(
        name="user",
        display_name="Regular User",
        description="Basic user access",
        color="#6366F1",
        permissions=(P.ANALYTICS_VIEW, P.TERMS_VIEW),
    ),
)
