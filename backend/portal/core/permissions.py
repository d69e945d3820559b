"""
Permission Catalog
==================

Single source of truth for permission names.

Call sites reference ``Permissions.ANALYTICS_EXPORT`` instead of a string
literal; the seeders build the database catalog from ``PERMISSION_CATALOG``.
The registry in the database stays the authority at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PermissionSpec:
    name: str
    display_name: str
    description: str
    group: str


class Permissions:
    """Typed permission-name constants."""

    # Users
    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_UPDATE = "users.update"
    USERS_DELETE = "users.delete"
    USERS_MANAGE = "users.manage"

    # Roles
    ROLES_VIEW = "roles.view"
    ROLES_CREATE = "roles.create"
    ROLES_UPDATE = "roles.update"
    ROLES_DELETE = "roles.delete"
    ROLES_RESTORE = "roles.restore"
    ROLES_FORCE_DELETE = "roles.force_delete"
    ROLES_ASSIGN_PERMISSIONS = "roles.assign_permissions"

    # Permissions
    PERMISSIONS_VIEW = "permissions.view"
    PERMISSIONS_CREATE = "permissions.create"
    PERMISSIONS_UPDATE = "permissions.update"
    PERMISSIONS_DELETE = "permissions.delete"
    PERMISSIONS_RESTORE = "permissions.restore"
    PERMISSIONS_FORCE_DELETE = "permissions.force_delete"

    # User roles
    USER_ROLES_VIEW = "user_roles.view"
    USER_ROLES_ASSIGN = "user_roles.assign"
    USER_ROLES_REMOVE = "user_roles.remove"

    # Analytics
    ANALYTICS_VIEW = "analytics.view"
    ANALYTICS_CREATE = "analytics.create"
    ANALYTICS_UPDATE = "analytics.update"
    ANALYTICS_DELETE = "analytics.delete"
    ANALYTICS_EXPORT = "analytics.export"

    # Data
    DATA_VIEW = "data.view"
    DATA_IMPORT = "data.import"
    DATA_EXPORT = "data.export"
    DATA_MANAGE = "data.manage"

    # Administration
    ADMIN_VIEW = "admin.view"
    ADMIN_SETTINGS = "admin.settings"
    ADMIN_LOGS = "admin.logs"
    ADMIN_MAINTENANCE = "admin.maintenance"

    # Terms
    TERMS_VIEW = "terms.view"
    TERMS_MANAGE = "terms.manage"

    # IP blocks
    IP_BLOCKS_VIEW = "ip_blocks.view"
    IP_BLOCKS_MANAGE = "ip_blocks.manage"

    # Invitations
    INVITATIONS_VIEW = "invitations.view"
    INVITATIONS_SEND = "invitations.send"
    INVITATIONS_MANAGE = "invitations.manage"

    # Menus
    MENUS_VIEW = "menus.view"
    MENUS_CREATE = "menus.create"
    MENUS_UPDATE = "menus.update"
    MENUS_DELETE = "menus.delete"
    MENUS_MANAGE = "menus.manage"
    MENUS_REORDER = "menus.reorder"

    # Content
    CONTENT_VIEW = "content.view"
    CONTENT_CREATE = "content.create"
    CONTENT_UPDATE = "content.update"
    CONTENT_DELETE = "content.delete"
    CONTENT_MANAGE = "content.manage"
    CONTENT_PUBLISH = "content.publish"

    # Email templates
    EMAIL_TEMPLATES_VIEW = "email-templates.view"
    EMAIL_TEMPLATES_CREATE = "email-templates.create"
    EMAIL_TEMPLATES_UPDATE = "email-templates.update"
    EMAIL_TEMPLATES_DELETE = "email-templates.delete"


class SelfServiceActions:
    """
    Actions every authenticated identity may take, whatever its state.

    These stay available while a session is restricted to changing a
    temporary password or accepting new terms.
    """

    CHANGE_PASSWORD = "auth.change_password"
    ACCEPT_TERMS = "auth.accept_terms"
    LOGOUT = "auth.logout"

    ALL = frozenset({CHANGE_PASSWORD, ACCEPT_TERMS, LOGOUT})


# Only the top tier may grant or revoke these on a role.
TOP_TIER_ONLY_PERMISSIONS = frozenset({
    Permissions.ROLES_CREATE,
    Permissions.ROLES_DELETE,
    Permissions.USERS_DELETE,
    Permissions.PERMISSIONS_CREATE,
    Permissions.PERMISSIONS_DELETE,
    Permissions.ADMIN_SETTINGS,
    Permissions.ADMIN_MAINTENANCE,
})


def _spec(name: str, display_name: str, description: str) -> PermissionSpec:
    group = name.split(".", 1)[0].replace("-", "_")
    if group == "ip_blocks":
        group = "security"
    return PermissionSpec(name, display_name, description, group)


PERMISSION_CATALOG: tuple[PermissionSpec, ...] = (
    _spec(Permissions.USERS_VIEW, "View Users", "View user information and listings"),
    _spec(Permissions.USERS_CREATE, "Create Users", "Create new user accounts"),
    _spec(Permissions.USERS_UPDATE, "Update Users", "Update user information"),
    _spec(Permissions.USERS_DELETE, "Delete Users", "Delete user accounts"),
    _spec(Permissions.USERS_MANAGE, "Manage Users", "Full user management capabilities"),
    _spec(Permissions.ROLES_VIEW, "View Roles", "View role information and listings"),
    _spec(Permissions.ROLES_CREATE, "Create Roles", "Create new roles"),
    _spec(Permissions.ROLES_UPDATE, "Update Roles", "Update role information"),
    _spec(Permissions.ROLES_DELETE, "Delete Roles", "Delete roles"),
    _spec(Permissions.ROLES_RESTORE, "Restore Roles", "Restore deleted roles"),
    _spec(Permissions.ROLES_FORCE_DELETE, "Force Delete Roles", "Permanently delete roles"),
    _spec(Permissions.ROLES_ASSIGN_PERMISSIONS, "Assign Permissions to Roles", "Assign permissions to roles"),
    _spec(Permissions.PERMISSIONS_VIEW, "View Permissions", "View permission information and listings"),
    _spec(Permissions.PERMISSIONS_CREATE, "Create Permissions", "Create new permissions"),
    _spec(Permissions.PERMISSIONS_UPDATE, "Update Permissions", "Update permission information"),
    _spec(Permissions.PERMISSIONS_DELETE, "Delete Permissions", "Delete permissions"),
    _spec(Permissions.PERMISSIONS_RESTORE, "Restore Permissions", "Restore deleted permissions"),
    _spec(Permissions.PERMISSIONS_FORCE_DELETE, "Force Delete Permissions", "Permanently delete permissions"),
    _spec(Permissions.USER_ROLES_VIEW, "View User Roles", "View user role assignments"),
    _spec(Permissions.USER_ROLES_ASSIGN, "Assign User Roles", "Assign roles to users"),
    _spec(Permissions.USER_ROLES_REMOVE, "Remove User Roles", "Remove roles from users"),
    _spec(Permissions.ANALYTICS_VIEW, "View Analytics", "View analytics dashboards and reports"),
    _spec(Permissions.ANALYTICS_CREATE, "Create Analytics", "Create analytics reports and dashboards"),
    _spec(Permissions.ANALYTICS_UPDATE, "Update Analytics", "Update analytics reports and dashboards"),
    _spec(Permissions.ANALYTICS_DELETE, "Delete Analytics", "Delete analytics reports and dashboards"),
    _spec(Permissions.ANALYTICS_EXPORT, "Export Analytics", "Export analytics data and reports"),
    _spec(Permissions.DATA_VIEW, "View Data", "View raw data and datasets"),
    _spec(Permissions.DATA_IMPORT, "Import Data", "Import data into the system"),
    _spec(Permissions.DATA_EXPORT, "Export Data", "Export data from the system"),
    _spec(Permissions.DATA_MANAGE, "Manage Data", "Full data management capabilities"),
    _spec(Permissions.ADMIN_VIEW, "Admin Panel Access", "Access to admin panel"),
    _spec(Permissions.ADMIN_SETTINGS, "System Settings", "Manage system settings and configuration"),
    _spec(Permissions.ADMIN_LOGS, "View System Logs", "View system logs and audit trails"),
    _spec(Permissions.ADMIN_MAINTENANCE, "System Maintenance", "Perform system maintenance tasks"),
    _spec(Permissions.TERMS_VIEW, "View Terms", "View terms and conditions"),
    _spec(Permissions.TERMS_MANAGE, "Manage Terms", "Manage terms and conditions"),
    _spec(Permissions.IP_BLOCKS_VIEW, "View IP Blocks", "View IP block information"),
    _spec(Permissions.IP_BLOCKS_MANAGE, "Manage IP Blocks", "Manage IP blocks and security settings"),
    _spec(Permissions.INVITATIONS_VIEW, "View Invitations", "View user invitations"),
    _spec(Permissions.INVITATIONS_SEND, "Send Invitations", "Send user invitations"),
    _spec(Permissions.INVITATIONS_MANAGE, "Manage Invitations", "Full invitation management"),
    _spec(Permissions.MENUS_VIEW, "View Menus", "View menu items"),
    _spec(Permissions.MENUS_CREATE, "Create Menus", "Create new menu items"),
    _spec(Permissions.MENUS_UPDATE, "Update Menus", "Update menu items"),
    _spec(Permissions.MENUS_DELETE, "Delete Menus", "Delete menu items"),
    _spec(Permissions.MENUS_MANAGE, "Manage Menus", "Full menu management capabilities"),
    _spec(Permissions.MENUS_REORDER, "Reorder Menus", "Reorder menu items"),
    _spec(Permissions.CONTENT_VIEW, "View Content", "View content items"),
    _spec(Permissions.CONTENT_CREATE, "Create Content", "Create new content items"),
    _spec(Permissions.CONTENT_UPDATE, "Update Content", "Update content items"),
    _spec(Permissions.CONTENT_DELETE, "Delete Content", "Delete content items"),
    _spec(Permissions.CONTENT_MANAGE, "Manage Content", "Full content management capabilities"),
    _spec(Permissions.CONTENT_PUBLISH, "Publish Content", "Publish and unpublish content"),
    _spec(Permissions.EMAIL_TEMPLATES_VIEW, "View Email Templates", "View email templates"),
    _spec(Permissions.EMAIL_TEMPLATES_CREATE, "Create Email Templates", "Create new email templates"),
    _spec(Permissions.EMAIL_TEMPLATES_UPDATE, "Update Email Templates", "Update email templates"),
    _spec(Permissions.EMAIL_TEMPLATES_DELETE, "Delete Email Templates", "Delete email templates"),
)

PERMISSION_NAMES: tuple[str, ...] = tuple(spec.name for spec in PERMISSION_CATALOG)
