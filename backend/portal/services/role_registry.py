"""
Role Registry Service
=====================

Named bundles of permissions.

Rules:
- Role names are unique, soft-deleted rows included
- The tier is computed once, at creation, from the configured tier names
- ``is_system`` roles are never updated, re-permissioned or deleted,
  except by a registry opened in bootstrap mode (seeders only)
- Permission syncs validate every id before writing anything
"""

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.exceptions import (
    DuplicateNameError,
    RoleNotFoundError,
    SystemRoleImmutableError,
    ValidationError,
)
from portal.core.logging import get_logger
from portal.db.session import transaction
from portal.models.permission import Permission
from portal.models.role import Role
from portal.models.tier import tier_for_role_name
from portal.services.permission_registry import PermissionRegistry

logger = get_logger(__name__)

ROLE_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+$")
COLOR_PATTERN = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
DEFAULT_COLOR = "#6366F1"

UPDATABLE_FIELDS = ("display_name", "description", "color")


def validate_role_fields(name: Optional[str] = None, color: Optional[str] = None) -> None:
    """
    Validate role name and color formats.

    Raises:
        ValidationError: on the first bad field
    """
    if name is not None and not ROLE_NAME_PATTERN.match(name):
        raise ValidationError(
            message="Role name may only contain lowercase letters, numbers, hyphens, and underscores",
            details={"name": name},
        )
    if color is not None and not COLOR_PATTERN.match(color):
        raise ValidationError(
            message="Color must be a valid hex color code",
            details={"color": color},
        )


class RoleRegistry:
    """
    Create, read and mutate roles.

    Args:
        db: Database session
        bootstrap: Allow mutation of system roles. Only the seeders open
            a registry this way.
    """

    def __init__(self, db: Session, bootstrap: bool = False):
        self.db = db
        self.bootstrap = bootstrap
        self.permissions = PermissionRegistry(db)

    def _guard_system(self, role: Role) -> None:
        if role.is_system and not self.bootstrap:
            raise SystemRoleImmutableError(role.name)

    # --------------------------
    # Lookups
    # --------------------------

    def list_all(self, search: Optional[str] = None, include_deleted: bool = False) -> List[Role]:
        stmt = select(Role)
        if not include_deleted:
            stmt = stmt.where(Role.deleted_at.is_(None))
        if search:
            like = f"%{search.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Role.name).like(like),
                    func.lower(Role.display_name).like(like),
                    func.lower(Role.description).like(like),
                )
            )
        return list(self.db.scalars(stmt.order_by(Role.name)))

    def get(self, role_id: int, include_deleted: bool = False) -> Role:
        stmt = select(Role).where(Role.id == role_id)
        if not include_deleted:
            stmt = stmt.where(Role.deleted_at.is_(None))
        role = self.db.scalars(stmt).first()
        if role is None:
            raise RoleNotFoundError(str(role_id))
        return role

    def get_by_name(self, name: str) -> Role:
        stmt = select(Role).where(Role.name == name, Role.deleted_at.is_(None))
        role = self.db.scalars(stmt).first()
        if role is None:
            raise RoleNotFoundError(name)
        return role

    def find_by_ids(self, ids: Iterable[int]) -> List[Role]:
        """
        Resolve role ids, rejecting the whole request if any is unknown.

        Raises:
            RoleNotFoundError: naming every missing id
        """
        wanted = set(ids)
        if not wanted:
            return []
        stmt = select(Role).where(Role.id.in_(wanted), Role.deleted_at.is_(None))
        found = list(self.db.scalars(stmt))
        missing = wanted - {role.id for role in found}
        if missing:
            raise RoleNotFoundError(", ".join(str(i) for i in sorted(missing)))
        return found

    # --------------------------
    # Mutations
    # --------------------------

    def create(
        self,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        is_system: bool = False,
        permission_ids: Optional[Iterable[int]] = None,
    ) -> Role:
        """
        Create a role and optionally attach permissions.

        Raises:
            ValidationError: bad name or color
            DuplicateNameError: name already used, even by a soft-deleted role
            PermissionNotFoundError: an attached permission id is unknown
        """
        color = color or DEFAULT_COLOR
        validate_role_fields(name=name, color=color)

        taken = self.db.scalar(select(func.count()).select_from(Role).where(Role.name == name))
        if taken:
            raise DuplicateNameError("Role", name)

        permissions = self.permissions.find_by_ids(permission_ids or [])

        role = Role(
            name=name,
            display_name=display_name,
            description=description,
            color=color,
            is_system=is_system,
            tier=tier_for_role_name(name),
        )
        try:
            with transaction(self.db):
                role.permissions = permissions
                self.db.add(role)
        except IntegrityError:
            # Lost a race with a concurrent create of the same name
            raise DuplicateNameError("Role", name)

        logger.info("role_created", role=name, tier=role.tier.value, is_system=is_system)
        return role

    def update(self, role: Role, **fields) -> Role:
        """
        Update descriptive fields. The name and tier never change.

        Raises:
            SystemRoleImmutableError: for system roles outside bootstrap
        """
        self._guard_system(role)
        validate_role_fields(color=fields.get("color"))

        with transaction(self.db):
            for field in UPDATABLE_FIELDS:
                if fields.get(field) is not None:
                    setattr(role, field, fields[field])
        return role

    def sync_permissions(self, role: Role, permission_ids: Iterable[int]) -> Role:
        """
        Replace the role's full permission set.

        Every id is validated before anything is written.

        Raises:
            SystemRoleImmutableError: for system roles outside bootstrap
            PermissionNotFoundError: listing every unknown id
        """
        self._guard_system(role)
        permissions = self.permissions.find_by_ids(permission_ids)

        with transaction(self.db):
            role.permissions = sorted(permissions, key=lambda p: p.name)

        logger.info("role_permissions_synced", role=role.name, count=len(permissions))
        return role

    def assign_permission(self, role: Role, permission: Permission) -> Role:
        self._guard_system(role)
        if permission not in role.permissions:
            with transaction(self.db):
                role.permissions.append(permission)
        return role

    def remove_permission(self, role: Role, permission: Permission) -> Role:
        self._guard_system(role)
        if permission in role.permissions:
            with transaction(self.db):
                role.permissions.remove(permission)
        return role

    def delete(self, role: Role) -> None:
        """
        Soft-delete a role.

        Assigned roles may be deleted; a deleted role stops contributing
        permissions immediately.
        """
        self._guard_system(role)
        with transaction(self.db):
            role.deleted_at = datetime.now(timezone.utc)
        logger.info("role_deleted", role=role.name)

    def restore(self, role: Role) -> Role:
        with transaction(self.db):
            role.deleted_at = None
        logger.info("role_restored", role=role.name)
        return role
