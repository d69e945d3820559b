"""
Permission Registry Service
===========================

Catalog of named, grouped capabilities.

Rules:
- Names are globally unique, soft-deleted rows included
- A name never changes once a role references it (rename = new permission)
- A referenced permission is never deleted
"""

import re
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.exceptions import (
    DuplicateNameError,
    PermissionInUseError,
    PermissionNotFoundError,
    ValidationError,
)
from portal.core.logging import get_logger
from portal.db.session import transaction
from portal.models.associations import role_has_permissions
from portal.models.permission import Permission

logger = get_logger(__name__)

PERMISSION_NAME_PATTERN = re.compile(r"^[a-z0-9_-]+(\.[a-z0-9_-]+)+$")


def validate_permission_name(name: str) -> str:
    if not PERMISSION_NAME_PATTERN.match(name):
        raise ValidationError(
            message="Permission names must be dotted lowercase identifiers, e.g. 'analytics.export'",
            details={"name": name},
        )
    return name


class PermissionRegistry:
    """
    Read and maintain the permission catalog.

    Usage:
        registry = PermissionRegistry(db)
        permissions = registry.find_by_names(["users.view", "roles.view"])
    """

    def __init__(self, db: Session):
        self.db = db

    def _active(self):
        return select(Permission).where(Permission.deleted_at.is_(None))

    # --------------------------
    # Lookups
    # --------------------------

    def list_all(self) -> List[Permission]:
        """Every active permission, ordered by group then name."""
        stmt = self._active().order_by(Permission.group, Permission.name)
        return list(self.db.scalars(stmt))

    def search(self, term: Optional[str] = None, group: Optional[str] = None) -> List[Permission]:
        """Filter active permissions by a free-text term and/or group."""
        stmt = self._active()
        if term:
            like = f"%{term.lower()}%"
            stmt = stmt.where(
                or_(
                    func.lower(Permission.name).like(like),
                    func.lower(Permission.display_name).like(like),
                    func.lower(Permission.description).like(like),
                )
            )
        if group:
            stmt = stmt.where(Permission.group == group)
        return list(self.db.scalars(stmt.order_by(Permission.group, Permission.name)))

    def groups(self) -> List[str]:
        stmt = (
            select(Permission.group)
            .where(Permission.deleted_at.is_(None), Permission.group.is_not(None))
            .distinct()
            .order_by(Permission.group)
        )
        return list(self.db.scalars(stmt))

    def get(self, permission_id: int) -> Permission:
        permission = self.db.scalars(self._active().where(Permission.id == permission_id)).first()
        if permission is None:
            raise PermissionNotFoundError([permission_id])
        return permission

    def get_by_name(self, name: str) -> Permission:
        permission = self.db.scalars(self._active().where(Permission.name == name)).first()
        if permission is None:
            raise PermissionNotFoundError([name])
        return permission

    def exists(self, name: str) -> bool:
        stmt = select(func.count()).select_from(Permission).where(
            Permission.name == name,
            Permission.deleted_at.is_(None),
        )
        return self.db.scalar(stmt) > 0

    def find_by_names(self, names: Iterable[str]) -> List[Permission]:
        """
        Resolve permission names.

        Raises:
            PermissionNotFoundError: listing every unknown name; nothing is returned
        """
        wanted = set(names)
        if not wanted:
            return []
        found = list(self.db.scalars(self._active().where(Permission.name.in_(wanted))))
        missing = wanted - {p.name for p in found}
        if missing:
            raise PermissionNotFoundError(missing)
        return found

    def find_by_ids(self, ids: Iterable[int]) -> List[Permission]:
        """
        Resolve permission ids.

        Raises:
            PermissionNotFoundError: listing every unknown id; nothing is returned
        """
        wanted = set(ids)
        if not wanted:
            return []
        found = list(self.db.scalars(self._active().where(Permission.id.in_(wanted))))
        missing = wanted - {p.id for p in found}
        if missing:
            raise PermissionNotFoundError(missing)
        return found

    def role_count(self, permission: Permission) -> int:
        stmt = select(func.count()).select_from(role_has_permissions).where(
            role_has_permissions.c.permission_id == permission.id
        )
        return self.db.scalar(stmt)

    # --------------------------
    # Mutations
    # --------------------------

    def create(
        self,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        group: Optional[str] = None,
    ) -> Permission:
        """
        Create a permission.

        Raises:
            DuplicateNameError: if the name exists, even soft-deleted
        """
        validate_permission_name(name)
        taken = self.db.scalar(select(func.count()).select_from(Permission).where(Permission.name == name))
        if taken:
            raise DuplicateNameError("Permission", name)

        permission = Permission(
            name=name,
            display_name=display_name,
            description=description,
            group=group,
        )
        try:
            with transaction(self.db):
                self.db.add(permission)
        except IntegrityError:
            # Lost a race with a concurrent create of the same name
            raise DuplicateNameError("Permission", name)
        logger.info("permission_created", permission=name, group=group)
        return permission

    def update(self, permission: Permission, **fields) -> Permission:
        """
        Update descriptive fields.

        Renaming is only allowed while no role references the permission.
        """
        new_name = fields.pop("name", None)
        if new_name is not None and new_name != permission.name:
            validate_permission_name(new_name)
            in_use = self.role_count(permission)
            if in_use:
                raise PermissionInUseError(permission.name, in_use)
            taken = self.db.scalar(
                select(func.count()).select_from(Permission).where(Permission.name == new_name)
            )
            if taken:
                raise DuplicateNameError("Permission", new_name)

        with transaction(self.db):
            if new_name is not None:
                permission.name = new_name
            for field in ("display_name", "description", "group"):
                if field in fields and fields[field] is not None:
                    setattr(permission, field, fields[field])
        return permission

    def delete(self, permission: Permission) -> None:
        """
        Soft-delete an unreferenced permission.

        Raises:
            PermissionInUseError: while any role references it
        """
        in_use = self.role_count(permission)
        if in_use:
            raise PermissionInUseError(permission.name, in_use)
        with transaction(self.db):
            permission.deleted_at = datetime.now(timezone.utc)
        logger.info("permission_deleted", permission=permission.name)
