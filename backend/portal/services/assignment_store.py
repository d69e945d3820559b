"""
User-Role Assignment Store
==========================

Many-to-many association between users and roles.

The store does not authorize anything; callers run the evaluator first.
Every mutation is a single transaction.
"""

from typing import Iterable, List, Set

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.exceptions import AlreadyAssignedError, NotAssignedError
from portal.core.logging import get_logger
from portal.db.session import transaction
from portal.models.associations import user_has_roles
from portal.models.role import Role
from portal.models.user import User

logger = get_logger(__name__)


class UserRoleStore:
    """
    Read and mutate user-role assignments.

    Usage:
        store = UserRoleStore(db)
        store.assign(user, viewer_role)
        store.has_role(user, "viewer")  # True
    """

    def __init__(self, db: Session):
        self.db = db

    # --------------------------
    # Reads
    # --------------------------

    def roles_of(self, user: User) -> List[Role]:
        """Active roles held by the user, ordered by name."""
        stmt = (
            select(Role)
            .join(user_has_roles, user_has_roles.c.role_id == Role.id)
            .where(user_has_roles.c.user_id == user.id, Role.deleted_at.is_(None))
            .order_by(Role.name)
        )
        return list(self.db.scalars(stmt))

    def has_role(self, user: User, role_name: str) -> bool:
        return any(role.name == role_name for role in self.roles_of(user))

    def users_with_role(self, role: Role) -> List[User]:
        stmt = (
            select(User)
            .join(user_has_roles, user_has_roles.c.user_id == User.id)
            .where(user_has_roles.c.role_id == role.id, User.deleted_at.is_(None))
            .order_by(User.id)
        )
        return list(self.db.scalars(stmt))

    def permissions_of(self, user: User) -> Set[str]:
        """
        Effective permission names: the union over every active role.

        Soft-deleted roles and permissions contribute nothing.
        """
        names: Set[str] = set()
        for role in self.roles_of(user):
            names |= role.permission_names
        return names

    def _holds(self, user: User, role: Role) -> bool:
        stmt = select(user_has_roles.c.role_id).where(
            user_has_roles.c.user_id == user.id,
            user_has_roles.c.role_id == role.id,
        )
        return self.db.execute(stmt).first() is not None

    # --------------------------
    # Mutations
    # --------------------------

    def assign(self, user: User, role: Role) -> None:
        """
        Attach a role to a user.

        Raises:
            AlreadyAssignedError: if the pair already exists
        """
        if self._holds(user, role):
            raise AlreadyAssignedError(role.name)
        try:
            with transaction(self.db):
                user.roles.append(role)
        except IntegrityError:
            # Another writer attached the same pair after the check
            raise AlreadyAssignedError(role.name)
        logger.info("role_assigned", user_id=user.id, role=role.name)

    def remove(self, user: User, role: Role) -> None:
        """
        Detach a role from a user.

        Raises:
            NotAssignedError: if the user does not hold the role
        """
        if not self._holds(user, role):
            raise NotAssignedError(role.name)
        with transaction(self.db):
            user.roles.remove(role)
        logger.info("role_removed", user_id=user.id, role=role.name)

    def sync_all(self, user: User, roles: Iterable[Role]) -> None:
        """
        Replace the user's active role set in one write.

        Links to soft-deleted roles are left alone so a restored role
        comes back for the users who held it.
        """
        unique = {role.id: role for role in roles}
        dormant = [role for role in user.roles if role.deleted_at is not None and role.id not in unique]
        with transaction(self.db):
            user.roles = sorted(list(unique.values()) + dormant, key=lambda r: r.name)
        logger.info("roles_synced", user_id=user.id, roles=sorted(r.name for r in unique.values()))
