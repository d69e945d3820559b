"""
Access Administration Service
=============================

Entry point for HTTP and CLI callers that change access control data.

Every operation follows the same shape:
1. Ask the evaluator, raise on denial
2. Validate and resolve inputs (nothing written yet)
3. Mutate through the registry or store in one transaction
4. Write an audit event
"""

from typing import Iterable, List, Optional

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from portal.core.exceptions import DuplicateNameError, UserNotFoundError
from portal.core.logging import audit_logger, get_logger
from portal.core.permissions import Permissions
from portal.db.session import transaction
from portal.models.permission import Permission
from portal.models.role import Role
from portal.models.user import User
from portal.services.assignment_store import UserRoleStore
from portal.services.auth_service import AuthService
from portal.services.authorization import AuthorizationEvaluator, RoleAction
from portal.services.identity import Identity
from portal.services.permission_registry import PermissionRegistry
from portal.services.role_registry import RoleRegistry

logger = get_logger(__name__)


class AccessAdminService:
    """
    Authorized access-control administration.

    Usage:
        admin = AccessAdminService(db)
        admin.assign_role(identity, user_id=7, role_id=3)
    """

    def __init__(self, db: Session, evaluator: Optional[AuthorizationEvaluator] = None):
        self.db = db
        self.evaluator = evaluator or AuthorizationEvaluator()
        self.permissions = PermissionRegistry(db)
        self.roles = RoleRegistry(db)
        self.store = UserRoleStore(db)

    @staticmethod
    def _actor(identity: Identity) -> str:
        return str(identity.user_id)

    def get_user(self, user_id: int) -> User:
        user = self.db.get(User, user_id)
        if user is None or user.is_deleted:
            raise UserNotFoundError(str(user_id))
        return user

    # ==========================
    # Permissions
    # ==========================

    def list_permissions(
        self,
        identity: Identity,
        search: Optional[str] = None,
        group: Optional[str] = None,
    ) -> List[Permission]:
        self.evaluator.require(identity, Permissions.PERMISSIONS_VIEW)
        return self.permissions.search(search, group)

    def permission_groups(self, identity: Identity) -> List[str]:
        self.evaluator.require(identity, Permissions.PERMISSIONS_VIEW)
        return self.permissions.groups()

    def get_permission(self, identity: Identity, permission_id: int) -> Permission:
        self.evaluator.require(identity, Permissions.PERMISSIONS_VIEW)
        return self.permissions.get(permission_id)

    def create_permission(
        self,
        identity: Identity,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        group: Optional[str] = None,
    ) -> Permission:
        self.evaluator.require(identity, Permissions.PERMISSIONS_CREATE)
        permission = self.permissions.create(name, display_name, description, group)
        audit_logger.log_action(
            self._actor(identity), "permission.create", "permission", str(permission.id), name=name
        )
        return permission

    def update_permission(self, identity: Identity, permission_id: int, **fields) -> Permission:
        self.evaluator.require(identity, Permissions.PERMISSIONS_UPDATE)
        permission = self.permissions.get(permission_id)
        self.permissions.update(permission, **fields)
        audit_logger.log_action(
            self._actor(identity), "permission.update", "permission", str(permission.id),
            **{k: v for k, v in fields.items() if v is not None},
        )
        return permission

    def delete_permission(self, identity: Identity, permission_id: int) -> None:
        self.evaluator.require(identity, Permissions.PERMISSIONS_DELETE)
        permission = self.permissions.get(permission_id)
        self.permissions.delete(permission)
        audit_logger.log_action(
            self._actor(identity), "permission.delete", "permission", str(permission_id), name=permission.name
        )

    # ==========================
    # Roles
    # ==========================

    def list_roles(
        self,
        identity: Identity,
        search: Optional[str] = None,
        include_deleted: bool = False,
    ) -> List[Role]:
        self.evaluator.require(identity, Permissions.ROLES_VIEW)
        return self.roles.list_all(search=search, include_deleted=include_deleted)

    def get_role(self, identity: Identity, role_id: int) -> Role:
        self.evaluator.require(identity, Permissions.ROLES_VIEW)
        return self.roles.get(role_id)

    def create_role(
        self,
        identity: Identity,
        name: str,
        display_name: str,
        description: Optional[str] = None,
        color: Optional[str] = None,
        is_system: bool = False,
        permission_ids: Iterable[int] = (),
    ) -> Role:
        """
        Create a role; granting restricted permissions or the system flag
        requires the top tier.
        """
        self.evaluator.require(identity, Permissions.ROLES_CREATE)
        permissions = self.permissions.find_by_ids(permission_ids)
        self.evaluator.check_role_creation(
            identity,
            is_system=is_system,
            permission_names=[p.name for p in permissions],
        ).raise_for_denial()

        role = self.roles.create(
            name=name,
            display_name=display_name,
            description=description,
            color=color,
            is_system=is_system,
            permission_ids=[p.id for p in permissions],
        )
        audit_logger.log_action(
            self._actor(identity), "role.create", "role", str(role.id),
            name=role.name, tier=role.tier.value, permissions=sorted(p.name for p in permissions),
        )
        return role

    def update_role(self, identity: Identity, role_id: int, **fields) -> Role:
        role = self.roles.get(role_id)
        self.evaluator.check_tier_action(identity, RoleAction.UPDATE, role).raise_for_denial()
        self.roles.update(role, **fields)
        audit_logger.log_action(
            self._actor(identity), "role.update", "role", str(role.id),
            **{k: v for k, v in fields.items() if v is not None},
        )
        return role

    def delete_role(self, identity: Identity, role_id: int) -> None:
        role = self.roles.get(role_id)
        self.evaluator.check_tier_action(identity, RoleAction.DELETE, role).raise_for_denial()
        self.roles.delete(role)
        audit_logger.log_action(self._actor(identity), "role.delete", "role", str(role_id), name=role.name)

    def restore_role(self, identity: Identity, role_id: int) -> Role:
        self.evaluator.require(identity, Permissions.ROLES_RESTORE)
        role = self.roles.get(role_id, include_deleted=True)
        self.roles.restore(role)
        audit_logger.log_action(self._actor(identity), "role.restore", "role", str(role_id), name=role.name)
        return role

    def sync_role_permissions(self, identity: Identity, role_id: int, permission_ids: Iterable[int]) -> Role:
        """
        Replace a role's permissions.

        Unknown ids reject the whole request; only the permissions that
        actually change are judged against the restricted set.
        """
        role = self.roles.get(role_id)
        self.evaluator.check_tier_action(identity, RoleAction.SYNC_PERMISSIONS, role).raise_for_denial()

        permissions = self.permissions.find_by_ids(permission_ids)
        before = role.permission_names
        after = {p.name for p in permissions}
        changed = before ^ after
        self.evaluator.check_permission_grant(identity, role, changed).raise_for_denial()

        self.roles.sync_permissions(role, [p.id for p in permissions])
        audit_logger.log_action(
            self._actor(identity), "role.sync_permissions", "role", str(role.id),
            added=sorted(after - before), removed=sorted(before - after),
        )
        return role

    # ==========================
    # User Roles
    # ==========================

    def user_roles(self, identity: Identity, user_id: int) -> List[Role]:
        """Users may always read their own roles; anyone else's needs ``user_roles.view``."""
        if identity is None or identity.user_id != user_id:
            self.evaluator.require(identity, Permissions.USER_ROLES_VIEW)
        return self.store.roles_of(self.get_user(user_id))

    def assign_role(self, identity: Identity, user_id: int, role_id: int) -> User:
        user = self.get_user(user_id)
        role = self.roles.get(role_id)
        self.evaluator.check_tier_action(identity, RoleAction.ASSIGN, role, user).raise_for_denial()
        self.store.assign(user, role)
        audit_logger.log_action(
            self._actor(identity), "user_role.assign", "user", str(user.id), role=role.name
        )
        return user

    def remove_role(self, identity: Identity, user_id: int, role_id: int) -> User:
        user = self.get_user(user_id)
        role = self.roles.get(role_id)
        self.evaluator.check_tier_action(identity, RoleAction.REMOVE, role, user).raise_for_denial()
        self.store.remove(user, role)
        audit_logger.log_action(
            self._actor(identity), "user_role.remove", "user", str(user.id), role=role.name
        )
        return user

    def sync_roles(self, identity: Identity, user_id: int, role_ids: Iterable[int]) -> User:
        user = self.get_user(user_id)
        roles = self.roles.find_by_ids(role_ids)
        self.evaluator.check_user_role_sync(identity, user, roles).raise_for_denial()
        self.store.sync_all(user, roles)
        audit_logger.log_action(
            self._actor(identity), "user_role.sync", "user", str(user.id),
            roles=sorted(role.name for role in roles),
        )
        return user

    # ==========================
    # Invitations
    # ==========================

    def invite_user(
        self,
        identity: Identity,
        name: str,
        email: str,
        temporary_password: str,
        role_ids: Iterable[int] = (),
    ) -> User:
        """
        Create a user on a temporary password with an initial role set.

        Every role is checked before anything is written; the user and
        their roles land in one transaction.
        """
        self.evaluator.require(identity, Permissions.INVITATIONS_SEND)

        email = email.lower()
        taken = self.db.scalar(select(func.count()).select_from(User).where(User.email == email))
        if taken:
            raise DuplicateNameError("User", email)

        roles = self.roles.find_by_ids(role_ids)
        for role in roles:
            self.evaluator.check_tier_action(identity, RoleAction.ASSIGN, role).raise_for_denial()

        user = User(
            name=name,
            email=email,
            hashed_password=AuthService.hash_password(temporary_password),
            temporary_password_used=True,
            invited_by_id=identity.user_id,
        )
        try:
            with transaction(self.db):
                user.roles = sorted(roles, key=lambda r: r.name)
                self.db.add(user)
        except IntegrityError:
            raise DuplicateNameError("User", email)

        audit_logger.log_action(
            self._actor(identity), "user.invite", "user", str(user.id),
            email=email, roles=sorted(role.name for role in roles),
        )
        return user

    # ==========================
    # Account Recovery
    # ==========================

    def unlock_user(self, identity: Identity, user_id: int) -> User:
        """
        Lift a login lockout and reset the failed-attempt counter.

        Unlocking an account that is not locked is a no-op.
        """
        self.evaluator.require(identity, Permissions.USERS_MANAGE)
        user = self.get_user(user_id)
        if not user.is_locked:
            return user

        with transaction(self.db):
            user.unlock_account()

        audit_logger.log_action(self._actor(identity), "user.unlock", "user", str(user.id))
        return user
