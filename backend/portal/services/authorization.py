"""
Authorization Evaluator
=======================

The decision function behind every admin action.

Two families of checks:
- Permission gate: may this identity perform capability X?
- Tier protection: may this identity assign, remove, sync, edit or
  delete role R, optionally on target user U?

Evaluation order for every check:
1. No identity                   -> UNAUTHENTICATED
2. Restricted session state      -> CREDENTIAL_CHANGE_REQUIRED / TERMS_ACCEPTANCE_REQUIRED
   (self-service actions pass)
3. Tier and system-role rules    -> TIER_VIOLATION / SYSTEM_ROLE_IMMUTABLE
4. Top tier                      -> allowed
5. Base permission in effective set, otherwise MISSING_PERMISSION

The evaluator holds no state; it reads roles and permissions already
loaded on the identity and the target user. Every denial is logged.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, Optional

from portal.core.exceptions import (
    CredentialChangeRequiredError,
    MissingPermissionError,
    SystemRoleImmutableError,
    TermsAcceptanceRequiredError,
    TierViolationError,
    UnauthenticatedError,
)
from portal.core.logging import security_logger
from portal.core.permissions import (
    Permissions,
    SelfServiceActions,
    TOP_TIER_ONLY_PERMISSIONS,
)
from portal.models.role import Role
from portal.models.tier import Tier, highest_tier
from portal.models.user import User
from portal.services.identity import Identity, SessionState


class DenialReason(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    MISSING_PERMISSION = "missing_permission"
    TIER_VIOLATION = "tier_violation"
    SYSTEM_ROLE_IMMUTABLE = "system_role_immutable"
    CREDENTIAL_CHANGE_REQUIRED = "credential_change_required"
    TERMS_ACCEPTANCE_REQUIRED = "terms_acceptance_required"


class RoleAction(str, Enum):
    """Role operations subject to tier protection."""

    ASSIGN = "assign"
    REMOVE = "remove"
    SYNC = "sync"
    UPDATE = "update"
    DELETE = "delete"
    SYNC_PERMISSIONS = "sync_permissions"

    @property
    def base_permission(self) -> str:
        return _BASE_PERMISSIONS[self]

    @property
    def is_assignment(self) -> bool:
        """True for user-role changes, False for edits of the role itself."""
        return self in (RoleAction.ASSIGN, RoleAction.REMOVE, RoleAction.SYNC)


_BASE_PERMISSIONS = {
    RoleAction.ASSIGN: Permissions.USER_ROLES_ASSIGN,
    RoleAction.REMOVE: Permissions.USER_ROLES_REMOVE,
    RoleAction.SYNC: Permissions.USER_ROLES_ASSIGN,
    RoleAction.UPDATE: Permissions.ROLES_UPDATE,
    RoleAction.DELETE: Permissions.ROLES_DELETE,
    RoleAction.SYNC_PERMISSIONS: Permissions.ROLES_ASSIGN_PERMISSIONS,
}


@dataclass(frozen=True)
class Decision:
    """
    Binary outcome of a check.

    A denial always carries a reason; ``details`` holds whatever the
    caller needs to render it (missing permission, offending role).
    """

    allowed: bool
    reason: Optional[DenialReason] = None
    message: str = ""
    details: Dict[str, Any] = field(default_factory=dict)

    def __bool__(self) -> bool:
        return self.allowed

    @classmethod
    def allow(cls) -> "Decision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: DenialReason, message: str, **details: Any) -> "Decision":
        return cls(allowed=False, reason=reason, message=message, details=details)

    def raise_for_denial(self) -> None:
        """
        Raise the exception matching the denial reason.

        Does nothing for an allowed decision.
        """
        if self.allowed:
            return

        if self.reason is DenialReason.UNAUTHENTICATED:
            raise UnauthenticatedError(self.message)
        if self.reason is DenialReason.MISSING_PERMISSION:
            raise MissingPermissionError(self.details["permission"])
        if self.reason is DenialReason.SYSTEM_ROLE_IMMUTABLE:
            raise SystemRoleImmutableError(self.details.get("role"))
        if self.reason is DenialReason.CREDENTIAL_CHANGE_REQUIRED:
            raise CredentialChangeRequiredError()
        if self.reason is DenialReason.TERMS_ACCEPTANCE_REQUIRED:
            raise TermsAcceptanceRequiredError(self.details.get("terms_version"))
        raise TierViolationError(message=self.message, **self.details)


def user_tier(user: User) -> Tier:
    """Highest tier among the user's active roles."""
    return highest_tier(role.tier for role in user.roles if role.deleted_at is None)


class AuthorizationEvaluator:
    """
    Stateless authorization decisions.

    Usage:
        evaluator = AuthorizationEvaluator()
        evaluator.check(identity, Permissions.ANALYTICS_EXPORT).raise_for_denial()
    """

    # --------------------------
    # Internals
    # --------------------------

    @staticmethod
    def _deny(
        identity: Optional[Identity],
        action: str,
        reason: DenialReason,
        message: str,
        target: Optional[str] = None,
        **details: Any,
    ) -> Decision:
        security_logger.log_authorization_denied(
            user_id=str(identity.user_id) if identity else None,
            action=action,
            reason=reason.value,
            target=target,
            **details,
        )
        return Decision.deny(reason, message, **details)

    def _gate(self, identity: Optional[Identity], action: str) -> Optional[Decision]:
        """Unauthenticated and restricted-state short-circuit."""
        if identity is None:
            return self._deny(None, action, DenialReason.UNAUTHENTICATED, "Not authenticated")

        if action in SelfServiceActions.ALL:
            return None

        state = identity.state
        if state is SessionState.REQUIRES_CREDENTIAL_CHANGE:
            return self._deny(
                identity,
                action,
                DenialReason.CREDENTIAL_CHANGE_REQUIRED,
                "You must change your temporary password before continuing",
            )
        if state is SessionState.REQUIRES_TERMS_ACCEPTANCE:
            return self._deny(
                identity,
                action,
                DenialReason.TERMS_ACCEPTANCE_REQUIRED,
                "You must accept the current terms and conditions before continuing",
                terms_version=identity.current_terms_version,
            )
        return None

    # --------------------------
    # Permission Gate
    # --------------------------

    def check(self, identity: Optional[Identity], permission: str) -> Decision:
        """
        May ``identity`` perform ``permission``?

        The top tier passes every permission gate, including names that
        no role carries.
        """
        gated = self._gate(identity, permission)
        if gated is not None:
            return gated

        if permission in SelfServiceActions.ALL or identity.is_top_tier():
            return Decision.allow()

        if permission in identity.effective_permissions():
            return Decision.allow()

        return self._deny(
            identity,
            permission,
            DenialReason.MISSING_PERMISSION,
            f"Missing required permission: {permission}",
            permission=permission,
        )

    def require(self, identity: Optional[Identity], permission: str) -> Identity:
        """Check and raise on denial; returns the identity for chaining."""
        self.check(identity, permission).raise_for_denial()
        return identity

    # --------------------------
    # Tier Protection
    # --------------------------

    def check_tier_action(
        self,
        identity: Optional[Identity],
        action: RoleAction,
        target_role: Role,
        target_user: Optional[User] = None,
    ) -> Decision:
        """
        May ``identity`` perform ``action`` on ``target_role``?

        For assignment actions ``target_user`` is the user whose roles change.
        """
        label = f"roles.{action.value}"
        gated = self._gate(identity, label)
        if gated is not None:
            return gated

        if action.is_assignment:
            return self._check_assignment(identity, action, [target_role], target_user)

        if target_role.is_system:
            return self._deny(
                identity,
                label,
                DenialReason.SYSTEM_ROLE_IMMUTABLE,
                "System roles cannot be modified",
                target=target_role.name,
                role=target_role.name,
            )

        if target_role.tier.is_protected and not identity.is_top_tier():
            return self._deny(
                identity,
                label,
                DenialReason.TIER_VIOLATION,
                "Only the top tier can modify this role",
                target=target_role.name,
                role=target_role.name,
                role_tier=target_role.tier.value,
            )

        return self.check(identity, action.base_permission)

    def check_user_role_sync(
        self,
        identity: Optional[Identity],
        target_user: User,
        new_roles: Iterable[Role],
    ) -> Decision:
        """
        May ``identity`` replace ``target_user``'s roles with ``new_roles``?

        Only the roles that would actually be added or removed are judged.
        """
        gated = self._gate(identity, "roles.sync")
        if gated is not None:
            return gated

        current = {role.id: role for role in target_user.roles if role.deleted_at is None}
        wanted = {role.id: role for role in new_roles}
        changed = [wanted[i] for i in wanted.keys() - current.keys()]
        changed += [current[i] for i in current.keys() - wanted.keys()]
        return self._check_assignment(identity, RoleAction.SYNC, changed, target_user)

    def _check_assignment(
        self,
        identity: Identity,
        action: RoleAction,
        roles: Iterable[Role],
        target_user: Optional[User],
    ) -> Decision:
        label = f"roles.{action.value}"
        if identity.is_top_tier():
            return Decision.allow()

        if identity.tier is Tier.STANDARD:
            return self._deny(
                identity,
                label,
                DenialReason.TIER_VIOLATION,
                "Your role tier cannot change role assignments",
                actor_tier=identity.tier.value,
            )

        for role in roles:
            if role.tier.is_protected:
                return self._deny(
                    identity,
                    label,
                    DenialReason.TIER_VIOLATION,
                    "Only the top tier can grant or revoke this role",
                    target=role.name,
                    role=role.name,
                    role_tier=role.tier.value,
                )

        if target_user is not None and user_tier(target_user).is_protected:
            return self._deny(
                identity,
                label,
                DenialReason.TIER_VIOLATION,
                "Only the top tier can change the roles of this user",
                target=f"user:{target_user.id}",
                target_user_id=target_user.id,
            )

        return self.check(identity, action.base_permission)

    # --------------------------
    # Role Grants & Creation
    # --------------------------

    def _restricted_grants(self, identity: Identity, label: str, names: Iterable[str]) -> Optional[Decision]:
        restricted = sorted(set(names) & TOP_TIER_ONLY_PERMISSIONS)
        if restricted and not identity.is_top_tier():
            return self._deny(
                identity,
                label,
                DenialReason.TIER_VIOLATION,
                "Only the top tier can grant or revoke these permissions",
                permissions=restricted,
            )
        return None

    def check_permission_grant(
        self,
        identity: Optional[Identity],
        role: Role,
        changed_permission_names: Iterable[str],
    ) -> Decision:
        """
        May ``identity`` add or remove ``changed_permission_names`` on ``role``?
        """
        decision = self.check_tier_action(identity, RoleAction.SYNC_PERMISSIONS, role)
        if not decision:
            return decision
        restricted = self._restricted_grants(identity, "roles.sync_permissions", changed_permission_names)
        if restricted is not None:
            return restricted
        return decision

    def check_role_creation(
        self,
        identity: Optional[Identity],
        is_system: bool = False,
        permission_names: Iterable[str] = (),
    ) -> Decision:
        """
        May ``identity`` create a role with these attributes?
        """
        decision = self.check(identity, Permissions.ROLES_CREATE)
        if not decision:
            return decision

        if is_system and not identity.is_top_tier():
            return self._deny(
                identity,
                Permissions.ROLES_CREATE,
                DenialReason.TIER_VIOLATION,
                "Only the top tier can create system roles",
            )

        restricted = self._restricted_grants(identity, Permissions.ROLES_CREATE, permission_names)
        if restricted is not None:
            return restricted
        return decision
