"""
Identity Context
================

"Who is asking": the authenticated user plus the role set resolved for
this request.

Session states:
    UNAUTHENTICATED -> AUTHENTICATED -> REQUIRES_CREDENTIAL_CHANGE
                                     -> REQUIRES_TERMS_ACCEPTANCE
                                     -> FULLY_ACTIVE

An Identity memoizes its roles and permissions for its own lifetime only.
A new Identity is built for every request, so role or permission edits
apply on the next check.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import FrozenSet, List, Optional

from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import SessionExpiredError, UnauthenticatedError
from portal.core.logging import get_logger, security_logger, user_id_context
from portal.db.session import transaction
from portal.models.role import Role
from portal.models.terms import TermsAndConditions
from portal.models.tier import Tier, highest_tier
from portal.models.user import User
from portal.services.assignment_store import UserRoleStore
from portal.services.auth_service import AuthService

logger = get_logger(__name__)


class SessionState(str, Enum):
    UNAUTHENTICATED = "unauthenticated"
    AUTHENTICATED = "authenticated"
    REQUIRES_CREDENTIAL_CHANGE = "requires_credential_change"
    REQUIRES_TERMS_ACCEPTANCE = "requires_terms_acceptance"
    FULLY_ACTIVE = "fully_active"

    @property
    def is_restricted(self) -> bool:
        return self in (
            SessionState.REQUIRES_CREDENTIAL_CHANGE,
            SessionState.REQUIRES_TERMS_ACCEPTANCE,
        )


class Identity:
    """
    An authenticated principal.

    Args:
        user: The authenticated user
        store: Assignment store used to resolve roles
        current_terms_version: Version of the active terms, None if none are published
    """

    def __init__(
        self,
        user: User,
        store: UserRoleStore,
        current_terms_version: Optional[str] = None,
    ):
        self.user = user
        self.store = store
        self.current_terms_version = current_terms_version
        self._state = SessionState.AUTHENTICATED
        self._roles: Optional[List[Role]] = None
        self._permissions: Optional[FrozenSet[str]] = None

    def __repr__(self) -> str:
        return f"<Identity(user_id={self.user.id}, state={self.state.value})>"

    @property
    def user_id(self) -> int:
        return self.user.id

    def roles(self) -> List[Role]:
        if self._roles is None:
            self._roles = self.store.roles_of(self.user)
        return self._roles

    def role_names(self) -> List[str]:
        return [role.name for role in self.roles()]

    def effective_permissions(self) -> FrozenSet[str]:
        """Union of the permissions of every active role."""
        if self._permissions is None:
            names = set()
            for role in self.roles():
                names |= role.permission_names
            self._permissions = frozenset(names)
        return self._permissions

    @property
    def tier(self) -> Tier:
        return highest_tier(role.tier for role in self.roles())

    def is_top_tier(self) -> bool:
        return self.tier is Tier.TOP

    @property
    def requires_terms_acceptance(self) -> bool:
        return (
            self.current_terms_version is not None
            and self.user.terms_accepted_version != self.current_terms_version
        )

    @property
    def state(self) -> SessionState:
        if self._state is SessionState.AUTHENTICATED:
            if self.user.temporary_password_used:
                self._state = SessionState.REQUIRES_CREDENTIAL_CHANGE
            elif self.requires_terms_acceptance:
                self._state = SessionState.REQUIRES_TERMS_ACCEPTANCE
            else:
                self._state = SessionState.FULLY_ACTIVE
        return self._state

    def snapshot(self) -> dict:
        """
        Serializable view for frontend route guards.

        Advisory only; the evaluator stays the authority on every request.
        """
        return {
            "user": self.user.to_dict(),
            "roles": self.role_names(),
            "permissions": sorted(self.effective_permissions()),
            "tier": self.tier.value,
            "is_top_tier": self.is_top_tier(),
            "state": self.state.value,
            "requires_password_change": self.state is SessionState.REQUIRES_CREDENTIAL_CHANGE,
            "requires_terms_acceptance": self.requires_terms_acceptance,
            "current_terms_version": self.current_terms_version,
        }


class IdentityResolver:
    """
    Turn a bearer credential into an Identity.

    Usage:
        identity = IdentityResolver(db).resolve(token)
    """

    def __init__(self, db: Session):
        self.db = db
        self.auth = AuthService(db)
        self.store = UserRoleStore(db)

    def for_user(self, user: User) -> Identity:
        """Build an Identity for an already-authenticated user."""
        current = TermsAndConditions.get_current(self.db)
        return Identity(
            user=user,
            store=self.store,
            current_terms_version=current.version if current else None,
        )

    def resolve(self, token: Optional[str], now: Optional[datetime] = None) -> Identity:
        """
        Validate the access token and load the identity.

        Raises:
            UnauthenticatedError: no credential supplied
            TokenExpiredError, TokenInvalidError, TokenVersionMismatchError: bad token
            AccountLockedError, AccountDisabledError: unusable account
            SessionExpiredError: idle longer than INACTIVITY_LIMIT_MINUTES
        """
        if not token:
            raise UnauthenticatedError()

        user = self.auth.validate_access_token(token)
        now = now or datetime.now(timezone.utc)

        limit = settings.INACTIVITY_LIMIT_MINUTES
        if limit > 0 and user.is_inactive(limit, now=now):
            with transaction(self.db):
                user.invalidate_tokens()
            security_logger.log_session_expired(user_id=str(user.id))
            raise SessionExpiredError(limit)

        with transaction(self.db):
            user.touch(now)

        user_id_context.set(str(user.id))
        return self.for_user(user)
