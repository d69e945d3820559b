"""
Centralized Exception Handling Module
=====================================

Defines custom exception classes for the application.

Every exception carries a machine-readable ``reason`` so callers and the
audit log can tell exactly why an action was refused.

Usage:
    raise TierViolationError(role_name="super_admin")
    raise MissingPermissionError("analytics.export")
"""

from typing import Any, Dict, Iterable, Optional

from fastapi import status


class PortalException(Exception):
    """
    Base exception class for the access portal.

    All custom exceptions should inherit from this class.
    """

    reason = "error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# ==========================
# Authentication Exceptions
# ==========================

class AuthenticationError(PortalException):
    """Raised when authentication fails."""

    reason = "unauthenticated"

    def __init__(
        self,
        message: str = "Could not validate credentials",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_401_UNAUTHORIZED,
            details=details,
        )


class UnauthenticatedError(AuthenticationError):
    """Raised when a request carries no usable identity."""

    def __init__(self, message: str = "Not authenticated"):
        super().__init__(message=message)


class InvalidCredentialsError(AuthenticationError):
    """Raised when login credentials are invalid."""

    def __init__(self):
        super().__init__(message="Invalid email or password")


class TokenExpiredError(AuthenticationError):
    """Raised when a JWT token has expired."""

    def __init__(self, token_type: str = "access"):
        super().__init__(
            message=f"{token_type.capitalize()} token has expired",
            details={"token_type": token_type}
        )


class TokenInvalidError(AuthenticationError):
    """Raised when a JWT token is invalid."""

    def __init__(self, reason: str = "Invalid token"):
        super().__init__(
            message="Invalid token",
            details={"reason": reason}
        )


class TokenVersionMismatchError(AuthenticationError):
    """Raised when token version doesn't match user's current version."""

    def __init__(self):
        super().__init__(
            message="Token has been invalidated. Please log in again."
        )


class SessionExpiredError(AuthenticationError):
    """Raised when the session has been idle for too long."""

    def __init__(self, limit_minutes: int):
        super().__init__(
            message="Session expired due to inactivity. Please login again.",
            details={"inactivity_limit_minutes": limit_minutes},
        )


# ==========================
# Account Status Exceptions
# ==========================

class AccountError(PortalException):
    """Base exception for account-related issues."""

    reason = "account_unavailable"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_403_FORBIDDEN,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status_code,
            details=details,
        )


class AccountLockedError(AccountError):
    """Raised when account is locked due to failed attempts."""

    reason = "account_locked"

    def __init__(self):
        super().__init__(
            message="Account is locked due to multiple failed login attempts. "
                    "Please contact your administrator."
        )


class AccountDisabledError(AccountError):
    """Raised when account is disabled."""

    reason = "account_disabled"

    def __init__(self):
        super().__init__(
            message="Account has been disabled. Please contact your administrator."
        )


# ==========================
# Authorization Exceptions
# ==========================

class AuthorizationError(PortalException):
    """Raised when an identity may not perform an action."""

    reason = "forbidden"

    def __init__(
        self,
        message: str = "Insufficient permissions",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            details=details,
        )


class MissingPermissionError(AuthorizationError):
    """Raised when the identity lacks the required permission."""

    reason = "missing_permission"

    def __init__(self, permission: str):
        self.permission = permission
        super().__init__(
            message=f"Missing required permission: {permission}",
            details={"permission": permission},
        )


class TierViolationError(AuthorizationError):
    """Raised when an action reaches above the actor's tier."""

    reason = "tier_violation"

    def __init__(self, message: str = "This action exceeds your role tier", **details: Any):
        super().__init__(message=message, details=details)


class SystemRoleImmutableError(AuthorizationError):
    """Raised when a system role is edited outside the bootstrap path."""

    reason = "system_role_immutable"

    def __init__(self, role_name: Optional[str] = None):
        details = {"role": role_name} if role_name else {}
        super().__init__(
            message="System roles cannot be modified",
            details=details,
        )


class CredentialChangeRequiredError(AuthorizationError):
    """Raised when a temporary password must be changed first."""

    reason = "credential_change_required"

    def __init__(self):
        super().__init__(message="You must change your temporary password before continuing")


class TermsAcceptanceRequiredError(AuthorizationError):
    """Raised when the current terms must be accepted first."""

    reason = "terms_acceptance_required"

    def __init__(self, version: Optional[str] = None):
        super().__init__(
            message="You must accept the current terms and conditions before continuing",
            details={"terms_version": version} if version else {},
        )


# ==========================
# Resource Exceptions
# ==========================

class NotFoundError(PortalException):
    """Raised when a resource is not found."""

    reason = "not_found"

    def __init__(self, resource: str = "Resource", identifier: Optional[str] = None):
        message = f"{resource} not found"
        details = {"resource": resource}
        if identifier:
            details["identifier"] = identifier
        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            details=details,
        )


class UserNotFoundError(NotFoundError):
    """Raised when a user is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="User", identifier=identifier)


class RoleNotFoundError(NotFoundError):
    """Raised when a role is not found."""

    def __init__(self, identifier: Optional[str] = None):
        super().__init__(resource="Role", identifier=identifier)


class PermissionNotFoundError(NotFoundError):
    """Raised when one or more permissions are not found."""

    def __init__(self, missing: Iterable[Any]):
        self.missing = sorted(str(item) for item in missing)
        super().__init__(resource="Permission", identifier=", ".join(self.missing))
        self.details["missing"] = self.missing


class DuplicateNameError(PortalException):
    """Raised when a unique name is already taken."""

    reason = "duplicate_name"

    def __init__(self, resource: str, name: str):
        super().__init__(
            message=f"A {resource.lower()} named '{name}' already exists",
            status_code=status.HTTP_409_CONFLICT,
            details={"resource": resource, "name": name},
        )


class PermissionInUseError(PortalException):
    """Raised when a referenced permission would be deleted or renamed."""

    reason = "permission_in_use"

    def __init__(self, permission: str, role_count: int):
        super().__init__(
            message=f"Permission '{permission}' is assigned to {role_count} role(s). "
                    "Remove it from all roles first.",
            status_code=status.HTTP_409_CONFLICT,
            details={"permission": permission, "role_count": role_count},
        )


class AlreadyAssignedError(PortalException):
    """Raised when a user already holds the role."""

    reason = "already_assigned"

    def __init__(self, role_name: str):
        super().__init__(
            message="User already has this role",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"role": role_name},
        )


class NotAssignedError(PortalException):
    """Raised when removing a role the user does not hold."""

    reason = "not_assigned"

    def __init__(self, role_name: str):
        super().__init__(
            message="User does not have this role",
            status_code=status.HTTP_400_BAD_REQUEST,
            details={"role": role_name},
        )


# ==========================
# Validation Exceptions
# ==========================

class ValidationError(PortalException):
    """Raised when validation fails."""

    reason = "validation_error"

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


# ==========================
# Rate Limiting Exceptions
# ==========================

class RateLimitError(PortalException):
    """Raised when rate limit is exceeded."""

    reason = "rate_limited"

    def __init__(self, retry_after: int = 60):
        super().__init__(
            message="Too many requests. Please try again later.",
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            details={"retry_after_seconds": retry_after}
        )


# ==========================
# Helper Functions
# ==========================

def exception_to_payload(exc: PortalException) -> Dict[str, Any]:
    """Render the JSON error body used by the API."""
    return {
        "message": exc.message,
        "reason": exc.reason,
        "details": exc.details,
    }
