"""
Authentication Service Module
=============================

Consolidated authentication service handling:
- Password hashing using Argon2
- JWT Access & Refresh token creation with type discrimination
- Token decoding and validation
- Token version tracking for forced logout
- Account lockout management
- Temporary-password change and terms acceptance

Security Features:
- Argon2id password hashing (memory-hard, resistant to GPU attacks)
- Token type discrimination (access vs refresh)
- Issuer and audience validation
- Token version for revocation support
"""

from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

from argon2 import PasswordHasher
from argon2.exceptions import Argon2Error, InvalidHashError, VerifyMismatchError
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy import select
from sqlalchemy.orm import Session

from portal.core.config import settings
from portal.core.exceptions import (
    AccountDisabledError,
    AccountLockedError,
    InvalidCredentialsError,
    TokenExpiredError,
    TokenInvalidError,
    TokenVersionMismatchError,
    ValidationError,
)
from portal.core.logging import get_logger, security_logger
from portal.db.session import transaction
from portal.models.terms import TermsAndConditions
from portal.models.user import User

# Initialize logger
logger = get_logger(__name__)


# ==========================
# Password Hasher Configuration
# ==========================

# Argon2id parameters:
# - time_cost: Number of iterations
# - memory_cost: Memory in KiB
# - parallelism: Number of parallel threads
ph = PasswordHasher(
    time_cost=3,
    memory_cost=65536,
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


# ==========================
# Token Types
# ==========================

class TokenType:
    """Token type constants for discrimination."""
    ACCESS = "access"
    REFRESH = "refresh"


# ==========================
# Auth Service Class
# ==========================

class AuthService:
    """
    Authentication service handling all auth-related operations.

    Usage:
        auth_service = AuthService(db)
        user, tokens = auth_service.authenticate_user(email, password)
    """

    def __init__(self, db: Session):
        """
        Initialize auth service with database session.

        Args:
            db: SQLAlchemy session
        """
        self.db = db

    # --------------------------
    # Password Utilities
    # --------------------------

    @staticmethod
    def hash_password(password: str) -> str:
        """
        Hash a password using Argon2id.

        Args:
            password: Plain text password

        Returns:
            Hashed password string
        """
        return ph.hash(password)

    @staticmethod
    def verify_password(plain_password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Args:
            plain_password: Password to verify
            hashed_password: Stored hash from database

        Returns:
            True if password matches, False otherwise
        """
        try:
            ph.verify(hashed_password, plain_password)
            return True
        except VerifyMismatchError:
            return False
        except (Argon2Error, InvalidHashError) as e:
            logger.warning("password_verification_error", error=str(e))
            return False

    # --------------------------
    # Token Creation
    # --------------------------

    @staticmethod
    def _create_token(
        user_id: int,
        token_version: int,
        token_type: str,
        expires_delta: timedelta,
    ) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "token_version": token_version,
            "type": token_type,
            "exp": now + expires_delta,
            "iat": now,
            "iss": settings.ISSUER,
            "aud": settings.AUDIENCE,
        }
        return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    @staticmethod
    def create_access_token(
        user_id: int,
        token_version: int,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a JWT access token.

        Args:
            user_id: User's id
            token_version: Current token version for revocation
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT access token
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        return AuthService._create_token(user_id, token_version, TokenType.ACCESS, expires_delta)

    @staticmethod
    def create_refresh_token(
        user_id: int,
        token_version: int,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a JWT refresh token.

        Args:
            user_id: User's id
            token_version: Current token version for revocation
            expires_delta: Custom expiration time

        Returns:
            Encoded JWT refresh token
        """
        if expires_delta is None:
            expires_delta = timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        return AuthService._create_token(user_id, token_version, TokenType.REFRESH, expires_delta)

    # --------------------------
    # Token Decoding & Validation
    # --------------------------

    @staticmethod
    def decode_token(token: str, expected_type: Optional[str] = None) -> dict:
        """
        Decode and validate a JWT token.

        Args:
            token: JWT token string
            expected_type: Expected token type (access/refresh)

        Returns:
            Decoded token payload

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid
        """
        try:
            payload = jwt.decode(
                token,
                settings.SECRET_KEY,
                algorithms=[settings.ALGORITHM],
                issuer=settings.ISSUER,
                audience=settings.AUDIENCE,
            )
        except ExpiredSignatureError:
            raise TokenExpiredError(token_type=expected_type or "unknown")
        except JWTError as e:
            logger.warning("token_decode_error", error=str(e))
            raise TokenInvalidError(reason=str(e))

        if expected_type and payload.get("type") != expected_type:
            raise TokenInvalidError(
                reason=f"Expected {expected_type} token, got {payload.get('type')}"
            )
        return payload

    def _user_from_payload(self, payload: dict) -> User:
        user_id = payload.get("sub")
        token_version = payload.get("token_version")

        if not user_id or token_version is None:
            raise TokenInvalidError(reason="Invalid token payload")

        try:
            user_pk = int(user_id)
        except ValueError:
            raise TokenInvalidError(reason="Invalid user ID format")

        user = self.db.get(User, user_pk)
        if not user or user.is_deleted:
            raise TokenInvalidError(reason="User not found")

        if user.token_version != token_version:
            security_logger.log_token_invalid(reason="token_version_mismatch")
            raise TokenVersionMismatchError()

        if user.is_locked:
            raise AccountLockedError()

        if not user.is_active:
            raise AccountDisabledError()

        return user

    # --------------------------
    # Token Generator Wrapper
    # --------------------------

    def get_tokens_for_user(self, user: User) -> dict:
        """
        Generate access and refresh tokens for a user.

        Returns:
            Dictionary with access_token, refresh_token, token_type, and expires_in
        """
        return {
            "access_token": self.create_access_token(user.id, user.token_version),
            "refresh_token": self.create_refresh_token(user.id, user.token_version),
            "token_type": "bearer",
            "expires_in": settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        }

    # --------------------------
    # Authentication Methods
    # --------------------------

    def authenticate_user(
        self,
        email: str,
        password: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Tuple[User, dict]:
        """
        Authenticate a user with email and password.

        Args:
            email: User's email
            password: User's password
            ip_address: Client IP for logging
            user_agent: Client user agent for logging

        Returns:
            Tuple of (User, tokens dict)

        Raises:
            InvalidCredentialsError: If credentials are invalid
            AccountLockedError: If account is locked
            AccountDisabledError: If account is disabled
        """
        ip_address = ip_address or "unknown"
        stmt = select(User).where(User.email == email.lower(), User.deleted_at.is_(None))
        user = self.db.scalars(stmt).first()

        if not user:
            security_logger.log_login_failure(email=email, ip_address=ip_address, reason="user_not_found")
            raise InvalidCredentialsError()

        if user.is_locked:
            security_logger.log_login_failure(email=email, ip_address=ip_address, reason="account_locked")
            raise AccountLockedError()

        if not user.is_active:
            security_logger.log_login_failure(email=email, ip_address=ip_address, reason="account_disabled")
            raise AccountDisabledError()

        if not self.verify_password(password, user.hashed_password):
            with transaction(self.db):
                locked = user.increment_failed_attempts(settings.MAX_LOGIN_ATTEMPTS)
            if locked:
                security_logger.log_account_locked(user_id=str(user.id), ip_address=ip_address)
            security_logger.log_login_failure(email=email, ip_address=ip_address, reason="invalid_password")
            raise InvalidCredentialsError()

        # Reset failed attempts and start the activity clock
        with transaction(self.db):
            user.failed_attempts = 0
            user.touch()

        tokens = self.get_tokens_for_user(user)

        security_logger.log_login_success(
            user_id=str(user.id),
            ip_address=ip_address,
            user_agent=user_agent or "unknown",
        )
        return user, tokens

    def refresh_tokens(self, refresh_token: str) -> dict:
        """
        Refresh access token using a valid refresh token.

        Raises:
            TokenInvalidError: If token is invalid
            TokenVersionMismatchError: If token version doesn't match
            AccountLockedError: If account is locked
            AccountDisabledError: If account is disabled
        """
        payload = self.decode_token(refresh_token, expected_type=TokenType.REFRESH)
        user = self._user_from_payload(payload)

        with transaction(self.db):
            user.touch()

        security_logger.log_token_refresh(user_id=str(user.id))
        return self.get_tokens_for_user(user)

    def logout(self, user: User) -> None:
        """Logout user by invalidating all tokens."""
        with transaction(self.db):
            user.invalidate_tokens()
        security_logger.log_logout(user_id=str(user.id))

    def validate_access_token(self, token: str) -> User:
        """
        Validate an access token and return the user.

        Raises:
            TokenExpiredError: If token has expired
            TokenInvalidError: If token is invalid
            TokenVersionMismatchError: If token version doesn't match
            AccountLockedError: If account is locked
            AccountDisabledError: If account is disabled
        """
        payload = self.decode_token(token, expected_type=TokenType.ACCESS)
        return self._user_from_payload(payload)

    # --------------------------
    # Session Gates
    # --------------------------

    def change_password(
        self,
        user: User,
        new_password: str,
        current_password: Optional[str] = None,
    ) -> dict:
        """
        Replace the user's password and issue fresh tokens.

        The current password is not required while the user is still on a
        temporary password. Every previously issued token is revoked.

        Raises:
            ValidationError: wrong current password, or new equals current
        """
        if not user.temporary_password_used:
            if not current_password or not self.verify_password(current_password, user.hashed_password):
                raise ValidationError(
                    message="Current password is incorrect",
                    details={"field": "current_password"},
                )

        if self.verify_password(new_password, user.hashed_password):
            raise ValidationError(
                message="New password must be different from the current password",
                details={"field": "new_password"},
            )

        with transaction(self.db):
            user.hashed_password = self.hash_password(new_password)
            user.temporary_password_used = False
            user.invalidate_tokens()

        logger.info("password_changed", user_id=user.id)
        return self.get_tokens_for_user(user)

    def accept_terms(self, user: User, version: str) -> TermsAndConditions:
        """
        Record acceptance of the current terms.

        Raises:
            ValidationError: no terms are published or the version is stale
        """
        current = TermsAndConditions.get_current(self.db)
        if current is None or current.version != version:
            raise ValidationError(
                message="Only the current terms and conditions can be accepted",
                details={
                    "version": version,
                    "current_version": current.version if current else None,
                },
            )

        with transaction(self.db):
            user.terms_accepted_version = current.version
            user.terms_accepted_at = datetime.now(timezone.utc)

        logger.info("terms_accepted", user_id=user.id, version=current.version)
        return current
