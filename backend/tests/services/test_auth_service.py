"""
Authentication Service Unit Tests
==================================

Tests for the AuthService class covering:
- Password hashing and verification
- Access and refresh token creation and validation
- User authentication flow and account lockout
- Token version revocation on logout
- Temporary-password change
- Terms acceptance
"""

from datetime import datetime, timedelta, timezone

import pytest
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
from portal.models.user import User
from portal.services.auth_service import AuthService, TokenType


pytestmark = pytest.mark.unit

TEST_PASSWORD = "TestPassword123!"
NEW_PASSWORD = "BrandNewPassword456!"


class TestPasswordHashing:
    """Tests for password hashing functionality."""

    def test_hash_password_creates_different_hashes(self):
        """Test that same password creates different hashes (salt)."""
        # Act
        hash1 = AuthService.hash_password(TEST_PASSWORD)
        hash2 = AuthService.hash_password(TEST_PASSWORD)

        # Assert
        assert hash1 != hash2
        assert hash1.startswith("$argon2id$")

    def test_verify_password_correct(self):
        """Test password verification with correct password."""
        hashed = AuthService.hash_password(TEST_PASSWORD)
        assert AuthService.verify_password(TEST_PASSWORD, hashed) is True

    def test_verify_password_incorrect(self):
        hashed = AuthService.hash_password(TEST_PASSWORD)
        assert AuthService.verify_password("WrongPassword123!", hashed) is False

    def test_verify_password_garbage_hash(self):
        """A corrupt stored hash verifies as False instead of raising."""
        assert AuthService.verify_password(TEST_PASSWORD, "not-a-hash") is False


class TestTokens:
    """Tests for token creation and decoding."""

    def test_access_token_payload(self):
        """Test that access token contains correct payload."""
        # Act
        token = AuthService.create_access_token(user_id=7, token_version=3)
        payload = AuthService.decode_token(token, expected_type=TokenType.ACCESS)

        # Assert
        assert payload["sub"] == "7"
        assert payload["token_version"] == 3
        assert payload["type"] == TokenType.ACCESS
        assert "exp" in payload and "iat" in payload

    def test_refresh_token_type(self):
        token = AuthService.create_refresh_token(user_id=7, token_version=1)
        assert AuthService.decode_token(token)["type"] == TokenType.REFRESH

    def test_wrong_expected_type_raises(self):
        """Test that a refresh token is refused where an access token is expected."""
        # Arrange
        token = AuthService.create_refresh_token(user_id=7, token_version=1)

        # Act & Assert
        with pytest.raises(TokenInvalidError):
            AuthService.decode_token(token, expected_type=TokenType.ACCESS)

    def test_expired_token_raises(self):
        # Arrange
        token = AuthService.create_access_token(user_id=7, token_version=1, expires_delta=timedelta(seconds=-1))

        # Act & Assert
        with pytest.raises(TokenExpiredError):
            AuthService.decode_token(token, expected_type=TokenType.ACCESS)

    def test_malformed_token_raises(self):
        with pytest.raises(TokenInvalidError):
            AuthService.decode_token("invalid.token.here")


class TestAuthenticateUser:
    """Tests for user authentication."""

    def test_authenticate_user_success(self, db_session: Session, viewer_user: User):
        """Test successful user authentication."""
        # Arrange
        auth_service = AuthService(db_session)

        # Act
        user, tokens = auth_service.authenticate_user(email=viewer_user.email, password=TEST_PASSWORD)

        # Assert
        assert user.id == viewer_user.id
        assert tokens["token_type"] == "bearer"
        assert user.last_active_at is not None

    def test_email_is_case_insensitive(self, db_session: Session, viewer_user: User):
        user, _ = AuthService(db_session).authenticate_user(email="VIEWER@example.com", password=TEST_PASSWORD)
        assert user.id == viewer_user.id

    def test_authenticate_user_invalid_email(self, db_session: Session):
        """Test authentication with non-existent email."""
        with pytest.raises(InvalidCredentialsError):
            AuthService(db_session).authenticate_user(email="nobody@example.com", password=TEST_PASSWORD)

    def test_wrong_password_increments_failed_attempts(self, db_session: Session, viewer_user: User):
        """Test that failed login increments failed_attempts."""
        # Arrange
        auth_service = AuthService(db_session)

        # Act
        with pytest.raises(InvalidCredentialsError):
            auth_service.authenticate_user(email=viewer_user.email, password="WrongPassword123!")

        # Assert
        db_session.refresh(viewer_user)
        assert viewer_user.failed_attempts == 1

    def test_repeated_failures_lock_account(self, db_session: Session, viewer_user: User, monkeypatch):
        """Test that the account locks at MAX_LOGIN_ATTEMPTS."""
        # Arrange
        monkeypatch.setattr(settings, "MAX_LOGIN_ATTEMPTS", 3)
        auth_service = AuthService(db_session)
        for _ in range(3):
            with pytest.raises(InvalidCredentialsError):
                auth_service.authenticate_user(email=viewer_user.email, password="WrongPassword123!")

        # Act & Assert - even the right password is refused now
        with pytest.raises(AccountLockedError):
            auth_service.authenticate_user(email=viewer_user.email, password=TEST_PASSWORD)

    def test_disabled_account(self, db_session: Session, make_user):
        # Arrange
        user = make_user("off@example.com", ["viewer"], is_active=False)

        # Act & Assert
        with pytest.raises(AccountDisabledError):
            AuthService(db_session).authenticate_user(email=user.email, password=TEST_PASSWORD)

    def test_success_resets_failed_attempts(self, db_session: Session, viewer_user: User):
        """Test that successful login resets failed_attempts."""
        # Arrange
        auth_service = AuthService(db_session)
        for _ in range(2):
            with pytest.raises(InvalidCredentialsError):
                auth_service.authenticate_user(email=viewer_user.email, password="WrongPassword123!")

        # Act
        auth_service.authenticate_user(email=viewer_user.email, password=TEST_PASSWORD)

        # Assert
        db_session.refresh(viewer_user)
        assert viewer_user.failed_attempts == 0


class TestRefreshAndLogout:
    """Tests for refresh and token revocation."""

    def test_refresh_tokens_success(self, db_session: Session, viewer_user: User):
        # Arrange
        auth_service = AuthService(db_session)
        refresh = auth_service.get_tokens_for_user(viewer_user)["refresh_token"]

        # Act
        tokens = auth_service.refresh_tokens(refresh)

        # Assert
        assert auth_service.validate_access_token(tokens["access_token"]).id == viewer_user.id

    def test_refresh_with_access_token_fails(self, db_session: Session, viewer_user: User):
        # Arrange
        auth_service = AuthService(db_session)
        access = auth_service.get_tokens_for_user(viewer_user)["access_token"]

        # Act & Assert
        with pytest.raises(TokenInvalidError):
            auth_service.refresh_tokens(access)

    def test_logout_invalidates_old_tokens(self, db_session: Session, viewer_user: User):
        """Test that logout invalidates old tokens."""
        # Arrange
        auth_service = AuthService(db_session)
        tokens = auth_service.get_tokens_for_user(viewer_user)

        # Act
        auth_service.logout(viewer_user)

        # Assert
        with pytest.raises(TokenVersionMismatchError):
            auth_service.validate_access_token(tokens["access_token"])
        with pytest.raises(TokenVersionMismatchError):
            auth_service.refresh_tokens(tokens["refresh_token"])

    def test_deleted_user_token_invalid(self, db_session: Session, viewer_user: User):
        # Arrange
        auth_service = AuthService(db_session)
        access = auth_service.get_tokens_for_user(viewer_user)["access_token"]
        viewer_user.deleted_at = datetime.now(timezone.utc)
        db_session.commit()

        # Act & Assert
        with pytest.raises(TokenInvalidError):
            auth_service.validate_access_token(access)

    def test_locked_user_token_refused(self, db_session: Session, viewer_user: User):
        # Arrange
        auth_service = AuthService(db_session)
        access = auth_service.get_tokens_for_user(viewer_user)["access_token"]
        viewer_user.lock_account()
        db_session.commit()

        # Act & Assert
        with pytest.raises(AccountLockedError):
            auth_service.validate_access_token(access)


class TestChangePassword:
    """Tests for change_password()."""

    def test_temporary_password_needs_no_current(self, db_session: Session, make_user):
        # Arrange
        user = make_user("temp@example.com", ["viewer"], temporary_password_used=True)
        auth_service = AuthService(db_session)

        # Act
        tokens = auth_service.change_password(user, NEW_PASSWORD)

        # Assert
        assert user.temporary_password_used is False
        assert AuthService.verify_password(NEW_PASSWORD, user.hashed_password)
        assert auth_service.validate_access_token(tokens["access_token"]).id == user.id

    def test_change_revokes_previous_tokens(self, db_session: Session, viewer_user: User):
        # Arrange
        auth_service = AuthService(db_session)
        old = auth_service.get_tokens_for_user(viewer_user)["access_token"]

        # Act
        auth_service.change_password(viewer_user, NEW_PASSWORD, current_password=TEST_PASSWORD)

        # Assert
        with pytest.raises(TokenVersionMismatchError):
            auth_service.validate_access_token(old)

    def test_wrong_current_password(self, db_session: Session, viewer_user: User):
        with pytest.raises(ValidationError) as exc_info:
            AuthService(db_session).change_password(viewer_user, NEW_PASSWORD, current_password="Nope123456!")
        assert exc_info.value.details["field"] == "current_password"

    def test_missing_current_password(self, db_session: Session, viewer_user: User):
        with pytest.raises(ValidationError):
            AuthService(db_session).change_password(viewer_user, NEW_PASSWORD)

    def test_new_must_differ(self, db_session: Session, make_user):
        # Arrange
        user = make_user("temp@example.com", [], temporary_password_used=True)

        # Act & Assert
        with pytest.raises(ValidationError) as exc_info:
            AuthService(db_session).change_password(user, TEST_PASSWORD)
        assert exc_info.value.details["field"] == "new_password"
        assert user.temporary_password_used is True


class TestAcceptTerms:
    """Tests for accept_terms()."""

    def test_accept_current_version(self, db_session: Session, viewer_user: User, current_terms):
        # Act
        accepted = AuthService(db_session).accept_terms(viewer_user, current_terms.version)

        # Assert
        assert accepted is current_terms
        assert viewer_user.terms_accepted_version == current_terms.version
        assert viewer_user.terms_accepted_at is not None

    def test_stale_version_rejected(self, db_session: Session, viewer_user: User, current_terms):
        with pytest.raises(ValidationError) as exc_info:
            AuthService(db_session).accept_terms(viewer_user, "2020-01")
        assert exc_info.value.details["current_version"] == current_terms.version

    def test_nothing_published(self, db_session: Session, viewer_user: User):
        with pytest.raises(ValidationError):
            AuthService(db_session).accept_terms(viewer_user, "2026-01")
