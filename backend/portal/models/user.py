"""
User Model
==========

Security Features:
- Many-to-many roles (effective permissions = union over roles)
- Account lock after configurable failed attempts
- Token version for JWT invalidation
- Temporary-password and terms-acceptance flags that restrict the session
- Soft delete support via deleted_at

Database Indexes:
- Primary key: id
- Unique index: email
"""

from datetime import datetime, timezone
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from portal.db.base import Base
from portal.models.associations import user_has_roles

if TYPE_CHECKING:
    from portal.models.role import Role


class User(Base):
    """
    User entity representing authenticated system users.

    Security Controls:
        - failed_attempts: Counter for failed login attempts
        - is_locked: Account lock flag
        - token_version: For forced logout/token invalidation
        - temporary_password_used: Must change credential before anything else
        - terms_accepted_version: Version of the terms the user accepted

    Attributes:
        id: Integer primary key
        name: Display name
        email: Unique email address
        hashed_password: Argon2 hashed password
        roles: Assigned roles
        last_active_at: Last authenticated activity
        invited_by_id: User who sent the invitation, if any
    """

    __tablename__ = "users"

    def __init__(self, **kwargs):
        """Initialize User with Python-level defaults."""
        kwargs.setdefault("is_active", True)
        kwargs.setdefault("failed_attempts", 0)
        kwargs.setdefault("is_locked", False)
        kwargs.setdefault("token_version", 1)
        kwargs.setdefault("temporary_password_used", False)
        super().__init__(**kwargs)

    # ==========================
    # Primary Key
    # ==========================
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # ==========================
    # Identity
    # ==========================
    name: Mapped[str] = mapped_column(String(255), nullable=False)

    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    hashed_password: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )

    # ==========================
    # Authorization
    # ==========================
    roles: Mapped[List["Role"]] = relationship(
        "Role",
        secondary=user_has_roles,
        back_populates="users",
        order_by="Role.name",
    )

    # ==========================
    # Account Status
    # ==========================
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    failed_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    is_locked: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    token_version: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # ==========================
    # Session Gates
    # ==========================
    temporary_password_used: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    terms_accepted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    terms_accepted_version: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)

    last_active_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    invited_by_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )

    # ==========================
    # Timestamps
    # ==========================
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    # ==========================
    # Methods
    # ==========================

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def lock_account(self) -> None:
        """Lock the user account."""
        self.is_locked = True

    def unlock_account(self) -> None:
        """Unlock the user account and reset failed attempts."""
        self.is_locked = False
        self.failed_attempts = 0

    def increment_failed_attempts(self, max_attempts: int = 5) -> bool:
        """
        Increment failed login attempts.

        Args:
            max_attempts: Maximum attempts before lockout

        Returns:
            True if the account is now locked
        """
        self.failed_attempts += 1
        if self.failed_attempts >= max_attempts:
            self.lock_account()
            return True
        return False

    def invalidate_tokens(self) -> None:
        """Invalidate all tokens by incrementing version."""
        self.token_version += 1

    def touch(self, now: Optional[datetime] = None) -> None:
        """Record activity."""
        self.last_active_at = now or datetime.now(timezone.utc)

    def is_inactive(self, minutes: int, now: Optional[datetime] = None) -> bool:
        """
        Check if the user has been idle for at least ``minutes``.

        A user with no recorded activity counts as inactive.
        """
        if self.last_active_at is None:
            return True
        now = now or datetime.now(timezone.utc)
        last_active = self.last_active_at
        # SQLite hands back naive datetimes
        if last_active.tzinfo is None:
            last_active = last_active.replace(tzinfo=timezone.utc)
        return (now - last_active).total_seconds() >= minutes * 60

    def to_dict(self) -> dict:
        """
        Convert user to dictionary (excludes sensitive data).
        """
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "is_active": self.is_active,
            "is_locked": self.is_locked,
            "temporary_password_used": self.temporary_password_used,
            "terms_accepted_version": self.terms_accepted_version,
            "last_active_at": self.last_active_at.isoformat() if self.last_active_at else None,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
