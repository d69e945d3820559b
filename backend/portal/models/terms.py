"""
Terms and Conditions Model
==========================

Versioned terms that users must accept before their session becomes fully
active. Only the newest active row counts as the current terms.
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, String, Text, select
from sqlalchemy.orm import Mapped, Session, mapped_column
from sqlalchemy.sql import func

from portal.db.base import Base


class TermsAndConditions(Base):
    """Versioned terms document."""

    __tablename__ = "terms_and_conditions"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    version: Mapped[str] = mapped_column(String(50), unique=True, nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)

    content: Mapped[str] = mapped_column(Text, nullable=False)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<TermsAndConditions(version={self.version}, active={self.is_active})>"

    @classmethod
    def get_current(cls, db: Session) -> Optional["TermsAndConditions"]:
        """Return the newest active terms, or None when no terms are published."""
        stmt = (
            select(cls)
            .where(cls.is_active.is_(True))
            .order_by(cls.id.desc())
            .limit(1)
        )
        return db.scalars(stmt).first()
