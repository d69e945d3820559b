"""
Role Model
==========

A named, assignable bundle of permissions.

Security Features:
- ``is_system`` roles are protected from edit and delete outside bootstrap
- ``tier`` is computed once at creation and drives every tier rule
- Soft delete via ``deleted_at``
"""

from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import Boolean, DateTime, Enum as SAEnum, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.sql import func

from portal.db.base import Base
from portal.models.associations import role_has_permissions, user_has_roles
from portal.models.tier import Tier

if TYPE_CHECKING:
    from portal.models.permission import Permission
    from portal.models.user import User


class Role(Base):
    """
    Role entity.

    Attributes:
        id: Integer primary key
        name: Unique machine name (lowercase, digits, ``-``, ``_``)
        display_name: Human readable name
        description: Optional description
        color: Cosmetic hex color
        is_system: Protected role flag
        tier: Power ranking, see ``portal.models.tier``
        permissions: Permissions granted by the role
        users: Users holding the role
        deleted_at: Soft delete marker
    """

    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)

    name: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )

    display_name: Mapped[str] = mapped_column(String(255), nullable=False)

    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    color: Mapped[str] = mapped_column(String(7), nullable=False, default="#6366F1")

    is_system: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    tier: Mapped[Tier] = mapped_column(
        SAEnum(Tier, native_enum=False, length=20),
        nullable=False,
        default=Tier.STANDARD,
    )

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

    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    permissions: Mapped[List["Permission"]] = relationship(
        "Permission",
        secondary=role_has_permissions,
        back_populates="roles",
        order_by="Permission.name",
    )

    users: Mapped[List["User"]] = relationship(
        "User",
        secondary=user_has_roles,
        back_populates="roles",
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, name={self.name}, tier={self.tier})>"

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def permission_names(self) -> set[str]:
        """Names of the active permissions granted by this role."""
        return {p.name for p in self.permissions if p.deleted_at is None}

    def to_dict(self, include_permissions: bool = False) -> dict:
        data = {
            "id": self.id,
            "name": self.name,
            "display_name": self.display_name,
            "description": self.description,
            "color": self.color,
            "is_system": self.is_system,
            "tier": self.tier.value if isinstance(self.tier, Tier) else self.tier,
        }
        if include_permissions:
            data["permissions"] = sorted(self.permission_names)
        return data
