"""
RBAC Schemas Module
===================

Request and response models for permissions, roles, user-role
assignments and invitations.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from portal.schemas.auth import validate_password_strength
from portal.services.permission_registry import PERMISSION_NAME_PATTERN
from portal.services.role_registry import COLOR_PATTERN, ROLE_NAME_PATTERN


# ==========================
# Permission Schemas
# ==========================

class PermissionCreate(BaseModel):
    name: str = Field(
        ...,
        max_length=255,
        pattern=PERMISSION_NAME_PATTERN.pattern,
        examples=["analytics.export"],
    )
    display_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    group: Optional[str] = Field(default=None, max_length=100)


class PermissionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255, pattern=PERMISSION_NAME_PATTERN.pattern)
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    group: Optional[str] = Field(default=None, max_length=100)


class PermissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    group: Optional[str] = None


class PermissionListResponse(BaseModel):
    permissions: List[PermissionResponse]
    groups: List[str]
    total: int


# ==========================
# Role Schemas
# ==========================

class RoleCreate(BaseModel):
    name: str = Field(..., max_length=255, pattern=ROLE_NAME_PATTERN.pattern, examples=["support"])
    display_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN.pattern, examples=["#6366F1"])
    is_system: bool = False
    permission_ids: List[int] = Field(default_factory=list)


class RoleUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    description: Optional[str] = Field(default=None, max_length=1000)
    color: Optional[str] = Field(default=None, pattern=COLOR_PATTERN.pattern)


class RolePermissionSync(BaseModel):
    permission_ids: List[int] = Field(default_factory=list)


class RoleResponse(BaseModel):
    id: int
    name: str
    display_name: str
    description: Optional[str] = None
    color: str
    is_system: bool
    tier: str
    permissions: List[str] = Field(default_factory=list)
    deleted: bool = False

    @classmethod
    def from_role(cls, role) -> "RoleResponse":
        data = role.to_dict(include_permissions=True)
        return cls(**data, deleted=role.is_deleted)


# ==========================
# User Role Schemas
# ==========================

class UserRoleAssign(BaseModel):
    role_id: int


class UserRoleSync(BaseModel):
    role_ids: List[int] = Field(default_factory=list)


class UserRolesResponse(BaseModel):
    user_id: int
    roles: List[RoleResponse]
    permissions: List[str]


# ==========================
# Invitation Schemas
# ==========================

class InviteRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    temporary_password: str = Field(..., min_length=8, max_length=128)
    role_ids: List[int] = Field(default_factory=list)

    @field_validator("temporary_password")
    @classmethod
    def check_strength(cls, v: str) -> str:
        return validate_password_strength(v)


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    is_active: bool
    is_locked: bool = False
    temporary_password_used: bool
    invited_by_id: Optional[int] = None
    roles: List[str] = Field(default_factory=list)

    @classmethod
    def from_user(cls, user) -> "UserResponse":
        return cls(
            id=user.id,
            name=user.name,
            email=user.email,
            is_active=user.is_active,
            is_locked=user.is_locked,
            temporary_password_used=user.temporary_password_used,
            invited_by_id=user.invited_by_id,
            roles=[role.name for role in user.roles if role.deleted_at is None],
        )
