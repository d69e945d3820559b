"""
Schemas Package Initialization
==============================

Exports all Pydantic schemas for the application.

Usage:
    from portal.schemas import LoginRequest, RoleResponse
"""

# Auth schemas
from portal.schemas.auth import (
    AcceptTermsRequest,
    ChangePasswordRequest,
    ErrorResponse,
    IdentityResponse,
    LoginRequest,
    LoginResponse,
    LogoutResponse,
    RefreshTokenRequest,
    TokenResponse,
)

# RBAC schemas
from portal.schemas.rbac import (
    InviteRequest,
    PermissionCreate,
    PermissionListResponse,
    PermissionResponse,
    PermissionUpdate,
    RoleCreate,
    RolePermissionSync,
    RoleResponse,
    RoleUpdate,
    UserResponse,
    UserRoleAssign,
    UserRoleSync,
    UserRolesResponse,
)

__all__ = [
    # Auth
    "AcceptTermsRequest",
    "ChangePasswordRequest",
    "ErrorResponse",
    "IdentityResponse",
    "LoginRequest",
    "LoginResponse",
    "LogoutResponse",
    "RefreshTokenRequest",
    "TokenResponse",
    # RBAC
    "InviteRequest",
    "PermissionCreate",
    "PermissionListResponse",
    "PermissionResponse",
    "PermissionUpdate",
    "RoleCreate",
    "RolePermissionSync",
    "RoleResponse",
    "RoleUpdate",
    "UserResponse",
    "UserRoleAssign",
    "UserRoleSync",
    "UserRolesResponse",
]
