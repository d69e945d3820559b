"""
Authentication Schemas Module
=============================

Pydantic models for authentication request/response validation.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


def validate_password_strength(v: str) -> str:
    """Validate password meets security requirements."""
    errors = []

    if len(v) < 8:
        errors.append("Password must be at least 8 characters")
    if not re.search(r"[A-Z]", v):
        errors.append("Password must contain at least one uppercase letter")
    if not re.search(r"[a-z]", v):
        errors.append("Password must contain at least one lowercase letter")
    if not re.search(r"\d", v):
        errors.append("Password must contain at least one digit")
    if not re.search(r"[!@#$%^&*(),.?\":{}|<>]", v):
        errors.append("Password must contain at least one special character")

    if errors:
        raise ValueError("; ".join(errors))

    return v


# ==========================
# Login Schemas
# ==========================

class LoginRequest(BaseModel):
    """Login request schema."""

    email: EmailStr = Field(
        ...,
        description="User email address",
        examples=["user@example.com"]
    )
    password: str = Field(
        ...,
        min_length=1,
        description="User password",
        examples=["SecureP@ss123"]
    )


class TokenResponse(BaseModel):
    """Token response schema for refresh and password change."""

    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: Optional[int] = Field(
        default=None,
        description="Access token expiration in seconds"
    )


class LoginResponse(TokenResponse):
    """Tokens plus the session gates the client must clear first."""

    requires_password_change: bool = Field(
        default=False,
        description="User is on a temporary password"
    )
    requires_terms_acceptance: bool = Field(
        default=False,
        description="Current terms have not been accepted"
    )
    identity: Dict[str, Any] = Field(
        default_factory=dict,
        description="Roles and permissions snapshot for route guards"
    )


class RefreshTokenRequest(BaseModel):
    """Refresh token request schema."""

    refresh_token: str = Field(..., description="Valid refresh token")


class LogoutResponse(BaseModel):
    """Logout response schema."""

    message: str = Field(
        default="Successfully logged out",
        description="Logout confirmation message"
    )


# ==========================
# Session Gate Schemas
# ==========================

class ChangePasswordRequest(BaseModel):
    """Password change. ``current_password`` may be omitted on a temporary password."""

    current_password: Optional[str] = Field(default=None, description="Current password")
    new_password: str = Field(
        ...,
        min_length=8,
        max_length=128,
        description="New password (min 8 characters)"
    )

    @field_validator("new_password")
    @classmethod
    def check_strength(cls, v: str) -> str:
        return validate_password_strength(v)


class AcceptTermsRequest(BaseModel):
    version: str = Field(..., min_length=1, max_length=50, description="Terms version being accepted")


class IdentityResponse(BaseModel):
    """Snapshot of the current identity."""

    model_config = ConfigDict(extra="allow")

    user: Dict[str, Any]
    roles: List[str]
    permissions: List[str]
    tier: str
    is_top_tier: bool
    state: str
    requires_password_change: bool
    requires_terms_acceptance: bool
    current_terms_version: Optional[str] = None


# ==========================
# Error Schemas
# ==========================

class ErrorResponse(BaseModel):
    """Standard error response schema."""

    message: str = Field(..., description="Error message")
    reason: str = Field(..., description="Machine-readable reason")
    details: Optional[dict] = Field(default=None, description="Additional error details")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "Only the top tier can grant or revoke this role",
                "reason": "tier_violation",
                "details": {"role": "super_admin"}
            }
        }
    )
