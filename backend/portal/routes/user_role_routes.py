"""
User Role Routes Module
=======================

User-role assignment, invitations and account unlock under ``/admin/users``.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, status

from portal.core.dependencies.auth import get_identity
from portal.core.dependencies.rbac import get_admin_service
from portal.models.role import Role
from portal.schemas import (
    ErrorResponse,
    InviteRequest,
    RoleResponse,
    UserResponse,
    UserRoleAssign,
    UserRoleSync,
    UserRolesResponse,
)
from portal.services.access_admin import AccessAdminService
from portal.services.identity import Identity

router = APIRouter(
    prefix="/admin/users",
    tags=["User Roles"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
        404: {"model": ErrorResponse, "description": "User or role not found"},
    },
)


def _user_roles(service: AccessAdminService, user, roles: Optional[List[Role]] = None) -> dict:
    if roles is None:
        roles = service.store.roles_of(user)
    return {
        "user_id": user.id,
        "roles": [RoleResponse.from_role(role) for role in roles],
        "permissions": sorted(service.store.permissions_of(user)),
    }


@router.get("/{user_id}/roles", response_model=UserRolesResponse, summary="User Roles")
def get_user_roles(
    user_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict:
    roles = service.user_roles(identity, user_id)
    return _user_roles(service, service.get_user(user_id), roles)


@router.post(
    "/{user_id}/roles",
    response_model=UserRolesResponse,
    summary="Assign Role",
    responses={400: {"model": ErrorResponse, "description": "User already has this role"}},
)
def assign_role(
    user_id: int,
    payload: UserRoleAssign,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict:
    user = service.assign_role(identity, user_id, payload.role_id)
    return _user_roles(service, user)


@router.delete(
    "/{user_id}/roles/{role_id}",
    response_model=UserRolesResponse,
    summary="Remove Role",
    responses={400: {"model": ErrorResponse, "description": "User does not have this role"}},
)
def remove_role(
    user_id: int,
    role_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict:
    user = service.remove_role(identity, user_id, role_id)
    return _user_roles(service, user)


@router.put("/{user_id}/roles", response_model=UserRolesResponse, summary="Sync Roles")
def sync_roles(
    user_id: int,
    payload: UserRoleSync,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict:
    user = service.sync_roles(identity, user_id, payload.role_ids)
    return _user_roles(service, user)


@router.post(
    "/invite",
    response_model=UserResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Invite User",
    description="Create a user on a temporary password; they must change it at first login.",
    responses={409: {"model": ErrorResponse, "description": "Email already registered"}},
)
def invite_user(
    payload: InviteRequest,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    user = service.invite_user(
        identity,
        name=payload.name,
        email=payload.email,
        temporary_password=payload.temporary_password,
        role_ids=payload.role_ids,
    )
    return UserResponse.from_user(user)


@router.post(
    "/{user_id}/unlock",
    response_model=UserResponse,
    summary="Unlock User Account",
    description="Lift a failed-login lockout. Requires users.manage.",
)
def unlock_user(
    user_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    user = service.unlock_user(identity, user_id)
    return UserResponse.from_user(user)
