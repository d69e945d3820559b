"""
Role Routes Module
==================

Role administration under ``/admin/roles``.

System roles answer 403 ``system_role_immutable`` on every mutation;
protected-tier roles answer 403 ``tier_violation`` below the top tier.
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from portal.core.dependencies.auth import get_identity
from portal.core.dependencies.rbac import get_admin_service
from portal.schemas import (
    ErrorResponse,
    RoleCreate,
    RolePermissionSync,
    RoleResponse,
    RoleUpdate,
)
from portal.services.access_admin import AccessAdminService
from portal.services.identity import Identity

router = APIRouter(
    prefix="/admin/roles",
    tags=["Roles"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
        404: {"model": ErrorResponse, "description": "Role not found"},
    },
)


@router.get("", response_model=List[RoleResponse], summary="List Roles")
def list_roles(
    search: Optional[str] = Query(default=None, max_length=100),
    include_deleted: bool = Query(default=False),
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> list:
    roles = service.list_roles(identity, search=search, include_deleted=include_deleted)
    return [RoleResponse.from_role(role) for role in roles]


@router.post(
    "",
    response_model=RoleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Role",
    responses={409: {"model": ErrorResponse, "description": "Name already taken"}},
)
def create_role(
    payload: RoleCreate,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    role = service.create_role(
        identity,
        name=payload.name,
        display_name=payload.display_name,
        description=payload.description,
        color=payload.color,
        is_system=payload.is_system,
        permission_ids=payload.permission_ids,
    )
    return RoleResponse.from_role(role)


@router.get("/{role_id}", response_model=RoleResponse, summary="Show Role")
def get_role(
    role_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    return RoleResponse.from_role(service.get_role(identity, role_id))


@router.put("/{role_id}", response_model=RoleResponse, summary="Update Role")
def update_role(
    role_id: int,
    payload: RoleUpdate,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    role = service.update_role(identity, role_id, **payload.model_dump(exclude_unset=True))
    return RoleResponse.from_role(role)


@router.delete(
    "/{role_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Role",
    description="Soft delete. Assigned roles may be deleted; they stop granting permissions at once.",
)
def delete_role(
    role_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> None:
    service.delete_role(identity, role_id)


@router.post("/{role_id}/restore", response_model=RoleResponse, summary="Restore Role")
def restore_role(
    role_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    return RoleResponse.from_role(service.restore_role(identity, role_id))


@router.put(
    "/{role_id}/permissions",
    response_model=RoleResponse,
    summary="Sync Role Permissions",
    description="Replace the role's permission set. Any unknown id rejects the whole request.",
)
def sync_role_permissions(
    role_id: int,
    payload: RolePermissionSync,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    role = service.sync_role_permissions(identity, role_id, payload.permission_ids)
    return RoleResponse.from_role(role)
