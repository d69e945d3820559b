"""
Permission Routes Module
========================

Permission catalog administration under ``/admin/permissions``.

Authorization happens in AccessAdminService; routes only translate
between HTTP and the service.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from portal.core.dependencies.auth import get_identity
from portal.core.dependencies.rbac import get_admin_service
from portal.schemas import (
    ErrorResponse,
    PermissionCreate,
    PermissionListResponse,
    PermissionResponse,
    PermissionUpdate,
)
from portal.services.access_admin import AccessAdminService
from portal.services.identity import Identity

router = APIRouter(
    prefix="/admin/permissions",
    tags=["Permissions"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
        404: {"model": ErrorResponse, "description": "Permission not found"},
    },
)


@router.get("", response_model=PermissionListResponse, summary="List Permissions")
def list_permissions(
    search: Optional[str] = Query(default=None, max_length=100),
    group: Optional[str] = Query(default=None, max_length=100),
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> dict:
    permissions = service.list_permissions(identity, search=search, group=group)
    return {
        "permissions": permissions,
        "groups": service.permission_groups(identity),
        "total": len(permissions),
    }


@router.post(
    "",
    response_model=PermissionResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create Permission",
    responses={409: {"model": ErrorResponse, "description": "Name already taken"}},
)
def create_permission(
    payload: PermissionCreate,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    return service.create_permission(
        identity,
        name=payload.name,
        display_name=payload.display_name,
        description=payload.description,
        group=payload.group,
    )


@router.get("/{permission_id}", response_model=PermissionResponse, summary="Show Permission")
def get_permission(
    permission_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    return service.get_permission(identity, permission_id)


@router.put(
    "/{permission_id}",
    response_model=PermissionResponse,
    summary="Update Permission",
    responses={409: {"model": ErrorResponse, "description": "Name taken or permission in use"}},
)
def update_permission(
    permission_id: int,
    payload: PermissionUpdate,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
):
    return service.update_permission(identity, permission_id, **payload.model_dump(exclude_unset=True))


@router.delete(
    "/{permission_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Permission",
    description="Soft delete. Refused with 409 while any role still references the permission.",
    responses={409: {"model": ErrorResponse, "description": "Permission in use"}},
)
def delete_permission(
    permission_id: int,
    identity: Identity = Depends(get_identity),
    service: AccessAdminService = Depends(get_admin_service),
) -> None:
    service.delete_permission(identity, permission_id)
