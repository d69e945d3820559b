"""
Role-Based Access Control (RBAC) Dependencies Module
=====================================================

FastAPI dependencies for permission-gated routes.

The dependency only runs the permission gate. Tier rules need the target
role or user, so routes that change roles go through AccessAdminService.

Usage:
    @router.get("/analytics")
    def analytics(identity: Identity = Depends(require_permission(Permissions.ANALYTICS_VIEW))):
        ...

    @router.post("/admin/users/{user_id}/roles")
    def assign(..., service: AccessAdminService = Depends(get_admin_service)):
        ...
"""

from typing import Callable

from fastapi import Depends
from sqlalchemy.orm import Session

from portal.core.dependencies.auth import get_identity
from portal.db.session import get_db
from portal.services.access_admin import AccessAdminService
from portal.services.authorization import AuthorizationEvaluator
from portal.services.identity import Identity

evaluator = AuthorizationEvaluator()


def get_evaluator() -> AuthorizationEvaluator:
    return evaluator


def get_admin_service(
    db: Session = Depends(get_db),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
) -> AccessAdminService:
    return AccessAdminService(db, evaluator)


def require_permission(permission: str) -> Callable:
    """
    Create a dependency that requires ``permission``.

    Args:
        permission: Permission name, see ``portal.core.permissions.Permissions``

    Returns:
        Dependency function resolving to the Identity
    """
    def permission_checker(
        identity: Identity = Depends(get_identity),
        evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    ) -> Identity:
        return evaluator.require(identity, permission)

    return permission_checker
