"""
Authentication Routes Module
============================

Handles:
- User login with account lockout protection
- Token refresh
- Logout (token invalidation)
- Current identity snapshot
- Temporary password change and terms acceptance

Failures raise PortalException subclasses; the application handler
renders them as ``{"message", "reason", "details"}``.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from portal.core.dependencies.auth import get_identity
from portal.core.dependencies.rbac import get_evaluator
from portal.core.logging import get_logger
from portal.core.permissions import SelfServiceActions
from portal.db.session import get_db
from portal.schemas import (
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
from portal.services.auth_service import AuthService
from portal.services.authorization import AuthorizationEvaluator
from portal.services.identity import Identity, IdentityResolver, SessionState

# Initialize logger
logger = get_logger(__name__)


# =====================================
# Router Setup
# =====================================

router = APIRouter(
    prefix="/auth",
    tags=["Authentication"],
    responses={
        401: {"model": ErrorResponse, "description": "Authentication failed"},
        403: {"model": ErrorResponse, "description": "Access forbidden"},
    },
)


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


# =====================================
# Login / Refresh / Logout
# =====================================

@router.post(
    "/login",
    response_model=LoginResponse,
    summary="User Login",
    description="""
    Authenticate user with email and password.

    Returns JWT tokens plus the session gates (temporary password,
    pending terms) the client must clear before anything else.
    """,
    responses={429: {"model": ErrorResponse, "description": "Too many requests"}},
)
def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db),
) -> dict:
    auth_service = AuthService(db)
    user, tokens = auth_service.authenticate_user(
        email=login_data.email,
        password=login_data.password,
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )

    identity = IdentityResolver(db).for_user(user)
    logger.info("user_logged_in", user_id=user.id, state=identity.state.value)

    return {
        **tokens,
        "requires_password_change": identity.state is SessionState.REQUIRES_CREDENTIAL_CHANGE,
        "requires_terms_acceptance": identity.requires_terms_acceptance,
        "identity": identity.snapshot(),
    }


@router.post(
    "/refresh",
    response_model=TokenResponse,
    summary="Refresh Access Token",
)
def refresh_token(
    refresh_data: RefreshTokenRequest,
    db: Session = Depends(get_db),
) -> dict:
    return AuthService(db).refresh_tokens(refresh_data.refresh_token)


@router.post(
    "/logout",
    response_model=LogoutResponse,
    summary="Logout",
    description="Invalidate every token issued to the current user.",
)
def logout(
    identity: Identity = Depends(get_identity),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    db: Session = Depends(get_db),
) -> dict:
    evaluator.require(identity, SelfServiceActions.LOGOUT)
    AuthService(db).logout(identity.user)
    return {"message": "Successfully logged out"}


# =====================================
# Current Identity
# =====================================

@router.get(
    "/me",
    response_model=IdentityResponse,
    summary="Current Identity",
    description="Roles, effective permissions and session state, for client route guards.",
)
def me(identity: Identity = Depends(get_identity)) -> dict:
    return identity.snapshot()


# =====================================
# Session Gates
# =====================================

@router.post(
    "/change-password",
    response_model=TokenResponse,
    summary="Change Password",
    description="""
    Replace the password. The current password is not required while the
    user is on a temporary password. All earlier tokens are revoked and a
    fresh pair is returned.
    """,
)
def change_password(
    payload: ChangePasswordRequest,
    identity: Identity = Depends(get_identity),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    db: Session = Depends(get_db),
) -> dict:
    evaluator.require(identity, SelfServiceActions.CHANGE_PASSWORD)
    return AuthService(db).change_password(
        identity.user,
        new_password=payload.new_password,
        current_password=payload.current_password,
    )


@router.post(
    "/accept-terms",
    response_model=IdentityResponse,
    summary="Accept Terms",
)
def accept_terms(
    payload: AcceptTermsRequest,
    identity: Identity = Depends(get_identity),
    evaluator: AuthorizationEvaluator = Depends(get_evaluator),
    db: Session = Depends(get_db),
) -> dict:
    evaluator.require(identity, SelfServiceActions.ACCEPT_TERMS)
    AuthService(db).accept_terms(identity.user, payload.version)
    return IdentityResolver(db).for_user(identity.user).snapshot()
