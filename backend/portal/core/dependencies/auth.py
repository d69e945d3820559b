"""
Authentication Dependencies Module
==================================

FastAPI dependencies that turn the bearer token into an Identity.

Features:
- JWT token validation
- Inactivity expiry
- Account status verification
- Request context for logging

Usage:
    @router.get("/protected")
    def protected_route(identity: Identity = Depends(get_identity)):
        return identity.snapshot()
"""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from portal.core.exceptions import UnauthenticatedError
from portal.core.logging import get_logger
from portal.db.session import get_db
from portal.services.identity import Identity, IdentityResolver

# Initialize logger
logger = get_logger(__name__)


# =====================================
# OAuth2 Scheme
# =====================================

# auto_error is off so a missing token becomes UnauthenticatedError,
# rendered with the same error body as every other failure.
oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/auth/login",
    auto_error=False,
    description="OAuth2 token for authentication",
)


# =====================================
# Get Identity
# =====================================

def get_identity(
    request: Request,
    token: Optional[str] = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> Identity:
    """
    Validate the JWT and build the request's Identity.

    Security checks performed:
    - Token signature, expiry, type, issuer and audience
    - Token version (revocation)
    - Account status (locked/disabled/deleted)
    - Inactivity limit

    Raises:
        UnauthenticatedError: no bearer token
        AuthenticationError subclasses: any failed token check
    """
    if not token:
        raise UnauthenticatedError()

    identity = IdentityResolver(db).resolve(token)
    request.state.user_id = str(identity.user_id)
    request.state.identity = identity
    return identity
