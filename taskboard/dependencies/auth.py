"""
Authentication dependencies for FastAPI route protection.

Every failure path answers with the same 401 body so clients cannot tell a
missing token from a revoked one; the precise reason goes to the security log.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from taskboard.db import get_app_db
from taskboard.db_handlers import UserDBHandler
from taskboard.models import User
from taskboard.utils.auth import (
    TokenVerificationError,
    extract_user_id_from_token,
    is_token_blacklisted,
)
from taskboard.utils.security_logger import security_logger

NOT_AUTHORIZED = "Not authorized to access this route"

# HTTP Bearer token extraction; missing headers are reported by us, not FastAPI
security = HTTPBearer(auto_error=False)


def _unauthorized(
    request: Request, reason: str, details: str | None = None
) -> HTTPException:
    security_logger.log_suspicious_activity(
        reason,
        details or f"Authentication rejected for {request.method} {request.url.path}",
        security_logger.get_client_ip(request),
        user_agent=security_logger.get_user_agent(request),
    )
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=NOT_AUTHORIZED,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_bearer_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str:
    """The raw bearer token of the request, or 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized(request, "MISSING_TOKEN")
    return credentials.credentials


async def get_current_user(
    request: Request,
    token: str = Depends(get_bearer_token),
    db: AsyncSession = Depends(get_app_db),
) -> User:
    """
    Dependency to get the current authenticated user from JWT token.

    The token must verify, must not have been revoked by logout, and must
    name a user that still exists.
    """
    if is_token_blacklisted(token):
        raise _unauthorized(request, "REVOKED_TOKEN")

    try:
        user_id = extract_user_id_from_token(token)
    except TokenVerificationError as e:
        raise _unauthorized(request, "TOKEN_VERIFICATION_FAILED", e.reason) from e

    user_handler = UserDBHandler()
    user = await user_handler.get(user_id, db=db)
    if user is None:
        raise _unauthorized(request, "INVALID_USER")

    request.state.user = user
    return user
