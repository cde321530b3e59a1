"""
app/api/deps.py

Purpose: Shared route dependencies

- Bearer token + X-Session-ID authentication
- Admin guard
- Guard that keeps signed-in users off the register/reset flows
"""

from typing import Any, Dict, Optional

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.exceptions import AuthorizationError, BlazeError
from app.core.logging import get_logger
from app.services import auth_service
from utils.constants import MSG_ADMIN_REQUIRED, MSG_ALREADY_LOGGED_IN, USER_TYPE_ADMIN

logger = get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_session_id: Optional[str] = Header(default=None, alias="X-Session-ID"),
) -> Dict[str, Any]:
    """
    Resolves the authenticated user for a request.

    Raises:
        AuthenticationError: 401 for missing/invalid credentials
        AuthorizationError: 403 for unverified accounts
    """
    token = credentials.credentials if credentials else None
    return await auth_service.resolve_user(token, x_session_id)


async def require_admin(user: Dict[str, Any] = Depends(get_current_user)) -> Dict[str, Any]:
    if user.get("user_type") != USER_TYPE_ADMIN:
        logger.warning("Non-admin attempted admin route", extra={"user_id": str(user["_id"])})
        raise AuthorizationError(MSG_ADMIN_REQUIRED, code="ADMIN_REQUIRED")
    return user


async def prevent_auth_access(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    x_session_id: Optional[str] = Header(default=None, alias="X-Session-ID"),
):
    """
    Refuses register/verify/reset requests from a user who is already
    signed in. Invalid or stale credentials are ignored.
    """
    if not credentials:
        return
    try:
        await auth_service.resolve_user(credentials.credentials, x_session_id)
    except BlazeError:
        return
    raise AuthorizationError(MSG_ALREADY_LOGGED_IN, code="ALREADY_LOGGED_IN")
