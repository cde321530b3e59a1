"""
app/core/security.py

Purpose: Password hashing and access tokens

- bcrypt password hashes
- HS256 JWTs carrying user_id, session_id and user_type
- Random session ids and email tokens
"""

import secrets
from datetime import timedelta
from typing import Optional, Dict, Any

import bcrypt
import jwt

from app.core.config import settings
from app.core.exceptions import AuthenticationError
from utils.constants import MSG_TOKEN_INVALID
from utils.time_utils import utc_now


def hash_password(password: str) -> str:
    salt = bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, hashed: Optional[str]) -> bool:
    """
    Checks a plain password against a stored bcrypt hash.

    Returns:
        False for a missing or malformed hash instead of raising
    """
    if not password or not hashed:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


def new_session_id() -> str:
    return secrets.token_hex(32)


def new_email_token() -> str:
    """Token for verification and password reset links."""
    return secrets.token_hex(32)


def create_access_token(
    user_id: str,
    session_id: str,
    user_type: Optional[str] = None,
    expires_delta: Optional[timedelta] = None
) -> str:
    """
    Issues a signed access token.

    Args:
        user_id: Hex id of the user
        session_id: Session the token is bound to
        user_type: Included for admin tokens
        expires_delta: Lifetime, defaults to JWT_EXPIRE_DAYS

    Returns:
        Encoded JWT
    """
    if expires_delta is None:
        expires_delta = timedelta(days=settings.JWT_EXPIRE_DAYS)

    payload: Dict[str, Any] = {
        "user_id": str(user_id),
        "session_id": session_id,
        "exp": utc_now() + expires_delta,
    }
    if user_type:
        payload["user_type"] = user_type

    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verifies a token signature and expiry.

    Raises:
        AuthenticationError: If the token is expired, malformed or lacks user_id
    """
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError(MSG_TOKEN_INVALID, details={"reason": "expired"})
    except jwt.InvalidTokenError:
        raise AuthenticationError(MSG_TOKEN_INVALID)

    if not payload.get("user_id"):
        raise AuthenticationError(MSG_TOKEN_INVALID)
    return payload
