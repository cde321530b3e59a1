"""
app/services/auth_service.py

Purpose: Account lifecycle and request authentication

- Registration with email verification
- Login issues a fresh session id (one active session per user)
- Password reset tokens
- Resolving a bearer token + session id to a user
- Bootstrap admin account
"""

from datetime import timedelta
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import (
    AuthenticationError,
    AuthorizationError,
    BadRequestError,
    ExternalServiceError,
    ResourceNotFoundError,
)
from app.core.logging import get_logger, LogContext
from app.core.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    new_email_token,
    new_session_id,
    verify_password,
)
from app.db.mongo import get_users_collection, to_object_id
from app.models.user import new_user_document
from app.services import email_service, user_service
from utils.constants import (
    MSG_ACCOUNT_NOT_VERIFIED,
    MSG_ADMIN_REQUIRED,
    MSG_EMAIL_TAKEN,
    MSG_INVALID_CREDENTIALS,
    MSG_NO_TOKEN,
    MSG_PASSWORD_MISMATCH,
    MSG_PASSWORD_TOO_SHORT,
    MSG_SESSION_INVALID,
    MSG_USER_NOT_FOUND,
    MSG_USERNAME_TAKEN,
    USER_TYPE_ADMIN,
    VERIFICATION_ACTIVE,
)
from utils.time_utils import expires_in, is_expired, utc_now
from utils.validation_utils import normalize_email, validate_password, validate_username

logger = get_logger(__name__)


def _session_matches(stored: Optional[str], *candidates: Optional[str]) -> bool:
    if not stored:
        return False
    stored = stored.lower()
    return any(candidate and candidate.lower() == stored for candidate in candidates)


async def resolve_user(token: Optional[str], header_session_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Authenticates a request.

    The stored session id must match the one in the token or the
    X-Session-ID header (case-insensitive), so logging in elsewhere
    invalidates older tokens.

    Args:
        token: Raw bearer token
        header_session_id: Value of X-Session-ID, if sent

    Returns:
        The user document

    Raises:
        AuthenticationError: Missing/invalid token, unknown user, stale session
        AuthorizationError: Account not verified yet
    """
    if not token:
        raise AuthenticationError(MSG_NO_TOKEN)

    payload = decode_access_token(token)

    try:
        user_id = to_object_id(payload.get("user_id"), "user_id")
    except BadRequestError:
        raise AuthenticationError(MSG_USER_NOT_FOUND)

    user = await get_users_collection().find_one({"_id": user_id})
    if not user:
        raise AuthenticationError(MSG_USER_NOT_FOUND)

    if not _session_matches(user.get("session_id"), payload.get("session_id"), header_session_id):
        raise AuthenticationError(MSG_SESSION_INVALID)

    if user.get("verification_status") != VERIFICATION_ACTIVE:
        raise AuthorizationError(MSG_ACCOUNT_NOT_VERIFIED, code="ACCOUNT_NOT_VERIFIED")

    return user


async def register(
    full_name: str,
    username: str,
    email: str,
    password: str,
    confirm_password: str,
) -> Dict[str, Any]:
    """
    Creates an inactive account and sends the verification email.

    Raises:
        BadRequestError: Mismatched/short password, taken email or username
    """
    email = normalize_email(email)
    username = username.strip()

    if password != confirm_password:
        raise BadRequestError(MSG_PASSWORD_MISMATCH)
    if not validate_password(password):
        raise BadRequestError(MSG_PASSWORD_TOO_SHORT)
    if not validate_username(username):
        raise BadRequestError("Username must be 3-30 letters, digits, dots, dashes or underscores")

    if await user_service.get_user_by_email(email):
        raise BadRequestError(MSG_EMAIL_TAKEN, code="EMAIL_TAKEN")
    if await user_service.get_user_by_username(username):
        raise BadRequestError(MSG_USERNAME_TAKEN, code="USERNAME_TAKEN")

    token = new_email_token()
    user = await user_service.insert_user(
        new_user_document(
            full_name=full_name.strip(),
            username=username,
            email=email,
            password_hash=hash_password(password),
            now=utc_now(),
            verification_token=token,
        )
    )

    sent = await email_service.send_verification_email(email, token)
    if not sent:
        logger.warning(f"Verification email could not be sent to {email}")
    return user


async def verify_email(token: str) -> Dict[str, Any]:
    if not token:
        raise BadRequestError("Verification token is required")

    users = get_users_collection()
    user = await users.find_one({"verification_token": token})
    if not user:
        raise BadRequestError("Invalid or expired verification token", code="INVALID_TOKEN")
    if user.get("verification_status") == VERIFICATION_ACTIVE:
        raise BadRequestError("Email already verified", code="ALREADY_VERIFIED")

    await users.update_one(
        {"_id": user["_id"]},
        {"$set": {
            "verification_status": VERIFICATION_ACTIVE,
            "email_verified": True,
            "verification_token": None,
            "updated_at": utc_now(),
        }}
    )
    logger.info(f"Email verified for {user['email']}", extra={"user_id": str(user["_id"])})
    return await users.find_one({"_id": user["_id"]})


async def resend_verification(email: str):
    """
    Re-issues a verification token for an inactive account.

    Raises:
        ResourceNotFoundError: Unknown email
        BadRequestError: Account already verified
    """
    user = await user_service.get_user_by_email(email)
    if not user:
        raise ResourceNotFoundError(MSG_USER_NOT_FOUND, code="USER_NOT_FOUND")
    if user.get("verification_status") == VERIFICATION_ACTIVE:
        raise BadRequestError("Email already verified", code="ALREADY_VERIFIED")

    token = new_email_token()
    await get_users_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {"verification_token": token, "updated_at": utc_now()}}
    )
    if not await email_service.send_verification_email(user["email"], token):
        raise ExternalServiceError("Could not send verification email")


async def _start_session(user: Dict[str, Any], expires_delta: Optional[timedelta] = None, admin: bool = False) -> Dict[str, Any]:
    session_id = new_session_id()
    await user_service.set_session(user["_id"], session_id)
    user["session_id"] = session_id

    token = create_access_token(
        str(user["_id"]),
        session_id,
        user_type=user.get("user_type") if admin else None,
        expires_delta=expires_delta,
    )
    return {"user": user, "token": token, "session_id": session_id}


async def login(email: str, password: str) -> Dict[str, Any]:
    """
    Verifies credentials and opens a new session.

    Returns:
        {"user", "token", "session_id"}

    Raises:
        AuthenticationError: Unknown email or wrong password
        AuthorizationError: Account not verified (details.needs_verification)
    """
    user = await user_service.get_user_by_email(email)
    if not user or not verify_password(password, user.get("password")):
        logger.warning(f"Failed login for {normalize_email(email)}")
        raise AuthenticationError(MSG_INVALID_CREDENTIALS)

    if user.get("verification_status") != VERIFICATION_ACTIVE:
        raise AuthorizationError(
            "Please verify your email before logging in",
            code="ACCOUNT_NOT_VERIFIED",
            details={"needs_verification": True, "email": user["email"]},
        )

    with LogContext(user_id=str(user["_id"])):
        logger.info("User logged in")
        return await _start_session(user)


async def admin_login(username: str, password: str) -> Dict[str, Any]:
    user = await user_service.get_user_by_username(username)
    if not user or not verify_password(password, user.get("password")):
        raise AuthenticationError("Invalid username or password")
    if user.get("user_type") != USER_TYPE_ADMIN:
        raise AuthorizationError(MSG_ADMIN_REQUIRED, code="ADMIN_REQUIRED")

    logger.info(f"Admin logged in: {username}", extra={"user_id": str(user["_id"])})
    return await _start_session(
        user,
        expires_delta=timedelta(hours=settings.ADMIN_JWT_EXPIRE_HOURS),
        admin=True,
    )


async def logout(user: Dict[str, Any]):
    await user_service.set_session(user["_id"], None)
    logger.info("User logged out", extra={"user_id": str(user["_id"])})


async def forgot_password(email: str):
    """
    Stores a reset token and emails the link.

    Raises:
        ResourceNotFoundError: Unknown email
        ExternalServiceError: Email could not be delivered
    """
    user = await user_service.get_user_by_email(email)
    if not user:
        raise ResourceNotFoundError("No account with that email address exists", code="USER_NOT_FOUND")

    token = new_email_token()
    await get_users_collection().update_one(
        {"_id": user["_id"]},
        {"$set": {
            "reset_password_token": token,
            "reset_password_expires": expires_in(minutes=settings.PASSWORD_RESET_EXPIRE_MINUTES),
            "updated_at": utc_now(),
        }}
    )

    if not await email_service.send_password_reset_email(user["email"], token):
        raise ExternalServiceError("Could not send password reset email")
    logger.info(f"Password reset requested for {user['email']}")


async def reset_password(token: str, password: str):
    if not validate_password(password):
        raise BadRequestError(MSG_PASSWORD_TOO_SHORT)

    users = get_users_collection()
    user = await users.find_one({"reset_password_token": token}) if token else None
    if not user or is_expired(user.get("reset_password_expires")):
        raise BadRequestError("Password reset token is invalid or has expired", code="INVALID_TOKEN")

    # Existing sessions end with the old password
    await users.update_one(
        {"_id": user["_id"]},
        {"$set": {
            "password": hash_password(password),
            "reset_password_token": None,
            "reset_password_expires": None,
            "session_id": None,
            "updated_at": utc_now(),
        }}
    )
    logger.info(f"Password reset completed for {user['email']}")


async def create_admin(full_name: str, username: str, email: str, password: str) -> Dict[str, Any]:
    email = normalize_email(email)
    if not validate_password(password):
        raise BadRequestError(MSG_PASSWORD_TOO_SHORT)
    if await user_service.get_user_by_email(email):
        raise BadRequestError(MSG_EMAIL_TAKEN, code="EMAIL_TAKEN")
    if await user_service.get_user_by_username(username):
        raise BadRequestError(MSG_USERNAME_TAKEN, code="USERNAME_TAKEN")

    return await user_service.insert_user(
        new_user_document(
            full_name=full_name,
            username=username,
            email=email,
            password_hash=hash_password(password),
            now=utc_now(),
            user_type=USER_TYPE_ADMIN,
            verification_status=VERIFICATION_ACTIVE,
        )
    )


async def ensure_default_admin():
    """
    Creates the bootstrap admin when no admin exists yet.
    Skipped when DEFAULT_ADMIN_PASSWORD is not configured.
    """
    if await get_users_collection().find_one({"user_type": USER_TYPE_ADMIN}):
        return
    if not settings.DEFAULT_ADMIN_PASSWORD:
        logger.warning("⚠️ No admin account exists and DEFAULT_ADMIN_PASSWORD is unset")
        return

    await create_admin(
        full_name="Administrator",
        username=settings.DEFAULT_ADMIN_USERNAME,
        email=settings.DEFAULT_ADMIN_EMAIL,
        password=settings.DEFAULT_ADMIN_PASSWORD,
    )
    logger.info(f"✅ Default admin '{settings.DEFAULT_ADMIN_USERNAME}' created")
