"""
app/services/user_service.py

Purpose: User data management

- Account lookup by id, email, username
- Profile updates with choice validation and ZIP autofill
- Password change, privacy flag, avatar/resume paths
- Search and public listing
"""

from typing import Any, Dict, Iterable, List, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import (
    AuthenticationError,
    BadRequestError,
    ConflictError,
    ResourceNotFoundError,
)
from app.core.logging import get_logger, LogContext
from app.core.security import hash_password, verify_password
from app.db.mongo import get_users_collection, to_object_id
from app.services import location_service
from utils.constants import (
    MAJOR_TYPES,
    MSG_PASSWORD_TOO_SHORT,
    MSG_USER_NOT_FOUND,
    PROFILE_CHOICES,
    PROFILE_LIST_FIELDS,
    PROFILE_OPEN_CHOICE_FIELDS,
    PROFILE_TEXT_FIELDS,
    PUBLIC_LIST_LIMIT,
    SEARCH_MIN_LENGTH,
)
from utils.sanitizer import strip_html
from utils.time_utils import utc_now
from utils.validation_utils import (
    normalize_email,
    search_pattern,
    validate_choice_field,
    validate_password,
    validate_zip,
)

logger = get_logger(__name__)

# Never sent to clients
SAFE_PROJECTION = {
    "password": 0,
    "session_id": 0,
    "verification_token": 0,
    "reset_password_token": 0,
    "reset_password_expires": 0,
}


async def get_user_by_id(user_id: Any) -> Optional[Dict[str, Any]]:
    """
    Retrieves a user by id.

    Args:
        user_id: ObjectId or hex string

    Returns:
        User document or None if not found
    """
    users = get_users_collection()
    return await users.find_one({"_id": to_object_id(user_id, "user_id")})


async def require_user(user_id: Any) -> Dict[str, Any]:
    user = await get_user_by_id(user_id)
    if not user:
        raise ResourceNotFoundError(MSG_USER_NOT_FOUND, code="USER_NOT_FOUND")
    return user


async def get_user_by_email(email: str) -> Optional[Dict[str, Any]]:
    return await get_users_collection().find_one({"email": normalize_email(email)})


async def get_user_by_username(username: str) -> Optional[Dict[str, Any]]:
    return await get_users_collection().find_one({"username": username.strip()})


async def get_users_by_ids(ids: Iterable[ObjectId]) -> Dict[ObjectId, Dict[str, Any]]:
    """
    Batch lookup used to populate senders/receivers.

    Returns:
        Mapping of ObjectId to user document
    """
    unique_ids = list({oid for oid in ids if oid is not None})
    if not unique_ids:
        return {}
    cursor = get_users_collection().find({"_id": {"$in": unique_ids}}, SAFE_PROJECTION)
    return {user["_id"]: user async for user in cursor}


async def insert_user(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Inserts a new user document.

    Raises:
        ConflictError: If the email or username index rejects the insert
    """
    try:
        result = await get_users_collection().insert_one(document)
    except DuplicateKeyError as e:
        logger.warning(f"Duplicate user rejected: {e}")
        raise ConflictError("Email or username already in use")
    document["_id"] = result.inserted_id
    logger.info(f"User created: {document['username']}", extra={"user_id": str(result.inserted_id)})
    return document


async def set_session(user_id: ObjectId, session_id: Optional[str]):
    """Stores the single active session id (None logs the user out)."""
    await get_users_collection().update_one(
        {"_id": user_id},
        {"$set": {"session_id": session_id, "updated_at": utc_now()}}
    )


async def search_users(current_user_id: ObjectId, query: str) -> List[Dict[str, Any]]:
    """
    Case-insensitive search on name, username and email.

    Raises:
        BadRequestError: If the query is shorter than two characters
    """
    query = (query or "").strip()
    if len(query) < SEARCH_MIN_LENGTH:
        raise BadRequestError(f"Search query must be at least {SEARCH_MIN_LENGTH} characters")

    pattern = search_pattern(query)
    cursor = get_users_collection().find(
        {
            "_id": {"$ne": current_user_id},
            "$or": [
                {"full_name": pattern},
                {"username": pattern},
                {"email": pattern},
            ],
        },
        SAFE_PROJECTION,
    ).limit(PUBLIC_LIST_LIMIT)
    return [user async for user in cursor]


async def list_public_users() -> List[Dict[str, Any]]:
    cursor = get_users_collection().find(
        {"private_mode": {"$ne": True}}, SAFE_PROJECTION
    ).limit(PUBLIC_LIST_LIMIT)
    return [user async for user in cursor]


def _clean_profile_update(data: Dict[str, Any]) -> Dict[str, Any]:
    update: Dict[str, Any] = {}
    errors: Dict[str, str] = {}

    for field in PROFILE_TEXT_FIELDS:
        if field in data:
            value = data[field]
            if value is not None and not isinstance(value, str):
                errors[field] = "must be a string"
                continue
            update[field] = strip_html(value.strip()) if value else value

    if update.get("major_type") and update["major_type"] not in MAJOR_TYPES:
        errors["major_type"] = f"must be one of {', '.join(MAJOR_TYPES)}"

    for field in PROFILE_LIST_FIELDS:
        if field in data:
            value = data[field]
            if not isinstance(value, list) or not all(isinstance(item, str) for item in value):
                errors[field] = "must be a list of strings"
                continue
            update[field] = [strip_html(item.strip()) for item in value if item.strip()]

    for field in tuple(PROFILE_CHOICES) + PROFILE_OPEN_CHOICE_FIELDS:
        if field in data:
            ok, normalized = validate_choice_field(field, data[field])
            if not ok:
                errors[field] = "invalid choice"
                continue
            update[field] = normalized

    if "co_founders_count" in data:
        value = data["co_founders_count"]
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            errors["co_founders_count"] = "must be a non-negative integer"
        else:
            update["co_founders_count"] = value

    if "date_of_birth" in data:
        update["date_of_birth"] = data["date_of_birth"]

    if errors:
        raise BadRequestError("Invalid profile data", code="INVALID_PROFILE", details=errors)
    return update


async def update_profile(user_id: ObjectId, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Applies a partial profile update.

    A valid 5-digit ZIP with no city/state supplied fills both from the
    ZIP table when it knows the code.

    Args:
        user_id: Current user
        data: Submitted fields (unknown keys are ignored)

    Returns:
        Updated user document
    """
    with LogContext(user_id=str(user_id)):
        update = _clean_profile_update(data)

        zip_value = (update.get("zip") or {}).get("value")
        if zip_value and validate_zip(zip_value) and "city" not in update and "state" not in update:
            location = location_service.lookup_zip(zip_value)
            if location:
                update["city"] = {"value": location["city"], "custom": None}
                update["state"] = {"value": location["state"], "custom": None}
                logger.debug(f"Autofilled city/state from ZIP {zip_value}")

        if not update:
            return await require_user(user_id)

        update["updated_at"] = utc_now()
        result = await get_users_collection().find_one_and_update(
            {"_id": user_id},
            {"$set": update},
            return_document=ReturnDocument.AFTER,
        )
        if not result:
            raise ResourceNotFoundError(MSG_USER_NOT_FOUND, code="USER_NOT_FOUND")

        logger.info(f"Profile updated: {', '.join(sorted(update))}")
        return result


async def change_password(user_id: ObjectId, current_password: str, new_password: str):
    """
    Raises:
        AuthenticationError: If the current password is wrong
        BadRequestError: If the new password is too short
    """
    user = await require_user(user_id)
    if not verify_password(current_password, user.get("password")):
        raise AuthenticationError("Current password is incorrect")
    if not validate_password(new_password):
        raise BadRequestError(MSG_PASSWORD_TOO_SHORT)

    await get_users_collection().update_one(
        {"_id": user_id},
        {"$set": {"password": hash_password(new_password), "updated_at": utc_now()}}
    )
    logger.info("Password changed", extra={"user_id": str(user_id)})


async def set_private_mode(user_id: ObjectId, private_mode: bool):
    await get_users_collection().update_one(
        {"_id": user_id},
        {"$set": {"private_mode": private_mode, "updated_at": utc_now()}}
    )


async def set_profile_file(user_id: ObjectId, field: str, path: str):
    """Stores the public path of an uploaded avatar or resume."""
    await get_users_collection().update_one(
        {"_id": user_id},
        {"$set": {field: path, "updated_at": utc_now()}}
    )
