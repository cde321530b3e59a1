"""
app/services/admin_service.py

Purpose: Administration

- Dashboard counters
- User listing, CSV export, deletion with related data
- Primary admin (earliest created) cannot be removed
"""

import csv
import io
from typing import Any, Dict, List

from bson import ObjectId

from app.core.exceptions import BadRequestError, ResourceNotFoundError
from app.core.logging import get_logger
from app.db.mongo import (
    get_connections_collection,
    get_conversations_collection,
    get_notifications_collection,
    get_users_collection,
    to_object_id,
)
from app.services import key_service, preference_service, user_service
from app.services.user_service import SAFE_PROJECTION
from utils.constants import (
    MSG_USER_NOT_FOUND,
    USER_TYPE_ADMIN,
    VERIFICATION_ACTIVE,
    VERIFICATION_INACTIVE,
)

logger = get_logger(__name__)

EXPORT_COLUMNS = (
    "id", "full_name", "username", "email", "phone_number", "gender", "pronoun",
    "verification_status", "user_type", "user_since", "email_verified",
    "year_of_study", "major_category", "major_sub_category", "major_type",
    "institution", "city", "state", "zip", "technical_skills", "soft_skills",
    "my_interests", "interests_looking_in_others", "co_founders_count",
)


async def dashboard_stats() -> Dict[str, int]:
    users = get_users_collection()
    return {
        "total_users": await users.count_documents({}),
        "active_users": await users.count_documents({"verification_status": VERIFICATION_ACTIVE}),
        "pending_users": await users.count_documents({"verification_status": VERIFICATION_INACTIVE}),
        "admin_users": await users.count_documents({"user_type": USER_TYPE_ADMIN}),
    }


async def list_users() -> List[Dict[str, Any]]:
    cursor = get_users_collection().find({}, SAFE_PROJECTION).sort("created_at", -1)
    return [doc async for doc in cursor]


def _flatten(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, dict):
        return str(value.get("value") or value.get("custom") or "")
    if isinstance(value, list):
        return ", ".join(str(item) for item in value)
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if hasattr(value, "strftime"):
        return value.strftime("%Y-%m-%d")
    return str(value)


async def export_users_csv() -> str:
    """
    Flattens every user into one CSV row; {value, custom} fields use the
    value (or custom text) and lists are comma-joined.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_COLUMNS)

    async for user in get_users_collection().find({}, SAFE_PROJECTION).sort("created_at", 1):
        row = []
        for column in EXPORT_COLUMNS:
            row.append(str(user["_id"]) if column == "id" else _flatten(user.get(column)))
        writer.writerow(row)

    return buffer.getvalue()


async def delete_user(admin: Dict[str, Any], user_id: Any):
    """
    Removes a user with their connections, notifications, preferences
    and key. Their conversations are marked deleted for them.

    Raises:
        BadRequestError: Deleting yourself or the primary admin
        ResourceNotFoundError: Unknown user
    """
    target_id = to_object_id(user_id, "user_id")
    if target_id == admin["_id"]:
        raise BadRequestError("You cannot delete your own account from admin panel")

    users = get_users_collection()
    target = await users.find_one({"_id": target_id})
    if not target:
        raise ResourceNotFoundError(MSG_USER_NOT_FOUND, code="USER_NOT_FOUND")

    if target.get("user_type") == USER_TYPE_ADMIN:
        primary = [doc async for doc in users.find({"user_type": USER_TYPE_ADMIN}).sort([("created_at", 1), ("_id", 1)]).limit(1)]
        if primary and primary[0]["_id"] == target_id:
            raise BadRequestError("Cannot delete the primary admin account")

    await users.delete_one({"_id": target_id})
    connections = await get_connections_collection().delete_many(
        {"$or": [{"sender_id": target_id}, {"receiver_id": target_id}]}
    )
    notifications = await get_notifications_collection().delete_many(
        {"$or": [{"user_id": target_id}, {"sender_id": target_id}]}
    )
    await get_conversations_collection().update_many(
        {"participants": target_id}, {"$addToSet": {"deleted_for": target_id}}
    )
    await preference_service.delete_preferences(target_id)
    await key_service.delete_key(target_id)

    logger.warning(
        f"User {target.get('username')} deleted by admin "
        f"({connections.deleted_count} connections, {notifications.deleted_count} notifications)",
        extra={"user_id": str(admin["_id"])}
    )


async def get_user(user_id: Any) -> Dict[str, Any]:
    return await user_service.require_user(user_id)


async def change_admin_password(admin_id: ObjectId, current_password: str, new_password: str):
    await user_service.change_password(admin_id, current_password, new_password)
