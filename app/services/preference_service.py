"""
app/services/preference_service.py

Purpose: Theme and layout preferences

- One document per user, created with the light default on first read
- Theme writes only touch the document when the value changes
"""

from typing import Any, Dict, Optional

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from app.db.mongo import get_user_preferences_collection
from app.models.preference import new_preference_document
from utils.constants import DEFAULT_LAYOUT_PREFERENCES, DEFAULT_THEME, THEMES
from utils.time_utils import utc_now

logger = get_logger(__name__)


def _validate_theme(theme: Optional[str]):
    if theme is not None and theme not in THEMES:
        raise BadRequestError(
            f"Invalid theme value. Must be one of: {', '.join(THEMES)}",
            code="INVALID_THEME",
        )


async def get_preferences(user_id: ObjectId) -> Dict[str, Any]:
    """
    Returns the user's preference document, creating the default one
    (or repairing an empty theme) as needed.
    """
    collection = get_user_preferences_collection()
    preference = await collection.find_one({"user_id": user_id})

    if preference is None:
        preference = new_preference_document(user_id, utc_now())
        try:
            result = await collection.insert_one(preference)
            preference["_id"] = result.inserted_id
            logger.debug("Created default preferences", extra={"user_id": str(user_id)})
        except DuplicateKeyError:
            preference = await collection.find_one({"user_id": user_id})
    elif not preference.get("theme"):
        preference = await collection.find_one_and_update(
            {"user_id": user_id},
            {"$set": {"theme": DEFAULT_THEME, "is_default": True, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )

    return preference


async def save_theme(user_id: ObjectId, theme: Optional[str]) -> Dict[str, Any]:
    """
    Stores a theme choice.

    Args:
        user_id: Owner
        theme: light, dark or system; None leaves the current value

    Returns:
        The preference document
    """
    _validate_theme(theme)
    preference = await get_preferences(user_id)

    if theme and preference.get("theme") != theme:
        preference = await get_user_preferences_collection().find_one_and_update(
            {"user_id": user_id},
            {"$set": {"theme": theme, "is_default": False, "updated_at": utc_now()}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info(f"Theme set to {theme}", extra={"user_id": str(user_id)})
    return preference


async def reset_theme(user_id: ObjectId) -> Dict[str, Any]:
    now = utc_now()
    return await get_user_preferences_collection().find_one_and_update(
        {"user_id": user_id},
        {
            "$set": {"theme": DEFAULT_THEME, "is_default": True, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )


async def update_layout(user_id: ObjectId, changes: Dict[str, Any]) -> Dict[str, Any]:
    """
    Partial update of the dashboard layout settings.

    Args:
        user_id: Owner
        changes: Any of theme, rtl, boxed, container, caption_show, preset
    """
    _validate_theme(changes.get("theme"))
    update = {key: value for key, value in changes.items() if key in DEFAULT_LAYOUT_PREFERENCES and value is not None}

    await get_preferences(user_id)
    if not update:
        return await get_preferences(user_id)

    if "theme" in update:
        update["is_default"] = False
    update["updated_at"] = utc_now()
    return await get_user_preferences_collection().find_one_and_update(
        {"user_id": user_id},
        {"$set": update},
        return_document=ReturnDocument.AFTER,
    )


async def delete_preferences(user_id: ObjectId):
    await get_user_preferences_collection().delete_one({"user_id": user_id})
