"""
app/api/preferences.py

Purpose: Theme preference endpoints keyed by user id

- A user may only read or change their own preference (admins any)
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.core.exceptions import AuthorizationError
from app.db.mongo import to_object_id
from app.models.document import serialize_document
from app.schemas.preference import ThemeRequest
from app.services import preference_service
from utils.constants import USER_TYPE_ADMIN

router = APIRouter()


def _owner_id(user_id: str, user: Dict[str, Any]):
    target = to_object_id(user_id, "user_id")
    if target != user["_id"] and user.get("user_type") != USER_TYPE_ADMIN:
        raise AuthorizationError("You can only manage your own preferences")
    return target


@router.get("/theme/{user_id}")
async def get_theme(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    preference = await preference_service.get_preferences(_owner_id(user_id, user))
    return {
        "theme": preference["theme"],
        "is_default": preference.get("is_default", True),
        "message": "Using default light theme" if preference.get("is_default", True) else "Using user preference",
    }


@router.post("/theme")
async def save_theme(body: ThemeRequest, user: Dict[str, Any] = Depends(get_current_user)):
    preference = await preference_service.save_theme(user["_id"], body.theme)
    return {
        "success": True,
        "preference": serialize_document(preference),
        "message": "Using default light theme" if preference.get("is_default") else "Theme updated successfully",
    }


@router.post("/theme/{user_id}/reset")
async def reset_theme(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    preference = await preference_service.reset_theme(_owner_id(user_id, user))
    return {
        "success": True,
        "preference": serialize_document(preference),
        "message": "Theme reset to default light theme",
    }
