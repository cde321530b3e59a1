"""
app/api/users.py

Purpose: User profile endpoints

- Search, public directory, profile read/update
- Avatar and resume uploads
- Privacy flag and dashboard theme/layout preferences
"""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile

from app.api.deps import get_current_user
from app.core.exceptions import BadRequestError
from app.models.preference import layout_view
from app.models.user import public_user
from app.schemas.auth import ChangePasswordRequest
from app.schemas.preference import LayoutPreferencesRequest
from app.services import file_service, preference_service, user_service

router = APIRouter()


@router.get("/search")
async def search_users(
    q: str = Query(default=""),
    user: Dict[str, Any] = Depends(get_current_user),
):
    results = await user_service.search_users(user["_id"], q)
    return {"success": True, "count": len(results), "users": [public_user(u) for u in results]}


@router.get("")
async def list_users():
    """Public directory; private profiles are left out."""
    users = await user_service.list_public_users()
    return {"success": True, "count": len(users), "users": [public_user(u) for u in users]}


@router.get("/me")
async def get_me(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "user": public_user(user)}


@router.put("/profile")
async def update_profile(
    data: Dict[str, Any] = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
):
    updated = await user_service.update_profile(user["_id"], data)
    return {"success": True, "message": "Profile updated successfully", "user": public_user(updated)}


@router.put("/change-password")
async def change_password(
    body: ChangePasswordRequest,
    user: Dict[str, Any] = Depends(get_current_user),
):
    await user_service.change_password(user["_id"], body.current_password, body.new_password)
    return {"success": True, "message": "Password updated successfully"}


@router.post("/avatar")
async def upload_avatar(
    file: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
):
    data = await file.read()
    path = await file_service.save_profile_file(str(user["_id"]), "avatar", file.filename, file.content_type, data)
    await user_service.set_profile_file(user["_id"], "profile_picture", path)
    return {"success": True, "profile_picture": path}


@router.post("/resume")
async def upload_resume(
    file: UploadFile = File(...),
    user: Dict[str, Any] = Depends(get_current_user),
):
    data = await file.read()
    path = await file_service.save_profile_file(str(user["_id"]), "resume", file.filename, file.content_type, data)
    await user_service.set_profile_file(user["_id"], "resume", path)
    return {"success": True, "resume": path}


@router.get("/profile/privacy-settings")
async def get_privacy_settings(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "private_mode": bool(user.get("private_mode"))}


@router.post("/profile/privacy-settings")
async def update_privacy_settings(
    data: Dict[str, Any] = Body(...),
    user: Dict[str, Any] = Depends(get_current_user),
):
    private_mode = data.get("private_mode")
    if not isinstance(private_mode, bool):
        raise BadRequestError("private_mode must be a boolean value")
    await user_service.set_private_mode(user["_id"], private_mode)
    return {"success": True, "private_mode": private_mode}


@router.get("/preferences/theme")
async def get_theme_preferences(user: Dict[str, Any] = Depends(get_current_user)):
    preference = await preference_service.get_preferences(user["_id"])
    return {"success": True, "preferences": layout_view(preference)}


@router.post("/preferences/theme")
async def update_theme_preferences(
    body: LayoutPreferencesRequest,
    user: Dict[str, Any] = Depends(get_current_user),
):
    preference = await preference_service.update_layout(user["_id"], body.model_dump(exclude_none=True))
    return {"success": True, "preferences": layout_view(preference)}


@router.get("/{user_id}")
async def get_user(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    target = await user_service.require_user(user_id)
    return {"success": True, "user": public_user(target)}
