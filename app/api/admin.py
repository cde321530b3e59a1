"""
app/api/admin.py

Purpose: Admin panel endpoints (admin token required)
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from app.api.deps import require_admin
from app.models.user import public_user
from app.schemas.auth import ChangePasswordRequest, CreateAdminRequest
from app.services import admin_service, auth_service

router = APIRouter()


@router.get("/dashboard-stats")
async def dashboard_stats(admin: Dict[str, Any] = Depends(require_admin)):
    return {"success": True, "stats": await admin_service.dashboard_stats()}


@router.get("/users")
async def list_users(admin: Dict[str, Any] = Depends(require_admin)):
    users = await admin_service.list_users()
    return {"success": True, "count": len(users), "users": [public_user(u) for u in users]}


@router.get("/export-users")
async def export_users(admin: Dict[str, Any] = Depends(require_admin)):
    content = await admin_service.export_users_csv()
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="users.csv"'},
    )


@router.post("/create-admin", status_code=201)
async def create_admin(body: CreateAdminRequest, admin: Dict[str, Any] = Depends(require_admin)):
    user = await auth_service.create_admin(body.full_name, body.username, body.email, body.password)
    return {"success": True, "message": "Admin user created successfully", "user": public_user(user)}


@router.post("/change-password")
async def change_password(body: ChangePasswordRequest, admin: Dict[str, Any] = Depends(require_admin)):
    await admin_service.change_admin_password(admin["_id"], body.current_password, body.new_password)
    return {"success": True, "message": "Password updated successfully"}


@router.get("/users/{user_id}")
async def get_user(user_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    return {"success": True, "user": public_user(await admin_service.get_user(user_id))}


@router.delete("/users/{user_id}")
async def delete_user(user_id: str, admin: Dict[str, Any] = Depends(require_admin)):
    await admin_service.delete_user(admin, user_id)
    return {"success": True, "message": "User deleted successfully"}
