"""
app/api/auth.py

Purpose: Account endpoints

- Register, verify email, resend verification
- Login / admin login / logout
- Forgot and reset password
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import get_current_user, prevent_auth_access
from app.models.user import public_user
from app.schemas.auth import (
    AdminLoginRequest,
    EmailRequest,
    LoginRequest,
    RegisterRequest,
    ResetPasswordRequest,
)
from app.services import auth_service
from utils.constants import MSG_REGISTERED, MSG_VERIFIED

router = APIRouter()


def _session_payload(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": True,
        "user": public_user(result["user"]),
        "token": result["token"],
        "session_id": result["session_id"],
    }


@router.post("/register", status_code=201, dependencies=[Depends(prevent_auth_access)])
async def register(body: RegisterRequest):
    user = await auth_service.register(
        full_name=body.full_name,
        username=body.username,
        email=body.email,
        password=body.password,
        confirm_password=body.confirm_password,
    )
    return {"success": True, "message": MSG_REGISTERED, "user": public_user(user)}


@router.get("/verify-email", dependencies=[Depends(prevent_auth_access)])
async def verify_email(token: Optional[str] = Query(default=None)):
    user = await auth_service.verify_email(token)
    return {"success": True, "message": MSG_VERIFIED, "user": public_user(user)}


@router.post("/send-verification")
async def send_verification(body: EmailRequest):
    await auth_service.resend_verification(body.email)
    return {"success": True, "message": "Verification email sent"}


@router.post("/login")
async def login(body: LoginRequest):
    result = await auth_service.login(body.email, body.password)
    return _session_payload(result)


@router.post("/admin-login")
async def admin_login(body: AdminLoginRequest):
    result = await auth_service.admin_login(body.username, body.password)
    return _session_payload(result)


@router.post("/logout")
async def logout(user: Dict[str, Any] = Depends(get_current_user)):
    await auth_service.logout(user)
    return {"success": True, "message": "Logged out successfully"}


@router.post("/admin-logout")
async def admin_logout(user: Dict[str, Any] = Depends(get_current_user)):
    await auth_service.logout(user)
    return {"success": True, "message": "Admin logged out successfully"}


@router.get("/me")
async def me(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "user": public_user(user)}


@router.post("/forgot-password", dependencies=[Depends(prevent_auth_access)])
async def forgot_password(body: EmailRequest):
    await auth_service.forgot_password(body.email)
    return {"success": True, "message": "Password reset email sent"}


@router.post("/reset-password", dependencies=[Depends(prevent_auth_access)])
async def reset_password(body: ResetPasswordRequest):
    await auth_service.reset_password(body.token, body.password)
    return {"success": True, "message": "Password has been reset. You can now log in."}
