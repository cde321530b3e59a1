"""
app/api/matches.py

Purpose: Co-founder suggestion endpoints
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends

from app.api.deps import get_current_user
from app.models.user import public_user, user_summary
from app.services import match_service, user_service
from app.services.connection_service import get_connection_service

router = APIRouter()


def _users(docs):
    return {"success": True, "count": len(docs), "users": [public_user(doc) for doc in docs]}


@router.get("/potential")
async def potential(user: Dict[str, Any] = Depends(get_current_user)):
    return _users(await match_service.potential_matches(user))


@router.get("/by-major")
async def by_major(user: Dict[str, Any] = Depends(get_current_user)):
    return _users(await match_service.matches_by_major(user))


@router.get("/by-location")
async def by_location(user: Dict[str, Any] = Depends(get_current_user)):
    return _users(await match_service.matches_by_location(user))


@router.get("/connected")
async def connected(user: Dict[str, Any] = Depends(get_current_user)):
    ids = await get_connection_service().connected_user_ids(user["_id"])
    users = await user_service.get_users_by_ids(ids)
    return {"success": True, "count": len(users), "users": [user_summary(doc) for doc in users.values()]}


@router.get("/pending")
async def pending(user: Dict[str, Any] = Depends(get_current_user)):
    requests = await get_connection_service().pending_received(user["_id"])
    return {"success": True, "count": len(requests), "requests": requests}
