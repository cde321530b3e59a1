"""
app/api/connections.py

Purpose: Connection request endpoints

- List accepted / pending received / pending sent
- Status between the caller and another user (both directions)
- Request, accept, decline, cancel, remove
- Debug, diagnostics and repair endpoints
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, Response

from app.api.deps import get_current_user, require_admin
from app.core.logging import get_logger
from app.models.connection import serialize_connection
from app.models.notification import serialize_notification
from app.schemas.connection import ConnectionFixRequest, ConnectionRequest
from app.services.connection_service import get_connection_service

logger = get_logger(__name__)
router = APIRouter()
connections = get_connection_service()


@router.get("")
async def list_connections(user: Dict[str, Any] = Depends(get_current_user)):
    results = await connections.list_connections(user["_id"])
    return {"success": True, "count": len(results), "connections": results}


@router.get("/pending")
async def pending_requests(user: Dict[str, Any] = Depends(get_current_user)):
    results = await connections.pending_received(user["_id"])
    return {"success": True, "count": len(results), "requests": results}


@router.get("/sent")
async def sent_requests(user: Dict[str, Any] = Depends(get_current_user)):
    results = await connections.pending_sent(user["_id"])
    return {"success": True, "count": len(results), "requests": results}


@router.get("/debug")
async def debug_connections(admin: Dict[str, Any] = Depends(require_admin)):
    records = await connections.list_all()
    return {"success": True, "count": len(records), "connections": records}


@router.get("/status/{user_id}")
async def connection_status(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return await connections.get_status(user["_id"], user_id)


@router.post("/request")
async def send_request(
    body: ConnectionRequest,
    response: Response,
    user: Dict[str, Any] = Depends(get_current_user),
):
    """
    Sends a request. 201 when a new record is created; an existing
    record is returned with 200 (a declined one is re-opened).
    """
    result = await connections.send_request(user, body.user_id, body.purpose)
    connection = result["connection"]
    response.status_code = 201 if result["created"] else 200
    return {
        "success": True,
        "message": result["message"],
        "connection_id": str(connection["_id"]),
        "status": connection["status"],
        "connection": serialize_connection(connection),
    }


@router.put("/accept/{connection_id}")
async def accept_request(connection_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    connection = await connections.accept(user, connection_id)
    return {"success": True, "message": "Connection request accepted", "connection": serialize_connection(connection)}


@router.put("/decline/{connection_id}")
async def decline_request(connection_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    connection = await connections.decline(user, connection_id)
    return {"success": True, "message": "Connection request declined", "connection": serialize_connection(connection)}


@router.put("/cancel/{connection_id}")
async def cancel_request(connection_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await connections.cancel(user, connection_id)
    return {"success": True, "message": "Connection request cancelled"}


@router.get("/diagnostics/{user_id}")
async def diagnostics(
    user_id: str,
    purpose: Optional[str] = Query(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
):
    data = await connections.diagnostics(user, user_id, purpose)
    return {"success": True, **data}


@router.put("/fix/{user_id}")
async def repair_connection(
    user_id: str,
    body: Optional[ConnectionFixRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
):
    purpose = body.purpose if body else None
    result = await connections.repair_pair(user, user_id, purpose)
    connection = result["connection"]
    return {
        "success": True,
        "message": result["message"],
        "connection_id": str(connection["_id"]),
        "status": connection["status"],
        "direction": "outgoing" if connection["sender_id"] == user["_id"] else "incoming",
        "cleanup": result["cleanup"],
        "connection": serialize_connection(connection),
    }


@router.post("/fix/{user_id}")
async def reset_declined(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    result = await connections.reset_declined(user, user_id)
    connection = result["connection"]
    return {
        "success": True,
        "message": result["message"],
        "connection_id": str(connection["_id"]),
        "status": connection["status"],
    }


@router.post("/test-notification/{user_id}")
async def test_notification(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    notification = await connections.send_test_notification(user, user_id)
    return {"success": True, "message": "Test notification sent", "notification": serialize_notification(notification)}


@router.delete("/{connection_id}")
async def remove_connection(connection_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await connections.remove(user, connection_id)
    return {"success": True, "message": "Connection removed"}
