"""
app/api/notifications.py

Purpose: Notification endpoints

- List, unread badge count
- Mark read (selected or all; several aliases kept for older clients)
- Delete one / clear all
- Connection request notification, test notification
- fix-status repair for records whose status/read flags disagree
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends

from app.api.deps import get_current_user
from app.core.exceptions import AuthorizationError, ResourceNotFoundError
from app.db.mongo import get_connections_collection, to_object_id
from app.models.notification import serialize_notification
from app.schemas.notification import (
    ConnectionNotificationRequest,
    MarkReadRequest,
    TestNotificationRequest,
)
from app.services import notification_service
from utils.constants import NOTIFICATION_SYSTEM

router = APIRouter()


@router.get("")
async def list_notifications(user: Dict[str, Any] = Depends(get_current_user)):
    notifications = await notification_service.list_notifications(user["_id"])
    return {"success": True, "count": len(notifications), "notifications": notifications}


@router.get("/unread-count")
async def unread_count(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "unread": await notification_service.unread_count(user["_id"])}


@router.post("/mark-read")
async def mark_read(
    body: Optional[MarkReadRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
):
    ids = body.notification_ids if body else None
    count = await notification_service.mark_read(user["_id"], ids)
    return {"success": True, "message": "Notifications marked as read", "marked_count": count}


async def _mark_all(user: Dict[str, Any]) -> Dict[str, Any]:
    result = await notification_service.mark_all_read(user["_id"])
    return {"success": True, "message": "All notifications marked as read", **result}


@router.put("/read-all")
async def read_all(user: Dict[str, Any] = Depends(get_current_user)):
    return await _mark_all(user)


@router.put("/read/all")
async def read_all_alias(user: Dict[str, Any] = Depends(get_current_user)):
    return await _mark_all(user)


@router.post("/mark-all-read")
async def mark_all_read(user: Dict[str, Any] = Depends(get_current_user)):
    return await _mark_all(user)


@router.put("/fix-status")
async def fix_status(user: Dict[str, Any] = Depends(get_current_user)):
    counts = await notification_service.fix_status(user["_id"])
    return {"success": True, "message": "Notification statuses fixed", **counts}


@router.delete("/clear-all")
async def clear_all(user: Dict[str, Any] = Depends(get_current_user)):
    count = await notification_service.clear_all(user["_id"])
    return {"success": True, "message": "All notifications cleared", "count": count}


@router.delete("")
async def delete_all(user: Dict[str, Any] = Depends(get_current_user)):
    count = await notification_service.clear_all(user["_id"])
    return {"success": True, "message": "All notifications deleted", "count": count}


@router.post("/connection-request", status_code=201)
async def connection_request_notification(
    body: ConnectionNotificationRequest,
    user: Dict[str, Any] = Depends(get_current_user),
):
    """
    Creates the request notification for one of the caller's pending
    outgoing connections (used by clients that missed the automatic one).
    """
    connection = await get_connections_collection().find_one({
        "_id": to_object_id(body.connection_id, "connection_id"),
        "receiver_id": to_object_id(body.receiver_id, "receiver_id"),
    })
    if not connection:
        raise ResourceNotFoundError("Connection not found", code="CONNECTION_NOT_FOUND")
    if connection["sender_id"] != user["_id"]:
        raise AuthorizationError("Only the sender can notify about this connection")

    notification = await notification_service.notify_connection_request(connection, user)
    return {"success": True, "notification": serialize_notification(notification)}


@router.post("/test", status_code=201)
async def test_notification(
    body: Optional[TestNotificationRequest] = Body(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
):
    message = (body.message if body else None) or "This is a test notification"
    notification = await notification_service.create_notification(
        user["_id"], NOTIFICATION_SYSTEM, "Test Notification", message,
    )
    return {"success": True, "notification": serialize_notification(notification)}


@router.delete("/{notification_id}")
async def delete_notification(notification_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await notification_service.delete_notification(user["_id"], notification_id)
    return {"success": True, "message": "Notification deleted"}
