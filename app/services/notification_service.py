"""
app/services/notification_service.py

Purpose: Notification storage, read tracking and repair

- Every write sets ``status`` and ``read`` together
- Unread badge counts status "unread" with ``read`` not true
- fix_status reconciles records where the two flags disagree
- New notifications are pushed to the user's open sockets
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId

from app.core.exceptions import ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_notifications_collection, to_object_id
from app.models.notification import (
    new_notification_document,
    read_fields,
    serialize_notification,
)
from app.models.user import user_summary
from app.realtime.hub import hub
from app.services import user_service
from utils.constants import (
    NOTIFICATION_CONNECTION_REQUEST,
    NOTIFICATION_TYPES,
    NOTIFICATION_OTHER,
    STATUS_READ,
    STATUS_UNREAD,
)
from utils.time_utils import utc_now

logger = get_logger(__name__)

UNREAD_QUERY = {"status": STATUS_UNREAD, "read": {"$ne": True}}
INCONSISTENT_QUERY = {
    "$or": [
        {"status": STATUS_READ, "read": False},
        {"status": STATUS_UNREAD, "read": True},
    ]
}


async def create_notification(
    user_id: ObjectId,
    type: str,
    title: str,
    message: str,
    push: bool = True,
    **fields: Any,
) -> Dict[str, Any]:
    """
    Stores a notification and optionally pushes it over websockets.

    Args:
        user_id: Recipient
        type: One of NOTIFICATION_TYPES (unknown types become "other")
        title: Short heading
        message: Body text
        push: Emit a realtime ``notification`` event
        **fields: connection_id, sender_id, sender_name, sender_avatar,
            metadata, url

    Returns:
        The stored document
    """
    if type not in NOTIFICATION_TYPES:
        type = NOTIFICATION_OTHER

    doc = new_notification_document(user_id, type, title, message, utc_now(), **fields)
    result = await get_notifications_collection().insert_one(doc)
    doc["_id"] = result.inserted_id

    logger.info(
        f"Notification created: {type}",
        extra={"user_id": str(user_id), "notification_id": str(result.inserted_id)}
    )

    if push:
        await hub.send_to_user(str(user_id), "notification", serialize_notification(doc))
    return doc


async def notify_connection_request(connection: Dict[str, Any], sender: Dict[str, Any]) -> Dict[str, Any]:
    """
    Notifies the receiver of a (re)opened connection request and emits
    ``connection_request`` to their sockets.
    """
    doc = await create_notification(
        connection["receiver_id"],
        NOTIFICATION_CONNECTION_REQUEST,
        "New Connection Request",
        f"{sender.get('full_name') or sender.get('username')} wants to connect with you",
        connection_id=connection["_id"],
        sender_id=sender["_id"],
        sender_name=sender.get("full_name"),
        sender_avatar=sender.get("profile_picture"),
        url="/connections",
    )
    await hub.send_to_user(
        str(connection["receiver_id"]),
        "connection_request",
        {
            "connection_id": connection["_id"],
            "sender": user_summary(sender),
            "notification_id": doc["_id"],
            "timestamp": doc["timestamp"],
        },
    )
    return doc


async def list_notifications(user_id: ObjectId) -> List[Dict[str, Any]]:
    """
    Returns the user's notifications, newest first, with the sender attached.
    """
    cursor = get_notifications_collection().find({"user_id": user_id}).sort("timestamp", -1)
    notifications = [doc async for doc in cursor]

    senders = await user_service.get_users_by_ids(n.get("sender_id") for n in notifications)
    results = []
    for doc in notifications:
        data = serialize_notification(doc)
        data["sender"] = user_summary(senders.get(doc.get("sender_id")))
        results.append(data)
    return results


async def unread_count(user_id: ObjectId) -> int:
    return await get_notifications_collection().count_documents({"user_id": user_id, **UNREAD_QUERY})


async def mark_read(user_id: ObjectId, notification_ids: Optional[List[str]] = None) -> int:
    """
    Marks the given notifications (or all of the user's) as read.

    Returns:
        Number of documents changed
    """
    query: Dict[str, Any] = {"user_id": user_id}
    if notification_ids:
        query["_id"] = {"$in": [to_object_id(nid, "notification_ids") for nid in notification_ids]}

    result = await get_notifications_collection().update_many(
        query, {"$set": read_fields(True, utc_now())}
    )
    return result.modified_count


async def mark_all_read(user_id: ObjectId) -> Dict[str, int]:
    """
    Marks every unread notification read.

    Returns:
        marked_count, total_matched and remaining_unread
    """
    with LogContext(user_id=str(user_id)):
        notifications = get_notifications_collection()
        result = await notifications.update_many(
            {"user_id": user_id, "$or": [{"status": STATUS_UNREAD}, {"read": {"$ne": True}}]},
            {"$set": read_fields(True, utc_now())}
        )
        remaining = await unread_count(user_id)
        if remaining:
            logger.warning(f"{remaining} notifications still unread after mark-all-read")
        logger.info(f"Marked {result.modified_count} notifications read")
        return {
            "marked_count": result.modified_count,
            "total_matched": result.matched_count,
            "remaining_unread": remaining,
        }


async def clear_all(user_id: ObjectId) -> int:
    result = await get_notifications_collection().delete_many({"user_id": user_id})
    logger.info(f"Cleared {result.deleted_count} notifications", extra={"user_id": str(user_id)})
    return result.deleted_count


async def delete_notification(user_id: ObjectId, notification_id: str):
    """
    Raises:
        ResourceNotFoundError: Not found or owned by someone else
    """
    result = await get_notifications_collection().delete_one(
        {"_id": to_object_id(notification_id, "notification_id"), "user_id": user_id}
    )
    if result.deleted_count == 0:
        raise ResourceNotFoundError("Notification not found", code="NOTIFICATION_NOT_FOUND")


async def delete_for_connection(connection_id: ObjectId) -> int:
    result = await get_notifications_collection().delete_many({"connection_id": connection_id})
    return result.deleted_count


async def fix_status(user_id: ObjectId) -> Dict[str, int]:
    """
    Repairs notifications whose ``status`` and ``read`` flags disagree.

    Rules, applied in order:
        read true, status unread   -> status read
        status read, read false    -> read true
        read missing               -> follows status (read when status missing too)
        status missing             -> follows read

    Returns:
        Per-rule counts plus initial and remaining inconsistency counts
    """
    with LogContext(user_id=str(user_id)):
        notifications = get_notifications_collection()
        now = utc_now()

        initial = await notifications.count_documents({"user_id": user_id, **INCONSISTENT_QUERY})

        read_fixed = await notifications.update_many(
            {"user_id": user_id, "read": True, "status": STATUS_UNREAD},
            {"$set": {"status": STATUS_READ, "updated_at": now}}
        )
        unread_fixed = await notifications.update_many(
            {"user_id": user_id, "read": False, "status": STATUS_READ},
            {"$set": {"read": True, "updated_at": now}}
        )

        missing_read_unread = await notifications.update_many(
            {"user_id": user_id, "read": {"$exists": False}, "status": STATUS_UNREAD},
            {"$set": {"read": False, "updated_at": now}}
        )
        missing_read_other = await notifications.update_many(
            {"user_id": user_id, "read": {"$exists": False}},
            {"$set": {"read": True, "status": STATUS_READ, "updated_at": now}}
        )

        missing_status_unread = await notifications.update_many(
            {"user_id": user_id, "status": {"$exists": False}, "read": False},
            {"$set": {"status": STATUS_UNREAD, "updated_at": now}}
        )
        missing_status_read = await notifications.update_many(
            {"user_id": user_id, "status": {"$exists": False}},
            {"$set": {"status": STATUS_READ, "read": True, "updated_at": now}}
        )

        still_inconsistent = await notifications.count_documents({"user_id": user_id, **INCONSISTENT_QUERY})

        counts = {
            "read_fixed": read_fixed.modified_count,
            "unread_fixed": unread_fixed.modified_count,
            "missing_read_fixed": missing_read_unread.modified_count + missing_read_other.modified_count,
            "missing_status_fixed": missing_status_unread.modified_count + missing_status_read.modified_count,
            "still_inconsistent": still_inconsistent,
            "initial_inconsistent_count": initial,
        }
        logger.info(f"Notification status repair: {counts}")
        return counts
