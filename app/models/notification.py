"""
app/models/notification.py

Purpose: Notification document

- Carries two unread signals, ``status`` ("read"/"unread") and boolean
  ``read``; writers always set both together
- Optional links back to the connection and sender that produced it
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from app.models.document import serialize_document
from utils.constants import STATUS_READ, STATUS_UNREAD


def read_fields(is_read: bool, now: datetime) -> Dict[str, Any]:
    """The paired status/read fields for a read state."""
    return {
        "status": STATUS_READ if is_read else STATUS_UNREAD,
        "read": is_read,
        "read_at": now if is_read else None,
        "updated_at": now,
    }


def new_notification_document(
    user_id: ObjectId,
    type: str,
    title: str,
    message: str,
    now: datetime,
    connection_id: Optional[ObjectId] = None,
    sender_id: Optional[ObjectId] = None,
    sender_name: Optional[str] = None,
    sender_avatar: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
    url: Optional[str] = None,
) -> Dict[str, Any]:
    doc = {
        "user_id": user_id,
        "type": type,
        "title": title,
        "message": message,
        "timestamp": now,
        "connection_id": connection_id,
        "sender_id": sender_id,
        "sender_name": sender_name,
        "sender_avatar": sender_avatar,
        "metadata": metadata or {},
        "url": url,
        "created_at": now,
    }
    doc.update(read_fields(False, now))
    return doc


def serialize_notification(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return serialize_document(doc)
