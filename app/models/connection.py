"""
app/models/connection.py

Purpose: Connection (friend request) document

- sender_id -> receiver_id direction, purpose, status
- force_unique is only set by the repair endpoint to step around the
  (sender, receiver, purpose) unique index
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from app.models.document import serialize_document
from utils.constants import CONNECTION_PENDING, DEFAULT_CONNECTION_PURPOSE


def new_connection_document(
    sender_id: ObjectId,
    receiver_id: ObjectId,
    now: datetime,
    purpose: str = DEFAULT_CONNECTION_PURPOSE,
    force_unique: Optional[int] = None,
) -> Dict[str, Any]:
    return {
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "purpose": purpose or DEFAULT_CONNECTION_PURPOSE,
        "status": CONNECTION_PENDING,
        "force_unique": force_unique,
        "accepted_at": None,
        "created_at": now,
        "updated_at": now,
    }


def serialize_connection(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    return serialize_document(doc)
