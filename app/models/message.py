"""
app/models/message.py

Purpose: Chat message document

- Plain ``content`` in simplified mode, or an opaque client-side
  encryption envelope (encrypted_content, encrypted_key, iv) that the
  server stores and relays untouched
- Delivery/read status, soft delete and edit markers
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId

from app.models.document import serialize_document


def new_message_document(
    sender_id: ObjectId,
    receiver_id: ObjectId,
    conversation_id: str,
    now: datetime,
    content: Optional[str] = None,
    encrypted_content: Optional[str] = None,
    encrypted_key: Optional[str] = None,
    iv: Optional[str] = None,
    message_type: str = "text",
    file_metadata: Optional[Dict[str, Any]] = None,
    client_message_id: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "sender_id": sender_id,
        "receiver_id": receiver_id,
        "content": content,
        "encrypted_content": encrypted_content,
        "encrypted_key": encrypted_key,
        "iv": iv,
        "message_type": message_type,
        "file_metadata": file_metadata,
        "status": {"delivered": False, "delivered_at": None, "read": False, "read_at": None},
        "metadata": {
            "conversation_id": conversation_id,
            "client_generated_id": client_message_id,
            "simplified": encrypted_content is None,
        },
        "is_deleted": False,
        "is_edited": False,
        "edited_at": None,
        "created_at": now,
        "updated_at": now,
    }


def serialize_message(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    data = serialize_document(doc)
    if doc.get("is_deleted"):
        data["content"] = None
        data["encrypted_content"] = None
        data["encrypted_key"] = None
        data["file_metadata"] = None
    return data
