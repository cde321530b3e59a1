"""
app/models/conversation.py

Purpose: One-to-one conversation document

- conversation_id is the two participant ids, sorted, joined with "_"
- last_message preview, per-user unread counters, soft delete list
"""

from datetime import datetime
from typing import Any, Dict

from bson import ObjectId


def conversation_key(user_a: ObjectId, user_b: ObjectId) -> str:
    return "_".join(sorted([str(user_a), str(user_b)]))


def new_conversation_document(user_a: ObjectId, user_b: ObjectId, now: datetime) -> Dict[str, Any]:
    return {
        "conversation_id": conversation_key(user_a, user_b),
        "participants": [user_a, user_b],
        "last_message": None,
        "unread_count": {str(user_a): 0, str(user_b): 0},
        "deleted_for": [],
        "created_at": now,
        "updated_at": now,
    }
