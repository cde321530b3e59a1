"""
app/models/preference.py

Purpose: UserPreference document (one per user)

- theme: light | dark | system, ``is_default`` until the user picks one
- layout flags used by the dashboard (rtl, boxed, container,
  caption_show, preset)
"""

from datetime import datetime
from typing import Any, Dict

from bson import ObjectId

from utils.constants import DEFAULT_LAYOUT_PREFERENCES


def new_preference_document(user_id: ObjectId, now: datetime) -> Dict[str, Any]:
    doc = {"user_id": user_id, "is_default": True, "created_at": now, "updated_at": now}
    doc.update(DEFAULT_LAYOUT_PREFERENCES)
    return doc


def layout_view(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Layout fields with defaults filled in."""
    return {
        key: doc.get(key, default) if doc.get(key) is not None else default
        for key, default in DEFAULT_LAYOUT_PREFERENCES.items()
    }
