"""
app/models/document.py

Purpose: Turning Mongo documents into JSON-safe dicts

- ObjectId -> hex string, ``_id`` -> ``id``
- datetime -> ISO-8601 string
"""

from datetime import datetime
from typing import Any, Dict, Optional

from bson import ObjectId


def to_jsonable(value: Any) -> Any:
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value


def serialize_document(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """
    Converts a raw document for API output.

    Args:
        doc: Document as returned by Motor

    Returns:
        Copy with ``id`` in place of ``_id`` and all values JSON-safe
    """
    if doc is None:
        return None
    data = {key: value for key, value in doc.items() if key != "_id"}
    if "_id" in doc:
        data = {"id": doc["_id"], **data}
    return to_jsonable(data)
