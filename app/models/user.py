"""
app/models/user.py

Purpose: User document model

- Account fields (email, username, bcrypt password, user_type)
- Verification and reset tokens, single active session id
- Co-founder profile fields ({value, custom} choices, skill lists)
- Safe projections for API output
"""

from datetime import datetime
from typing import Any, Dict, Optional

from app.models.document import serialize_document
from utils.constants import (
    PRIVATE_USER_FIELDS,
    USER_TYPE_USER,
    VERIFICATION_INACTIVE,
)

# Projection used for user lists and populated references
SUMMARY_FIELDS = ("full_name", "username", "email", "profile_picture")


def new_user_document(
    full_name: str,
    username: str,
    email: str,
    password_hash: str,
    now: datetime,
    user_type: str = USER_TYPE_USER,
    verification_status: str = VERIFICATION_INACTIVE,
    verification_token: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "full_name": full_name,
        "username": username,
        "email": email,
        "password": password_hash,
        "user_type": user_type,
        "verification_status": verification_status,
        "email_verified": verification_status != VERIFICATION_INACTIVE,
        "verification_token": verification_token,
        "reset_password_token": None,
        "reset_password_expires": None,
        "session_id": None,
        "private_mode": False,
        "profile_picture": None,
        "resume": None,
        "technical_skills": [],
        "soft_skills": [],
        "my_interests": [],
        "interests_looking_in_others": [],
        "platforms": [],
        "urls": [],
        "co_founders_count": 0,
        "user_since": now,
        "created_at": now,
        "updated_at": now,
    }


def public_user(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Full profile without credentials or tokens."""
    if doc is None:
        return None
    cleaned = {key: value for key, value in doc.items() if key not in PRIVATE_USER_FIELDS}
    return serialize_document(cleaned)


def user_summary(doc: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    if doc is None:
        return None
    summary = {"_id": doc["_id"]}
    for field in SUMMARY_FIELDS:
        summary[field] = doc.get(field)
    return serialize_document(summary)
