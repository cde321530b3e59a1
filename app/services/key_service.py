"""
app/services/key_service.py

Purpose: Public key directory for client-side encrypted chat

- One public key per user; rotation replaces it
- Fingerprint is the SHA-256 hex digest of the decoded key bytes
- The server never holds private keys
"""

import base64
import binascii
import hashlib
from typing import Any, Dict

from bson import ObjectId
from pymongo import ReturnDocument

from app.core.exceptions import BadRequestError, ResourceNotFoundError
from app.core.logging import get_logger
from app.db.mongo import get_user_keys_collection, to_object_id
from utils.constants import MIN_PUBLIC_KEY_LENGTH
from utils.time_utils import utc_now

logger = get_logger(__name__)


def calculate_fingerprint(public_key: str) -> str:
    """
    Args:
        public_key: Base64 encoded key

    Returns:
        Hex SHA-256 of the decoded bytes

    Raises:
        BadRequestError: If the key is not valid base64
    """
    try:
        raw = base64.b64decode(public_key, validate=True)
    except (binascii.Error, ValueError):
        raise BadRequestError("Invalid key format - unable to calculate fingerprint", code="INVALID_KEY")
    return hashlib.sha256(raw).hexdigest()


def _check_key(public_key: Any):
    if not isinstance(public_key, str) or len(public_key) < MIN_PUBLIC_KEY_LENGTH:
        raise BadRequestError("Invalid public key format", code="INVALID_KEY")


async def register_key(user_id: ObjectId, public_key: str) -> Dict[str, Any]:
    """
    Stores (or replaces) the user's public key.

    Returns:
        The key document
    """
    _check_key(public_key)
    fingerprint = calculate_fingerprint(public_key)
    now = utc_now()

    doc = await get_user_keys_collection().find_one_and_update(
        {"user_id": user_id},
        {
            "$set": {"public_key": public_key, "fingerprint": fingerprint, "updated_at": now},
            "$setOnInsert": {"created_at": now},
        },
        upsert=True,
        return_document=ReturnDocument.AFTER,
    )
    logger.info(f"Public key registered ({fingerprint[:16]})", extra={"user_id": str(user_id)})
    return doc


async def get_key(user_id: Any) -> Dict[str, Any]:
    doc = await get_user_keys_collection().find_one({"user_id": to_object_id(user_id, "user_id")})
    if not doc:
        raise ResourceNotFoundError("Public key not found for this user", code="KEY_NOT_FOUND")
    return doc


async def verify_fingerprint(user_id: Any, fingerprint: str) -> bool:
    if not fingerprint:
        raise BadRequestError("User ID and fingerprint are required")
    doc = await get_user_keys_collection().find_one({"user_id": to_object_id(user_id, "user_id")})
    return bool(doc) and doc.get("fingerprint") == fingerprint.lower()


async def delete_key(user_id: ObjectId):
    await get_user_keys_collection().delete_one({"user_id": user_id})
