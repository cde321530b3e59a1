"""
app/services/file_service.py

Purpose: Validating and storing uploaded files

- Chat attachments: MIME allow-list, extension/MIME agreement,
  executable extensions refused, size cap
- Profile avatar (image/*) and resume (PDF)
- Files land under UPLOAD_DIR and are served from /uploads
"""

import asyncio
import os
import secrets
from typing import Any, Dict, Optional, Tuple

from app.core.config import settings
from app.core.exceptions import BadRequestError
from app.core.logging import get_logger
from utils.constants import CHAT_ALLOWED_MIME_TYPES, DANGEROUS_EXTENSIONS
from utils.sanitizer import sanitize_filename
from utils.time_utils import timestamp_ms

logger = get_logger(__name__)


def _extension(filename: str) -> str:
    return os.path.splitext(filename or "")[1].lower()


def validate_chat_file(filename: str, content_type: Optional[str], size: int) -> Tuple[bool, Optional[str]]:
    """
    Checks a chat attachment.

    Args:
        filename: Client file name
        content_type: Declared MIME type
        size: Size in bytes

    Returns:
        (is_valid, error message)
    """
    if not filename:
        return False, "No file provided"

    ext = _extension(filename)
    if ext in DANGEROUS_EXTENSIONS:
        return False, "This file type is not allowed for security reasons"

    allowed_exts = CHAT_ALLOWED_MIME_TYPES.get(content_type or "")
    if allowed_exts is None:
        return False, "File type not allowed"
    if ext not in allowed_exts:
        return False, "File extension does not match file type"

    if size <= 0:
        return False, "File is empty"
    if size > settings.MAX_CHAT_FILE_SIZE:
        limit_mb = settings.MAX_CHAT_FILE_SIZE // (1024 * 1024)
        return False, f"File size exceeds the {limit_mb}MB limit"

    return True, None


def _unique_name(user_id: str, filename: str) -> str:
    return f"{user_id}_{timestamp_ms()}_{secrets.token_hex(8)}{_extension(filename)}"


def _write(path: str, data: bytes):
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(data)


async def store_file(subdir: str, user_id: str, filename: str, data: bytes) -> str:
    """
    Writes bytes under UPLOAD_DIR/<subdir>/<user_id>/.

    Returns:
        Public URL path (``/uploads/...``)
    """
    stored_name = _unique_name(user_id, filename)
    relative = os.path.join(subdir, user_id, stored_name)
    await asyncio.to_thread(_write, os.path.join(settings.UPLOAD_DIR, relative), data)
    logger.info(f"Stored upload {relative} ({len(data)} bytes)", extra={"user_id": user_id})
    return "/uploads/" + relative.replace(os.sep, "/")


async def save_chat_file(user_id: str, filename: str, content_type: Optional[str], data: bytes) -> Dict[str, Any]:
    """
    Validates and stores a chat attachment.

    Raises:
        BadRequestError: If validation fails

    Returns:
        File metadata stored on the message
    """
    ok, error = validate_chat_file(filename, content_type, len(data))
    if not ok:
        raise BadRequestError(error, code="INVALID_FILE")

    url = await store_file("chat", user_id, filename, data)
    return {
        "file_name": sanitize_filename(filename),
        "file_size": len(data),
        "file_type": content_type,
        "url": url,
    }


async def save_profile_file(user_id: str, kind: str, filename: str, content_type: Optional[str], data: bytes) -> str:
    """
    Stores an avatar (``kind="avatar"``) or resume (``kind="resume"``).

    Raises:
        BadRequestError: Wrong type or over MAX_PROFILE_FILE_SIZE
    """
    if kind == "avatar":
        if not (content_type or "").startswith("image/"):
            raise BadRequestError("Only image files are allowed", code="INVALID_FILE")
    elif kind == "resume":
        if content_type != "application/pdf" or _extension(filename) != ".pdf":
            raise BadRequestError("Only PDF files are allowed", code="INVALID_FILE")
    else:
        raise ValueError(f"Unknown profile file kind: {kind}")

    if not data:
        raise BadRequestError("File is empty", code="INVALID_FILE")
    if len(data) > settings.MAX_PROFILE_FILE_SIZE:
        limit_mb = settings.MAX_PROFILE_FILE_SIZE // (1024 * 1024)
        raise BadRequestError(f"File size exceeds the {limit_mb}MB limit", code="FILE_TOO_LARGE")

    return await store_file(kind, user_id, filename, data)
