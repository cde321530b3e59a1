"""
app/api/chat.py

Purpose: Chat REST endpoints

- Conversations: list, unread counts, get, create, soft delete
- Messages: send (text or encrypted envelope), send file, history,
  read receipts, edit, soft delete
- Public keys for client-side encryption
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile

from app.api.deps import get_current_user
from app.models.document import serialize_document
from app.models.message import serialize_message
from app.schemas.chat import (
    CreateConversationRequest,
    RegisterKeyRequest,
    SendMessageRequest,
    UpdateMessageRequest,
    VerifyKeyRequest,
)
from app.services import file_service, key_service
from app.services.chat_service import get_chat_service
from utils.constants import DEFAULT_MESSAGE_LIMIT

router = APIRouter()
chat = get_chat_service()


@router.get("/health")
async def chat_health():
    return {"success": True, "status": "ok", "service": "chat"}


# ============================================================
# CONVERSATIONS
# ============================================================

@router.get("/conversations")
async def list_conversations(user: Dict[str, Any] = Depends(get_current_user)):
    conversations = await chat.list_conversations(user["_id"])
    return {"success": True, "count": len(conversations), "data": conversations}


@router.get("/conversations/unread/count")
async def unread_counts(user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, **await chat.unread_counts(user["_id"])}


@router.get("/conversations/{conversation_id}")
async def get_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": await chat.get_conversation(user["_id"], conversation_id)}


@router.post("/conversations", status_code=201)
async def create_conversation(body: CreateConversationRequest, user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": await chat.create_conversation(user["_id"], body.user_id)}


@router.delete("/conversations/{conversation_id}")
async def delete_conversation(conversation_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await chat.delete_conversation(user["_id"], conversation_id)
    return {"success": True, "message": "Conversation deleted"}


# ============================================================
# MESSAGES
# ============================================================

def _sent_payload(message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "success": True,
        "message_id": str(message["_id"]),
        "client_message_id": message["metadata"].get("client_generated_id"),
        "conversation_id": message["metadata"]["conversation_id"],
        "timestamp": message["created_at"].isoformat(),
        "data": serialize_message(message),
    }


@router.post("/messages", status_code=201)
async def send_message(body: SendMessageRequest, user: Dict[str, Any] = Depends(get_current_user)):
    message = await chat.send_message(
        user,
        body.receiver_id,
        content=body.content,
        encrypted_content=body.encrypted_content,
        encrypted_key=body.encrypted_key,
        iv=body.iv,
        message_type=body.message_type,
        client_message_id=body.client_message_id,
    )
    return _sent_payload(message)


@router.post("/messages/file", status_code=201)
async def send_file_message(
    receiver_id: str = Form(...),
    file: UploadFile = File(...),
    encrypted_key: Optional[str] = Form(default=None),
    iv: Optional[str] = Form(default=None),
    client_message_id: Optional[str] = Form(default=None),
    user: Dict[str, Any] = Depends(get_current_user),
):
    # Nothing is written to disk for a bad receiver
    receiver_oid = await chat.validate_receiver(user, receiver_id)
    data = await file.read()
    metadata = await file_service.save_chat_file(str(user["_id"]), file.filename, file.content_type, data)
    message_type = "image" if (file.content_type or "").startswith("image/") else "file"
    message = await chat.send_message(
        user,
        receiver_oid,
        encrypted_key=encrypted_key,
        iv=iv,
        message_type=message_type,
        client_message_id=client_message_id,
        file_metadata=metadata,
    )
    return _sent_payload(message)


@router.get("/messages/user/{user_id}")
async def get_messages(
    user_id: str,
    limit: int = Query(default=DEFAULT_MESSAGE_LIMIT, ge=1),
    offset: int = Query(default=0, ge=0),
    user: Dict[str, Any] = Depends(get_current_user),
):
    messages = await chat.get_messages(user["_id"], user_id, limit, offset)
    return {"success": True, "count": len(messages), "data": [serialize_message(m) for m in messages]}


@router.put("/messages/read/{user_id}")
async def mark_messages_read(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    count = await chat.mark_messages_read(user["_id"], user_id)
    return {"success": True, "message": "Messages marked as read", "count": count}


@router.get("/messages/{message_id}")
async def get_message(message_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": serialize_message(await chat.get_message(user["_id"], message_id))}


@router.put("/messages/{message_id}")
async def update_message(
    message_id: str,
    body: UpdateMessageRequest,
    user: Dict[str, Any] = Depends(get_current_user),
):
    message = await chat.update_message(user["_id"], message_id, body.content)
    return {"success": True, "message": "Message updated", "data": serialize_message(message)}


@router.delete("/messages/{message_id}")
async def delete_message(message_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    await chat.delete_message(user["_id"], message_id)
    return {"success": True, "message": "Message deleted successfully"}


@router.post("/upload-file", status_code=201)
async def upload_file(file: UploadFile = File(...), user: Dict[str, Any] = Depends(get_current_user)):
    data = await file.read()
    metadata = await file_service.save_chat_file(str(user["_id"]), file.filename, file.content_type, data)
    return {"success": True, "file": metadata}


# ============================================================
# KEYS
# ============================================================

def _key_payload(doc: Dict[str, Any]) -> Dict[str, Any]:
    data = serialize_document(doc)
    return {
        "user_id": data["user_id"],
        "public_key": data["public_key"],
        "fingerprint": data["fingerprint"],
        "updated_at": data.get("updated_at"),
    }


@router.post("/keys/register", status_code=201)
async def register_key(body: RegisterKeyRequest, user: Dict[str, Any] = Depends(get_current_user)):
    doc = await key_service.register_key(user["_id"], body.public_key)
    return {"success": True, "message": "Public key registered successfully", "data": _key_payload(doc)}


@router.post("/keys/verify")
async def verify_key(body: VerifyKeyRequest, user: Dict[str, Any] = Depends(get_current_user)):
    is_valid = await key_service.verify_fingerprint(body.user_id, body.fingerprint)
    return {"success": True, "is_valid": is_valid}


@router.put("/keys/rotate")
async def rotate_key(body: RegisterKeyRequest, user: Dict[str, Any] = Depends(get_current_user)):
    doc = await key_service.register_key(user["_id"], body.public_key)
    return {"success": True, "message": "Public key rotated successfully", "data": _key_payload(doc)}


@router.get("/keys/{user_id}")
async def get_key(user_id: str, user: Dict[str, Any] = Depends(get_current_user)):
    return {"success": True, "data": _key_payload(await key_service.get_key(user_id))}
