"""
app/schemas/chat.py

Purpose: Chat request bodies

- Plain messages send ``content``
- Encrypted messages send ``encrypted_content`` + ``encrypted_key`` (+ ``iv``),
  produced and consumed by clients only
"""

from typing import Optional

from pydantic import BaseModel, Field


class SendMessageRequest(BaseModel):
    receiver_id: str
    content: Optional[str] = Field(default=None, max_length=10000)
    encrypted_content: Optional[str] = None
    encrypted_key: Optional[str] = None
    iv: Optional[str] = None
    message_type: str = "text"
    client_message_id: Optional[str] = None


class UpdateMessageRequest(BaseModel):
    content: Optional[str] = Field(default=None, max_length=10000)


class CreateConversationRequest(BaseModel):
    user_id: str


class RegisterKeyRequest(BaseModel):
    public_key: Optional[str] = None


class VerifyKeyRequest(BaseModel):
    user_id: str
    fingerprint: str
