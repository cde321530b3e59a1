"""
app/services/chat_service.py

Purpose: One-to-one conversations and messages

- Conversation per user pair, keyed "<id>_<id>" (sorted)
- Last-message preview and per-user unread counters
- Soft delete for conversations (per user) and messages
- Message bodies are either escaped plain text or an opaque encrypted
  envelope that is stored as given
"""

from typing import Any, Dict, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from app.core.exceptions import AuthorizationError, BadRequestError, ResourceNotFoundError
from app.core.logging import get_logger, LogContext
from app.db.mongo import get_conversations_collection, get_messages_collection, to_object_id
from app.models.conversation import conversation_key, new_conversation_document
from app.models.document import serialize_document
from app.models.message import new_message_document, serialize_message
from app.models.user import user_summary
from app.realtime.hub import hub
from app.services import user_service
from utils.constants import (
    DEFAULT_MESSAGE_LIMIT,
    MAX_MESSAGE_LIMIT,
    MESSAGE_PREVIEW_LENGTH,
    MESSAGE_TYPES,
)
from utils.sanitizer import sanitize_input
from utils.time_utils import utc_now

logger = get_logger(__name__)


def _preview(message: Dict[str, Any]) -> str:
    if message.get("message_type") in ("file", "image"):
        name = (message.get("file_metadata") or {}).get("file_name") or "file"
        return f"📎 {name}"[:MESSAGE_PREVIEW_LENGTH]
    if message.get("content") is None:
        return "Encrypted message"
    return message["content"][:MESSAGE_PREVIEW_LENGTH]


def _last_message(message: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "message_id": message["_id"],
        "sender_id": message["sender_id"],
        "preview": _preview(message),
        "message_type": message["message_type"],
        "timestamp": message["created_at"],
    }


class ChatService:
    """Service for conversations and messages."""

    def _conversations(self) -> AsyncIOMotorCollection:
        return get_conversations_collection()

    def _messages(self) -> AsyncIOMotorCollection:
        return get_messages_collection()

    # ------------------------------------------------------------------
    # Conversations
    # ------------------------------------------------------------------

    async def find_or_create_conversation(self, user_a: ObjectId, user_b: ObjectId) -> Dict[str, Any]:
        key = conversation_key(user_a, user_b)
        conversation = await self._conversations().find_one({"conversation_id": key})
        if conversation:
            return conversation

        conversation = new_conversation_document(user_a, user_b, utc_now())
        try:
            result = await self._conversations().insert_one(conversation)
            conversation["_id"] = result.inserted_id
            logger.info(f"Conversation created: {key}", extra={"conversation_id": key})
        except DuplicateKeyError:
            conversation = await self._conversations().find_one({"conversation_id": key})
        return conversation

    async def _conversation_for(self, user_id: ObjectId, conversation_id: str) -> Dict[str, Any]:
        conversation = await self._conversations().find_one({"conversation_id": conversation_id})
        if not conversation:
            raise ResourceNotFoundError("Conversation not found", code="CONVERSATION_NOT_FOUND")
        if user_id not in conversation["participants"]:
            raise AuthorizationError("You are not authorized to access this conversation")
        return conversation

    async def is_participant(self, user_id: ObjectId, conversation_id: str) -> bool:
        conversation = await self._conversations().find_one(
            {"conversation_id": conversation_id, "participants": user_id}
        )
        return conversation is not None

    def _conversation_view(self, conversation: Dict[str, Any], user_id: ObjectId, other: Optional[Dict[str, Any]]) -> Dict[str, Any]:
        return {
            "conversation_id": conversation["conversation_id"],
            "other_user": user_summary(other),
            "last_message": serialize_document(conversation.get("last_message")),
            "unread_count": (conversation.get("unread_count") or {}).get(str(user_id), 0),
            "last_activity": conversation.get("updated_at"),
        }

    async def list_conversations(self, user_id: ObjectId) -> List[Dict[str, Any]]:
        """
        Conversations not deleted by the user, most recent activity first.
        """
        cursor = self._conversations().find(
            {"participants": user_id, "deleted_for": {"$ne": user_id}}
        ).sort("updated_at", -1)
        conversations = [doc async for doc in cursor]

        other_ids = [next((p for p in c["participants"] if p != user_id), None) for c in conversations]
        users = await user_service.get_users_by_ids(other_ids)
        return [
            self._conversation_view(conversation, user_id, users.get(other_id))
            for conversation, other_id in zip(conversations, other_ids)
        ]

    async def get_conversation(self, user_id: ObjectId, conversation_id: str) -> Dict[str, Any]:
        """
        Raises:
            ResourceNotFoundError: Unknown conversation
            AuthorizationError: Caller is not a participant
        """
        conversation = await self._conversation_for(user_id, conversation_id)
        other_id = next((p for p in conversation["participants"] if p != user_id), None)
        other = await user_service.get_user_by_id(other_id) if other_id else None
        await self.mark_conversation_read(conversation_id, user_id)
        view = self._conversation_view(conversation, user_id, other)
        view["unread_count"] = 0
        return view

    async def create_conversation(self, user_id: ObjectId, other_user_id: Any) -> Dict[str, Any]:
        other_id = to_object_id(other_user_id, "user_id")
        if other_id == user_id:
            raise BadRequestError("Cannot start a conversation with yourself")
        other = await user_service.require_user(other_id)

        conversation = await self.find_or_create_conversation(user_id, other_id)
        if user_id in conversation.get("deleted_for", []):
            await self._conversations().update_one(
                {"_id": conversation["_id"]}, {"$pull": {"deleted_for": user_id}}
            )
        return self._conversation_view(conversation, user_id, other)

    async def delete_conversation(self, user_id: ObjectId, conversation_id: str):
        """Hides the conversation for the caller only."""
        conversation = await self._conversation_for(user_id, conversation_id)
        await self._conversations().update_one(
            {"_id": conversation["_id"]},
            {"$addToSet": {"deleted_for": user_id}, "$set": {"updated_at": utc_now()}}
        )
        logger.info("Conversation hidden", extra={"user_id": str(user_id), "conversation_id": conversation_id})

    async def mark_conversation_read(self, conversation_id: str, user_id: ObjectId):
        await self._conversations().update_one(
            {"conversation_id": conversation_id},
            {"$set": {f"unread_count.{user_id}": 0}}
        )

    async def unread_counts(self, user_id: ObjectId) -> Dict[str, Any]:
        cursor = self._conversations().find({"participants": user_id, "deleted_for": {"$ne": user_id}})
        total = 0
        per_conversation = {}
        async for conversation in cursor:
            count = (conversation.get("unread_count") or {}).get(str(user_id), 0)
            total += count
            if count > 0:
                per_conversation[conversation["conversation_id"]] = count
        return {"total_unread": total, "conversation_counts": per_conversation}

    async def _record_last_message(self, message: Dict[str, Any]):
        receiver = str(message["receiver_id"])
        await self._conversations().update_one(
            {"conversation_id": message["metadata"]["conversation_id"]},
            {
                "$set": {
                    "last_message": _last_message(message),
                    "deleted_for": [],
                    "updated_at": message["created_at"],
                },
                "$inc": {f"unread_count.{receiver}": 1},
            }
        )

    # ------------------------------------------------------------------
    # Messages
    # ------------------------------------------------------------------

    async def validate_receiver(self, sender: Dict[str, Any], receiver_id: Any) -> ObjectId:
        """
        Raises:
            BadRequestError: Malformed id, or messaging yourself
            ResourceNotFoundError: Unknown receiver
        """
        receiver_oid = to_object_id(receiver_id, "receiver_id")
        if receiver_oid == sender["_id"]:
            raise BadRequestError("Cannot send a message to yourself")
        await user_service.require_user(receiver_oid)
        return receiver_oid

    async def send_message(
        self,
        sender: Dict[str, Any],
        receiver_id: Any,
        content: Optional[str] = None,
        encrypted_content: Optional[str] = None,
        encrypted_key: Optional[str] = None,
        iv: Optional[str] = None,
        message_type: str = "text",
        client_message_id: Optional[str] = None,
        file_metadata: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Stores a message, updates the conversation and pushes
        ``new_message`` to the receiver.

        Plain messages need ``content``; encrypted ones need
        ``encrypted_content`` and ``encrypted_key``. File messages carry
        ``file_metadata`` instead.

        Raises:
            BadRequestError: Missing fields, bad type, or messaging yourself
            ResourceNotFoundError: Unknown receiver
        """
        receiver_oid = to_object_id(receiver_id, "receiver_id")
        if receiver_oid == sender["_id"]:
            raise BadRequestError("Cannot send a message to yourself")
        if message_type not in MESSAGE_TYPES:
            raise BadRequestError(f"Invalid message type: {message_type}")

        if file_metadata is None:
            if encrypted_content is not None or encrypted_key is not None:
                if not encrypted_content or not encrypted_key:
                    raise BadRequestError("Missing required fields for encrypted message")
                content = None
            else:
                if not content or not content.strip():
                    raise BadRequestError("Missing required fields")
                content = sanitize_input(content)

        await user_service.require_user(receiver_oid)

        with LogContext(user_id=str(sender["_id"])):
            conversation = await self.find_or_create_conversation(sender["_id"], receiver_oid)
            message = new_message_document(
                sender["_id"],
                receiver_oid,
                conversation["conversation_id"],
                utc_now(),
                content=content,
                encrypted_content=encrypted_content,
                encrypted_key=encrypted_key,
                iv=iv,
                message_type=message_type,
                file_metadata=file_metadata,
                client_message_id=client_message_id,
            )
            result = await self._messages().insert_one(message)
            message["_id"] = result.inserted_id
            await self._record_last_message(message)

            delivered = await hub.send_to_chat(str(receiver_oid), "new_message", serialize_message(message))
            if delivered:
                now = utc_now()
                await self._messages().update_one(
                    {"_id": message["_id"]},
                    {"$set": {"status.delivered": True, "status.delivered_at": now}}
                )
                message["status"]["delivered"] = True
                message["status"]["delivered_at"] = now

            logger.info(
                f"Message sent ({message_type})",
                extra={"conversation_id": conversation["conversation_id"]}
            )
            return message

    async def get_messages(self, user_id: ObjectId, other_user_id: Any, limit: int = DEFAULT_MESSAGE_LIMIT, offset: int = 0) -> List[Dict[str, Any]]:
        """
        Messages between the caller and another user, newest first.
        Reading the page marks the other user's messages read.
        """
        other_id = to_object_id(other_user_id, "user_id")
        limit = max(1, min(limit, MAX_MESSAGE_LIMIT))
        offset = max(0, offset)

        cursor = self._messages().find({
            "$or": [
                {"sender_id": user_id, "receiver_id": other_id, "is_deleted": False},
                {"sender_id": other_id, "receiver_id": user_id, "is_deleted": False},
            ]
        }).sort([("created_at", -1), ("_id", -1)]).skip(offset).limit(limit)
        messages = [doc async for doc in cursor]

        await self.mark_messages_read(user_id, other_id)
        return messages

    async def get_message(self, user_id: ObjectId, message_id: Any) -> Dict[str, Any]:
        message = await self._messages().find_one({
            "_id": to_object_id(message_id, "message_id"),
            "$or": [{"sender_id": user_id}, {"receiver_id": user_id}],
            "is_deleted": False,
        })
        if not message:
            raise ResourceNotFoundError("Message not found", code="MESSAGE_NOT_FOUND")
        return message

    async def mark_messages_read(self, user_id: ObjectId, other_user_id: Any) -> int:
        """
        Marks messages from ``other_user_id`` to the caller as read and
        notifies the sender with ``messages_read``.

        Returns:
            Number of messages updated
        """
        other_id = to_object_id(other_user_id, "user_id")
        now = utc_now()
        result = await self._messages().update_many(
            {"sender_id": other_id, "receiver_id": user_id, "status.read": False},
            {"$set": {"status.read": True, "status.read_at": now, "status.delivered": True}}
        )
        key = conversation_key(user_id, other_id)
        await self.mark_conversation_read(key, user_id)

        if result.modified_count:
            await hub.send_to_chat(
                str(other_id),
                "messages_read",
                {"conversation_id": key, "reader_id": user_id, "read_at": now},
            )
        return result.modified_count

    async def update_message(self, user_id: ObjectId, message_id: Any, content: Optional[str]) -> Dict[str, Any]:
        """
        Sender edits a text message.

        Raises:
            BadRequestError: Empty content, deleted message, or file/image message
            ResourceNotFoundError: Not found or not the sender
        """
        if not content or not content.strip():
            raise BadRequestError("Message content is required")

        message = await self._messages().find_one(
            {"_id": to_object_id(message_id, "message_id"), "sender_id": user_id}
        )
        if not message:
            raise ResourceNotFoundError(
                "Message not found or you do not have permission to edit it",
                code="MESSAGE_NOT_FOUND",
            )
        if message.get("is_deleted"):
            raise BadRequestError("Cannot edit a deleted message")
        if message.get("message_type") in ("file", "image"):
            raise BadRequestError("Cannot edit file or image messages")

        now = utc_now()
        updated = await self._messages().find_one_and_update(
            {"_id": message["_id"]},
            {"$set": {"content": sanitize_input(content), "is_edited": True, "edited_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        await hub.send_to_chat(str(message["receiver_id"]), "message_updated", serialize_message(updated))
        return updated

    async def delete_message(self, user_id: ObjectId, message_id: Any):
        """
        Soft-deletes a message for both parties. When it was the
        conversation's latest message the preview falls back to the
        newest surviving one.
        """
        message = await self._messages().find_one_and_update(
            {
                "_id": to_object_id(message_id, "message_id"),
                "$or": [{"sender_id": user_id}, {"receiver_id": user_id}],
            },
            {"$set": {"is_deleted": True, "updated_at": utc_now()}}
        )
        if not message:
            raise ResourceNotFoundError("Message not found", code="MESSAGE_NOT_FOUND")
        await self._refresh_last_message(message)

    async def _refresh_last_message(self, deleted: Dict[str, Any]):
        conversation_id = deleted["metadata"]["conversation_id"]
        conversation = await self._conversations().find_one({"conversation_id": conversation_id})
        if not conversation or (conversation.get("last_message") or {}).get("message_id") != deleted["_id"]:
            return

        latest = await self._messages().find_one(
            {"metadata.conversation_id": conversation_id, "is_deleted": False},
            sort=[("created_at", -1), ("_id", -1)],
        )
        await self._conversations().update_one(
            {"conversation_id": conversation_id},
            {"$set": {"last_message": _last_message(latest) if latest else None}}
        )


chat_service = ChatService()


def get_chat_service() -> ChatService:
    return chat_service
