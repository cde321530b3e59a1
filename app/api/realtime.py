"""
app/api/realtime.py

Purpose: WebSocket endpoints

- /ws/notifications: live notification feed for the signed-in user
- /ws/chat: messaging, typing, read receipts, presence, heartbeat
- Sockets authenticate with ``token`` and ``session_id`` query params
- Frames are JSON {"event": name, "data": {...}}; malformed frames get
  an ``error`` event and the socket stays open
"""

import asyncio
import json
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import BlazeError
from app.core.logging import get_logger
from app.realtime.hub import hub
from app.schemas.chat import SendMessageRequest
from app.schemas.notification import MarkReadRequest
from app.services import auth_service, notification_service
from app.services.chat_service import get_chat_service
from utils.time_utils import utc_now

logger = get_logger(__name__)
router = APIRouter()
chat = get_chat_service()

Handler = Callable[[WebSocket, Dict[str, Any], Dict[str, Any]], Awaitable[None]]


async def _authenticate(websocket: WebSocket, token: Optional[str], session_id: Optional[str]) -> Optional[Dict[str, Any]]:
    try:
        return await auth_service.resolve_user(token, session_id)
    except BlazeError as e:
        logger.info(f"WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=e.message)
        return None


async def _receive_text(websocket: WebSocket) -> Optional[str]:
    """
    Next text frame, or None for a binary one.

    Raises:
        WebSocketDisconnect: The client went away
    """
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
    return message.get("text")


async def _serve(websocket: WebSocket, user: Dict[str, Any], handlers: Dict[str, Handler]):
    """
    Reads frames until the client leaves or goes quiet for longer than
    HEARTBEAT_TIMEOUT_SECONDS, dispatching each event to its handler.
    """
    while True:
        try:
            raw = await asyncio.wait_for(_receive_text(websocket), timeout=settings.HEARTBEAT_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.info("Closing idle websocket", extra={"user_id": str(user["_id"])})
            await websocket.close(code=status.WS_1000_NORMAL_CLOSURE, reason="heartbeat timeout")
            return

        if raw is None:
            await hub.send(websocket, "error", {"message": "Binary frames are not supported"})
            continue
        try:
            frame = json.loads(raw)
        except ValueError:
            await hub.send(websocket, "error", {"message": "Invalid JSON frame"})
            continue
        if not isinstance(frame, dict):
            await hub.send(websocket, "error", {"message": "Frame must be an object"})
            continue

        event = frame.get("event")
        handler = handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            await hub.send(websocket, "error", {"message": f"Unknown event: {event}"})
            continue
        data = frame.get("data")
        if data is None:
            data = {}
        if not isinstance(data, dict):
            await hub.send(websocket, "error", {"event": event, "message": "Event data must be an object", "code": "BAD_REQUEST"})
            continue

        try:
            await handler(websocket, user, data)
        except BlazeError as e:
            await hub.send(websocket, "error", {"event": event, "message": e.message, "code": e.code})
        except ValidationError as e:
            await hub.send(websocket, "error", {
                "event": event,
                "message": "Input validation failed",
                "code": "VALIDATION_ERROR",
                "details": [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()],
            })


def _conversation_id(data: Dict[str, Any]) -> Optional[str]:
    value = data.get("conversation_id")
    return value if isinstance(value, str) and value else None


# ============================================================
# NOTIFICATIONS
# ============================================================

async def _test_connection(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    await hub.send(websocket, "test_response", {
        "message": "Socket connection is working",
        "user_id": user["_id"],
        "timestamp": utc_now(),
    })


async def _mark_notifications_read(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    body = MarkReadRequest.model_validate(data)
    count = await notification_service.mark_read(user["_id"], body.notification_ids)
    unread = await notification_service.unread_count(user["_id"])
    await hub.send(websocket, "notifications_marked", {"marked_count": count, "unread": unread})


NOTIFICATION_HANDLERS: Dict[str, Handler] = {
    "test_connection": _test_connection,
    "mark_notifications_read": _mark_notifications_read,
}


@router.websocket("/ws/notifications")
async def notifications_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
):
    user = await _authenticate(websocket, token, session_id)
    if user is None:
        return

    user_id = str(user["_id"])
    await websocket.accept()
    hub.register(user_id, websocket)
    try:
        await hub.send(websocket, "connected", {"user_id": user_id})
        await _serve(websocket, user, NOTIFICATION_HANDLERS)
    except WebSocketDisconnect:
        logger.debug("Notification socket disconnected", extra={"user_id": user_id})
    finally:
        hub.unregister(user_id, websocket)


# ============================================================
# CHAT
# ============================================================

async def _join_conversation(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    conversation_id = _conversation_id(data)
    if not conversation_id or not await chat.is_participant(user["_id"], conversation_id):
        await hub.send(websocket, "error", {"event": "join_conversation", "message": "Not a participant of this conversation"})
        return
    hub.join_room(conversation_id, websocket)
    await chat.mark_conversation_read(conversation_id, user["_id"])
    await hub.send(websocket, "joined_conversation", {"conversation_id": conversation_id})


async def _leave_conversation(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    conversation_id = _conversation_id(data)
    if conversation_id:
        hub.leave_room(conversation_id, websocket)
        await hub.send(websocket, "left_conversation", {"conversation_id": conversation_id})


async def _send_message(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    body = SendMessageRequest.model_validate(data)
    message = await chat.send_message(
        user,
        body.receiver_id,
        content=body.content,
        encrypted_content=body.encrypted_content,
        encrypted_key=body.encrypted_key,
        iv=body.iv,
        message_type=body.message_type or "text",
        client_message_id=body.client_message_id,
    )
    await hub.send(websocket, "message_sent", {
        "message_id": message["_id"],
        "client_message_id": message["metadata"].get("client_generated_id"),
        "conversation_id": message["metadata"]["conversation_id"],
        "timestamp": message["created_at"],
        "delivered": message["status"]["delivered"],
    })


async def _mark_read(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    count = await chat.mark_messages_read(user["_id"], data.get("user_id"))
    await hub.send(websocket, "marked_read", {"user_id": data.get("user_id"), "count": count})


async def _typing(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    conversation_id = _conversation_id(data)
    if not conversation_id:
        return
    await hub.send_to_room(conversation_id, "user_typing", {
        "conversation_id": conversation_id,
        "user_id": user["_id"],
        "is_typing": bool(data.get("is_typing", True)),
    }, exclude=websocket)


async def _set_presence(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    presence = data.get("status") if data.get("status") in ("online", "away", "busy", "offline") else "online"
    hub.presence[str(user["_id"])] = presence
    await hub.broadcast("user_presence", {"user_id": user["_id"], "status": presence, "timestamp": utc_now()})


async def _heartbeat(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    await hub.send(websocket, "heartbeat_ack", {"timestamp": utc_now()})


async def _ping(websocket: WebSocket, user: Dict[str, Any], data: Dict[str, Any]):
    await hub.send(websocket, "pong", {"timestamp": utc_now()})


CHAT_HANDLERS: Dict[str, Handler] = {
    "join_conversation": _join_conversation,
    "leave_conversation": _leave_conversation,
    "send_message": _send_message,
    "mark_read": _mark_read,
    "typing": _typing,
    "set_presence": _set_presence,
    "heartbeat": _heartbeat,
    "ping": _ping,
}


@router.websocket("/ws/chat")
async def chat_socket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
    session_id: Optional[str] = Query(default=None),
):
    user = await _authenticate(websocket, token, session_id)
    if user is None:
        return

    user_id = str(user["_id"])
    await websocket.accept()
    hub.register(user_id, websocket, chat=True)
    hub.presence[user_id] = "online"
    try:
        await hub.send(websocket, "connected", {"user_id": user_id})
        await hub.broadcast("user_presence", {"user_id": user_id, "status": "online"}, exclude_user=user_id)
        await _serve(websocket, user, CHAT_HANDLERS)
    except WebSocketDisconnect:
        logger.debug("Chat socket disconnected", extra={"user_id": user_id})
    finally:
        if hub.unregister(user_id, websocket):
            hub.presence.pop(user_id, None)
            await hub.broadcast("user_presence", {"user_id": user_id, "status": "offline"})
