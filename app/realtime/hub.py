"""
app/realtime/hub.py

Purpose: In-process registry of open websockets

- user_id -> sockets (a user may have several tabs open)
- chat sockets are tracked apart: presence and message delivery
  follow them, notification pushes go to every socket
- conversation rooms for typing indicators and room broadcasts
- Frames are {"event": name, "data": payload}
- Sockets that fail on send are dropped
"""

from typing import Any, Dict, Iterable, Optional, Set

from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

from app.core.logging import get_logger
from app.models.document import to_jsonable

logger = get_logger(__name__)


def _discard(registry: Dict[str, Set[WebSocket]], key: str, websocket: WebSocket):
    sockets = registry.get(key)
    if sockets is None:
        return
    sockets.discard(websocket)
    if not sockets:
        del registry[key]


class ConnectionHub:
    """
    Tracks connected users, their chat sockets and conversation rooms.
    """

    def __init__(self):
        self.user_sockets: Dict[str, Set[WebSocket]] = {}
        self.chat_sockets: Dict[str, Set[WebSocket]] = {}
        self.rooms: Dict[str, Set[WebSocket]] = {}
        self.presence: Dict[str, str] = {}

    def register(self, user_id: str, websocket: WebSocket, chat: bool = False):
        self.user_sockets.setdefault(user_id, set()).add(websocket)
        if chat:
            self.chat_sockets.setdefault(user_id, set()).add(websocket)
        logger.debug(
            f"{'Chat' if chat else 'Notification'} socket registered ({len(self.user_sockets[user_id])} open)",
            extra={"user_id": user_id}
        )

    def unregister(self, user_id: str, websocket: WebSocket) -> bool:
        """
        Removes a socket from the user and every room.

        Returns:
            True when the user has no chat sockets left
        """
        _discard(self.user_sockets, user_id, websocket)
        _discard(self.chat_sockets, user_id, websocket)
        for room_id in list(self.rooms):
            self.leave_room(room_id, websocket)
        return user_id not in self.chat_sockets

    def join_room(self, room_id: str, websocket: WebSocket):
        self.rooms.setdefault(room_id, set()).add(websocket)

    def leave_room(self, room_id: str, websocket: WebSocket):
        _discard(self.rooms, room_id, websocket)

    def is_online(self, user_id: str) -> bool:
        return bool(self.user_sockets.get(user_id))

    def in_chat(self, user_id: str) -> bool:
        return bool(self.chat_sockets.get(user_id))

    async def _send(self, websocket: WebSocket, event: str, data: Any) -> bool:
        try:
            await websocket.send_json({"event": event, "data": to_jsonable(data)})
            return True
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.warning(f"Dropping dead socket while sending {event}: {e}")
            return False

    async def send(self, websocket: WebSocket, event: str, data: Any):
        await self._send(websocket, event, data)

    async def _send_all(self, user_id: str, sockets: Iterable[WebSocket], event: str, data: Any) -> int:
        delivered = 0
        for websocket in list(sockets):
            if await self._send(websocket, event, data):
                delivered += 1
            else:
                self.unregister(user_id, websocket)
        return delivered

    async def send_to_user(self, user_id: str, event: str, data: Any) -> int:
        """
        Pushes an event to every socket of a user.

        Returns:
            Number of sockets that received it
        """
        user_id = str(user_id)
        return await self._send_all(user_id, self.user_sockets.get(user_id, ()), event, data)

    async def send_to_chat(self, user_id: str, event: str, data: Any) -> int:
        """
        Pushes a chat event to the user's chat sockets only.

        Returns:
            Number of chat sockets that received it
        """
        user_id = str(user_id)
        return await self._send_all(user_id, self.chat_sockets.get(user_id, ()), event, data)

    async def send_to_room(self, room_id: str, event: str, data: Any, exclude: Optional[WebSocket] = None) -> int:
        delivered = 0
        for websocket in list(self.rooms.get(room_id, ())):
            if websocket is exclude:
                continue
            if await self._send(websocket, event, data):
                delivered += 1
            else:
                self.leave_room(room_id, websocket)
        return delivered

    async def broadcast(self, event: str, data: Any, exclude_user: Optional[str] = None):
        """Sends to every connected chat client."""
        for user_id in list(self.chat_sockets):
            if user_id != exclude_user:
                await self.send_to_chat(user_id, event, data)


hub = ConnectionHub()
