"""WebSocket chat channel.

Frames are JSON objects ``{"event": ..., "data": {...}}``. The handler calls
the same orchestrator entry point as the HTTP adapter; room membership lives
only in the connection manager.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Optional, Set
from uuid import uuid4

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from pydantic import ValidationError as PydanticValidationError

from ..agents.tutor.router import describe_modes
from ..core.errors import AuthenticationError, NotFoundError, TutorError
from ..db.schemas import UserRecord
from ..services import TutorServices
from .auth import authenticate_token
from .chat import ChatMessageRequest, serialize_turn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chat", tags=["Chat"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def user_room(user_id: str) -> str:
    return f"user:{user_id}"


def session_room(session_id: str) -> str:
    return f"session:{session_id}"


class ConnectionManager:
    """
    Manages WebSocket connections and room membership.

    Each connection has its own id; a room is a named set of connection ids.
    """

    def __init__(self):
        """Initialize the connection manager."""
        self.active_connections: Dict[str, WebSocket] = {}
        self.rooms: Dict[str, Set[str]] = {}

    async def connect(self, connection_id: str, websocket: WebSocket) -> None:
        """
        Accept and register a new WebSocket connection.

        Args:
            connection_id: Unique connection identifier
            websocket: The WebSocket connection
        """
        await websocket.accept()
        self.active_connections[connection_id] = websocket
        logger.info(f"WebSocket connected: {connection_id}")

    def disconnect(self, connection_id: str) -> None:
        """Remove a connection and its room memberships."""
        if self.active_connections.pop(connection_id, None) is not None:
            logger.info(f"WebSocket disconnected: {connection_id}")
        for room in list(self.rooms):
            members = self.rooms[room]
            members.discard(connection_id)
            if not members:
                del self.rooms[room]

    def join(self, connection_id: str, room: str) -> None:
        self.rooms.setdefault(room, set()).add(connection_id)

    def room_members(self, room: str) -> Set[str]:
        return set(self.rooms.get(room, set()))

    async def send_event(self, connection_id: str, event: str, data: Dict[str, Any]) -> bool:
        """
        Send one event frame to a connection.

        Returns:
            True if the frame was sent, False if the connection is gone
        """
        websocket = self.active_connections.get(connection_id)
        if websocket is None:
            logger.warning(f"No active connection: {connection_id}")
            return False

        try:
            await websocket.send_json({"event": event, "data": data})
            return True
        except Exception as e:
            logger.error(f"Error sending {event} to {connection_id}: {e}")
            self.disconnect(connection_id)
            return False

    async def send_error(self, connection_id: str, message: str, **extra: Any) -> bool:
        return await self.send_event(connection_id, "error", {"message": message, **extra})

    async def broadcast_to_room(
        self,
        room: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[str] = None,
    ) -> int:
        """
        Send an event to every connection in a room.

        Returns:
            Number of connections the frame was delivered to
        """
        delivered = 0
        for connection_id in self.room_members(room):
            if connection_id == exclude:
                continue
            if await self.send_event(connection_id, event, data):
                delivered += 1
        return delivered

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.active_connections


# Global connection manager instance
manager = ConnectionManager()


class ChatSocketHandler:
    """Handles inbound events for one authenticated connection."""

    def __init__(
        self,
        services: TutorServices,
        connections: ConnectionManager,
        connection_id: str,
        user: UserRecord,
    ):
        self.services = services
        self.connections = connections
        self.connection_id = connection_id
        self.user = user
        self._handlers: Dict[str, Callable[[Dict[str, Any]], Awaitable[None]]] = {
            "chat:join": self._on_join,
            "chat:message": self._on_message,
            "chat:switch_node": self._on_switch_node,
            "chat:typing": self._on_typing,
        }

    async def _send(self, event: str, data: Dict[str, Any]) -> None:
        await self.connections.send_event(self.connection_id, event, data)

    async def _error(self, message: str, **extra: Any) -> None:
        await self.connections.send_error(self.connection_id, message, **extra)

    async def on_connect(self) -> None:
        self.connections.join(self.connection_id, user_room(self.user.id))
        await self._send("connection:success", {
            "message": "Connected to the developer tutor",
            "userId": self.user.id,
            "username": self.user.username,
        })
        await self._send("chat:available_nodes", {"nodes": describe_modes()})

    async def dispatch(self, event: Optional[str], data: Dict[str, Any]) -> None:
        """Route one inbound event to its handler."""
        handler = self._handlers.get(event or "")
        if handler is None:
            await self._error(f"Unknown event: {event}")
            return
        await handler(data)

    async def _on_join(self, data: Dict[str, Any]) -> None:
        session_id = data.get("sessionId")
        if not session_id:
            await self._error("Session ID is required")
            return
        try:
            await self.services.orchestrator.get_session(self.user.id, session_id)
        except NotFoundError:
            await self._error("Access denied to chat session")
            return
        except TutorError as e:
            logger.error(f"Error joining chat session {session_id}: {e.message}")
            await self._error("Failed to join chat session")
            return

        self.connections.join(self.connection_id, session_room(session_id))
        await self._send("chat:joined", {"sessionId": session_id})
        logger.info(f"User {self.user.username} joined session {session_id}")

    async def _on_message(self, data: Dict[str, Any]) -> None:
        try:
            request = ChatMessageRequest.model_validate(data)
        except PydanticValidationError:
            await self._error("Message cannot be empty")
            return
        if not request.message.strip():
            await self._error("Message cannot be empty")
            return

        await self._send("chat:ai_thinking", {"thinking": True})
        try:
            result = await self.services.orchestrator.handle_turn(
                self.user.id,
                request.session_id,
                request.message.strip(),
                request.to_prior_context(),
            )
        except TutorError as e:
            await self._send("chat:ai_thinking", {"thinking": False})
            await self._error(e.message, sessionId=request.session_id)
            return

        await self._send("chat:ai_thinking", {"thinking": False})
        await self._send("chat:response", {**serialize_turn(result), "timestamp": _now()})

        room = session_room(result.session_id)
        self.connections.join(self.connection_id, room)
        await self.connections.broadcast_to_room(
            room,
            "chat:message_received",
            {
                "userId": self.user.id,
                "username": self.user.username,
                "message": request.message.strip(),
                "timestamp": _now(),
            },
            exclude=self.connection_id,
        )

    async def _on_switch_node(self, data: Dict[str, Any]) -> None:
        session_id = data.get("sessionId")
        node_type = data.get("nodeType")

        await self._send("chat:ai_thinking", {"thinking": True})
        try:
            result = await self.services.orchestrator.switch_node(
                self.user.id,
                session_id,
                node_type,
                data.get("message"),
            )
        except NotFoundError:
            await self._send("chat:ai_thinking", {"thinking": False})
            await self._error("Access denied to chat session")
            return
        except TutorError as e:
            await self._send("chat:ai_thinking", {"thinking": False})
            await self._error(e.message)
            return

        await self._send("chat:ai_thinking", {"thinking": False})
        await self._send("chat:node_switched", {
            **serialize_turn(result),
            "message": f"Switched to {node_type} mode",
        })

    async def _on_typing(self, data: Dict[str, Any]) -> None:
        session_id = data.get("sessionId")
        if not session_id:
            return
        await self.connections.broadcast_to_room(
            session_room(session_id),
            "chat:user_typing",
            {
                "userId": self.user.id,
                "username": self.user.username,
                "typing": bool(data.get("typing")),
            },
            exclude=self.connection_id,
        )


# ==============================================================================
# WebSocket Endpoint
# ==============================================================================

@router.websocket("/ws")
async def chat_websocket(
    websocket: WebSocket,
    token: Optional[str] = Query(default=None),
):
    """
    Persistent chat channel authenticated by the ``token`` query parameter.
    """
    services: TutorServices = websocket.app.state.services
    try:
        user = await authenticate_token(services, token)
    except AuthenticationError as e:
        logger.warning(f"WebSocket authentication failed: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    except TutorError as e:
        logger.error(f"WebSocket authentication unavailable: {e.message}")
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        return

    connection_id = str(uuid4())
    await manager.connect(connection_id, websocket)
    handler = ChatSocketHandler(services, manager, connection_id, user)

    try:
        await handler.on_connect()
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await manager.send_error(connection_id, "Invalid JSON frame")
                continue
            if not isinstance(frame, dict):
                await manager.send_error(connection_id, "Frames must be JSON objects")
                continue
            data = frame.get("data")
            await handler.dispatch(frame.get("event"), data if isinstance(data, dict) else {})
    except WebSocketDisconnect:
        logger.info(f"User {user.username} disconnected ({connection_id})")
    finally:
        manager.disconnect(connection_id)
