"""
Socket gateway: per-connection state machine routing client frames
"""

import enum
import json
import time
from typing import Any, Dict, Mapping, Optional

from .auth import Authenticator, AnonymousAuthenticator, build_authenticator
from .broadcaster import Broadcaster
from .config import Settings
from .constants import MAX_FRAME_SIZE_BYTES, ERROR_MESSAGES
from .errors import (
    AuthFailure,
    ChatError,
    InvalidFrame,
    InvalidMessage,
    InvalidRoom,
    NotSubscribed,
    RateLimited,
    SessionClosed,
)
from .logger import get_logger, log_connection_event, log_message_event, log_websocket_event
from .models import ChatMessage
from .persistence import InMemoryMessageStore, MessageStore
from .registry import ConnectionRegistry
from .room_directory import RoomDirectory
from .validators import validate_frame, validate_message, validate_room_id

logger = get_logger()


class SessionState(enum.Enum):
    CONNECTING = "connecting"
    CONNECTED = "connected"
    JOINED = "joined"
    CLOSED = "closed"


class SocketGateway:
    """Wires authentication, registry, directory and broadcaster together"""

    def __init__(self, settings: Optional[Settings] = None,
                 authenticator: Optional[Authenticator] = None,
                 store: Optional[MessageStore] = None):
        self.settings = settings or Settings()
        self.authenticator = authenticator or AnonymousAuthenticator()
        self.store = store
        self.directory = RoomDirectory(
            max_rooms=self.settings.max_rooms,
            max_subscribers_per_room=self.settings.max_subscribers_per_room,
        )
        self.registry = ConnectionRegistry(self.directory)
        self.broadcaster = Broadcaster(
            self.directory,
            self.registry,
            store=store,
            delivery_timeout=self.settings.delivery_timeout,
        )

    async def connect(self, websocket: Any, credentials: Optional[Mapping[str, Any]] = None,
                      ip_address: str = "unknown") -> "ClientSession":
        """
        Authenticate and register a new connection

        Args:
            websocket: Transport exposing ``async send_text(str)``
            credentials: Connect parameters handed to the authenticator
            ip_address: Client IP address

        Returns:
            A session in the CONNECTED (or JOINED, with auto-join) state

        Raises:
            AuthFailure: credentials were rejected; nothing is registered
        """
        session = ClientSession(self, websocket)
        try:
            user = await self.authenticator.authenticate(credentials or {})
        except AuthFailure:
            session.state = SessionState.CLOSED
            log_connection_event("-", None, "rejected", ip_address)
            raise

        session.user = user
        session.connection_id = await self.registry.register(websocket, user, ip_address)
        session.state = SessionState.CONNECTED

        if self.settings.auto_join_default_room:
            try:
                await session.join(self.settings.default_room)
            except ChatError as e:
                logger.warning(f"Auto-join of {self.settings.default_room} failed for "
                               f"{session.connection_id}: {e.message}")

        return session

    async def stats(self) -> Dict[str, Any]:
        stats = {
            "connections": await self.registry.stats(),
            "rooms": await self.directory.stats(),
            "delivery": self.broadcaster.stats(),
        }
        if isinstance(self.store, InMemoryMessageStore):
            stats["history"] = await self.store.stats()
        return stats


def create_gateway(settings: Settings) -> SocketGateway:
    """Build a gateway from settings"""
    store = None
    if settings.history_enabled:
        store = InMemoryMessageStore(limit=settings.history_limit, ttl_seconds=settings.history_ttl)
    return SocketGateway(settings, authenticator=build_authenticator(settings), store=store)


class ClientSession:
    """State machine for one connection: CONNECTING -> CONNECTED -> JOINED* -> CLOSED"""

    def __init__(self, gateway: SocketGateway, websocket: Any):
        self.gateway = gateway
        self.websocket = websocket
        self.connection_id: Optional[str] = None
        self.user: Optional[str] = None
        self.state = SessionState.CONNECTING

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    def _ensure_open(self):
        if self.state in (SessionState.CONNECTING, SessionState.CLOSED):
            raise SessionClosed()

    async def _sync_state(self):
        rooms = await self.gateway.registry.joined_rooms(self.connection_id)
        if not self.closed:
            self.state = SessionState.JOINED if rooms else SessionState.CONNECTED

    async def join(self, room_id: Any) -> Dict[str, Any]:
        self._ensure_open()
        is_valid, error_msg = validate_room_id(room_id)
        if not is_valid:
            raise InvalidRoom(error_msg)

        directory = self.gateway.directory
        added = await directory.join(room_id, self.connection_id)

        connection = await self.gateway.registry.get(self.connection_id)
        if connection is None or connection.closed:
            # Disconnected while joining
            await directory.leave(room_id, self.connection_id)
            raise SessionClosed()

        await self._sync_state()
        return {
            "event": "ack",
            "action": "join",
            "room_id": room_id,
            "joined": added,
            "subscribers": len(await directory.subscribers(room_id)),
        }

    async def leave(self, room_id: Any) -> Dict[str, Any]:
        """Leave a room; leaving a room that was never joined is a no-op"""
        self._ensure_open()
        was_joined = False
        if isinstance(room_id, str):
            was_joined = await self.gateway.directory.leave(room_id, self.connection_id)
        await self._sync_state()
        return {
            "event": "ack",
            "action": "leave",
            "room_id": room_id,
            "was_joined": was_joined,
        }

    async def send_message(self, room_id: Any, payload: Any) -> Dict[str, Any]:
        """
        Publish a message to a joined room

        Args:
            room_id: Target room
            payload: Message text

        Returns:
            Ack frame with the message id and the number of recipients

        Raises:
            NotSubscribed: the connection has not joined ``room_id``
            InvalidMessage: empty, oversized or unsafe payload
            RateLimited: per-minute budget exhausted
        """
        self._ensure_open()
        gateway = self.gateway
        connection_id = self.connection_id

        if not isinstance(room_id, str) or not await gateway.directory.is_subscribed(room_id, connection_id):
            log_message_event("-", connection_id, str(room_id), "rejected", "not subscribed")
            raise NotSubscribed()

        is_valid, error_msg = validate_message(payload, connection_id, room_id)
        if not is_valid:
            raise InvalidMessage(error_msg)

        connection = await gateway.registry.get(connection_id)
        if connection is None:
            raise SessionClosed()
        if not connection.can_send_message(gateway.settings.rate_limit_per_minute):
            raise RateLimited()
        connection.update_message_stats()

        message = ChatMessage(room_id=room_id, sender=connection_id, payload=payload, user=self.user)
        exclude = None if gateway.settings.echo_to_sender else connection_id
        recipients = await gateway.broadcaster.broadcast(room_id, message, exclude_connection_id=exclude)

        return {
            "event": "ack",
            "action": "message",
            "room_id": room_id,
            "message_id": message.message_id,
            "recipients": recipients,
            "timestamp": message.timestamp,
        }

    async def list_rooms(self) -> Dict[str, Any]:
        self._ensure_open()
        return {
            "event": "list",
            "rooms": await self.gateway.directory.rooms_info(),
            "timestamp": int(time.time()),
        }

    async def disconnect(self):
        """Leave all rooms and unregister; safe to call more than once"""
        if self.state is SessionState.CLOSED:
            return
        self.state = SessionState.CLOSED
        if self.connection_id is not None:
            await self.gateway.registry.unregister(self.connection_id)

    async def handle_frame(self, frame: Any) -> Dict[str, Any]:
        """
        Dispatch one decoded client frame

        ChatError subclasses are returned as error frames rather than raised.

        Args:
            frame: Decoded JSON frame

        Returns:
            Reply frame for the sender
        """
        try:
            is_valid, error_msg = validate_frame(frame)
            if not is_valid:
                raise InvalidFrame(error_msg)

            event = frame["event"]
            if event == "join":
                return await self.join(frame["room_id"])
            if event == "leave":
                return await self.leave(frame["room_id"])
            if event == "message":
                return await self.send_message(frame["room_id"], frame["payload"])
            if event == "list":
                return await self.list_rooms()
            # heartbeat
            self._ensure_open()
            log_websocket_event("heartbeat_received", self.connection_id)
            return {"event": "heartbeat", "status": "received", "timestamp": time.time()}

        except ChatError as e:
            logger.info(f"Frame rejected for {self.connection_id}: {e.reason}: {e.message}")
            return e.to_frame()

    async def handle_text(self, text: str) -> Dict[str, Any]:
        """Decode a raw text frame and dispatch it"""
        if len(text.encode("utf-8")) > MAX_FRAME_SIZE_BYTES:
            return InvalidFrame(f"Frame exceeds {MAX_FRAME_SIZE_BYTES} bytes").to_frame()
        try:
            frame = json.loads(text)
        except json.JSONDecodeError as e:
            log_websocket_event("frame_decode_error", self.connection_id, str(e))
            return InvalidFrame(ERROR_MESSAGES["invalid_json"]).to_frame()
        return await self.handle_frame(frame)

    async def send(self, frame: Dict[str, Any]) -> bool:
        """
        Send a frame to this session's own transport

        Returns:
            False if the session is closed or the send failed
        """
        connection = None
        if self.connection_id is not None:
            connection = await self.gateway.registry.get(self.connection_id)

        text = json.dumps(frame)
        try:
            if connection is None:
                await self.websocket.send_text(text)
            else:
                async with connection.send_lock:
                    await self.websocket.send_text(text)
        except Exception as e:
            logger.error(f"Failed to send {frame.get('event')} frame to {self.connection_id}: {e}")
            return False
        return True
