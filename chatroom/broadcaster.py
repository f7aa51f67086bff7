"""
Fan-out delivery of a message to every subscriber of a room
"""

import asyncio
import json
from typing import List, Optional

from .constants import DELIVERY_TIMEOUT_SECONDS
from .errors import DeliveryFailure
from .logger import get_logger, log_delivery_event, log_message_event
from .models import ChatMessage, Connection
from .persistence import MessageStore
from .registry import ConnectionRegistry
from .room_directory import RoomDirectory

logger = get_logger()


class Broadcaster:
    """Delivers room messages to subscribers, one independent send per recipient"""

    def __init__(self, directory: RoomDirectory, registry: ConnectionRegistry,
                 store: Optional[MessageStore] = None,
                 delivery_timeout: float = DELIVERY_TIMEOUT_SECONDS):
        self.directory = directory
        self.registry = registry
        self.store = store
        self.delivery_timeout = delivery_timeout
        self.delivered = 0
        self.failed = 0
        self.dropped = 0

    async def broadcast(self, room_id: str, message: ChatMessage,
                        exclude_connection_id: Optional[str] = None) -> int:
        """
        Deliver a message to the room's current subscribers

        The subscriber set is snapshotted before delivery starts, so joins
        and leaves that happen meanwhile only affect later broadcasts.

        Args:
            room_id: Target room
            message: Message to deliver
            exclude_connection_id: Connection that should not receive it (usually the sender)

        Returns:
            Number of successful deliveries
        """
        recipients = await self.directory.subscribers(room_id)
        recipients.discard(exclude_connection_id)

        text = json.dumps(message.to_frame())
        results: List[bool] = []
        if recipients:
            results = await asyncio.gather(*(
                self._deliver(connection_id, room_id, message, text)
                for connection_id in sorted(recipients)
            ))

        successful_sends = sum(1 for delivered in results if delivered)
        await self.directory.record_message(room_id)
        log_message_event(message.message_id, message.sender, room_id, "broadcast",
                          f"recipients={successful_sends}/{len(recipients)}")

        if self.store is not None:
            try:
                await self.store.append(room_id, message)
            except Exception as e:
                logger.error(f"Failed to store message {message.message_id} for {room_id}: {e}")

        return successful_sends

    async def _deliver(self, connection_id: str, room_id: str,
                       message: ChatMessage, text: str) -> bool:
        connection = await self.registry.get(connection_id)
        if connection is None or connection.closed:
            # Disconnected after the snapshot was taken
            self.dropped += 1
            return False

        try:
            sent = await self._send(connection, text)
        except DeliveryFailure as e:
            self.failed += 1
            log_delivery_event(message.message_id, connection_id, "failed", str(e))
            await self.directory.leave(room_id, connection_id)
            return False

        if not sent:
            self.dropped += 1
            return False

        self.delivered += 1
        return True

    async def _send(self, connection: Connection, text: str) -> bool:
        try:
            async with connection.send_lock:
                if connection.closed:
                    return False
                await asyncio.wait_for(connection.websocket.send_text(text), self.delivery_timeout)
                return True
        except asyncio.TimeoutError as e:
            raise DeliveryFailure(f"send timed out after {self.delivery_timeout}s") from e
        except asyncio.CancelledError:
            raise
        except Exception as e:
            raise DeliveryFailure(f"{type(e).__name__}: {e}") from e

    def stats(self) -> dict:
        return {
            "delivered": self.delivered,
            "failed": self.failed,
            "dropped": self.dropped,
        }
