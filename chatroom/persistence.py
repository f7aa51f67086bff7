"""
Message history collaborators
"""

import asyncio
from collections import deque
from typing import Deque, Dict, List

from .constants import MESSAGE_EXPIRATION_SECONDS, MESSAGE_HISTORY_LIMIT
from .logger import get_logger
from .models import ChatMessage

logger = get_logger()


class MessageStore:
    """Interface for an append-only message history"""

    async def append(self, room_id: str, message: ChatMessage):
        raise NotImplementedError

    async def history(self, room_id: str) -> List[ChatMessage]:
        raise NotImplementedError


class InMemoryMessageStore(MessageStore):
    """Keeps the most recent messages of each room until they expire"""

    def __init__(self, limit: int = MESSAGE_HISTORY_LIMIT,
                 ttl_seconds: int = MESSAGE_EXPIRATION_SECONDS):
        # room_id -> recent messages, oldest first
        self._messages: Dict[str, Deque[ChatMessage]] = {}
        self._lock = asyncio.Lock()
        self.limit = limit
        self.ttl_seconds = ttl_seconds

    async def append(self, room_id: str, message: ChatMessage):
        async with self._lock:
            bucket = self._messages.get(room_id)
            if bucket is None:
                bucket = self._messages[room_id] = deque(maxlen=self.limit)
            bucket.append(message)
        logger.debug(f"Message stored: {message.message_id} in {room_id}")

    async def history(self, room_id: str) -> List[ChatMessage]:
        """
        Get the unexpired messages of a room

        Args:
            room_id: Room identifier

        Returns:
            Messages oldest first; empty for an unknown room
        """
        async with self._lock:
            bucket = self._messages.get(room_id, ())
            return [m for m in bucket if not m.is_expired(self.ttl_seconds)]

    async def cleanup_expired(self) -> int:
        """
        Drop expired messages and empty rooms (maintenance task)

        Returns:
            Number of messages removed
        """
        removed = 0
        async with self._lock:
            for room_id in list(self._messages):
                bucket = self._messages[room_id]
                while bucket and bucket[0].is_expired(self.ttl_seconds):
                    bucket.popleft()
                    removed += 1
                if not bucket:
                    del self._messages[room_id]

        if removed:
            logger.info(f"Cleaned up {removed} expired messages")
        return removed

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "stored_messages": sum(len(b) for b in self._messages.values()),
                "rooms_with_history": len(self._messages),
                "history_limit": self.limit,
                "expiration_seconds": self.ttl_seconds,
            }
