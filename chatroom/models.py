"""
Data models for connections, rooms and chat messages
"""

import asyncio
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from .validators import sanitize_message


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Connection:
    """One live transport session"""
    connection_id: str
    websocket: Any = None  # anything with ``async send_text(str)``
    user: Optional[str] = None
    ip_address: str = "unknown"
    connected_at: datetime = field(default_factory=utcnow)
    closed: bool = False
    message_count: int = 0
    window_start: Optional[datetime] = None
    # Serialises writes to the transport so per-room send order is preserved
    send_lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False, compare=False)

    def _window_expired(self, now: datetime) -> bool:
        return self.window_start is None or (now - self.window_start).total_seconds() >= 60

    def can_send_message(self, rate_limit_per_minute: int = 60) -> bool:
        """Check if the connection is within its budget for the current one-minute window"""
        if self._window_expired(utcnow()):
            return True
        return self.message_count < rate_limit_per_minute

    def update_message_stats(self):
        """Count a message, opening a new window once the current one is a minute old"""
        now = utcnow()
        if self._window_expired(now):
            self.window_start = now
            self.message_count = 1
        else:
            self.message_count += 1


@dataclass
class Room:
    """A named topic and its subscriber connection ids"""
    room_id: str
    subscribers: Set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=utcnow)
    message_count: int = 0
    last_activity: datetime = field(default_factory=utcnow)

    def update_activity(self):
        self.last_activity = utcnow()

    def add_message(self):
        """Increment message count and update activity"""
        self.message_count += 1
        self.update_activity()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "room_id": self.room_id,
            "subscriber_count": len(self.subscribers),
            "created_at": self.created_at.isoformat(),
            "message_count": self.message_count,
            "last_activity": self.last_activity.isoformat(),
        }


@dataclass
class ChatMessage:
    """A unit of chat content published to one room"""
    room_id: str
    sender: str
    payload: str
    user: Optional[str] = None
    timestamp: int = field(default_factory=lambda: int(utcnow().timestamp()))
    message_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    created_at: datetime = field(default_factory=utcnow, repr=False)

    def __post_init__(self):
        self.payload = sanitize_message(self.payload)

    def is_expired(self, ttl_seconds: int) -> bool:
        return (utcnow() - self.created_at).total_seconds() > ttl_seconds

    def to_frame(self) -> Dict[str, Any]:
        """Outbound frame pushed to subscribers"""
        return {
            "event": "message",
            "room_id": self.room_id,
            "sender": self.sender,
            "user": self.user,
            "payload": self.payload,
            "timestamp": self.timestamp,
            "message_id": self.message_id,
        }
