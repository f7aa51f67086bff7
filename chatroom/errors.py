"""
Error taxonomy for the chat room server
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .constants import ERROR_MESSAGES


class ChatError(Exception):
    """Base class for errors reported back to a client as an error frame"""
    reason = "error"

    def __init__(self, message: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        self.message = message or ERROR_MESSAGES.get(self.reason, self.reason)
        self.details = details
        super().__init__(self.message)

    def to_frame(self) -> Dict[str, Any]:
        """Convert the error into an outbound error frame"""
        frame = {
            "event": "error",
            "reason": self.reason,
            "message": self.message,
            "timestamp": int(datetime.now(timezone.utc).timestamp()),
        }
        if self.details:
            frame["details"] = self.details
        return frame


class AuthFailure(ChatError):
    """Credentials rejected at connect time; the connection is terminated"""
    reason = "auth_failure"


class NotSubscribed(ChatError):
    """Message sent to a room the connection has not joined"""
    reason = "not_subscribed"


class DeliveryFailure(ChatError):
    """Delivery to one recipient failed; never propagated to the sender"""
    reason = "delivery_failure"


class InvalidFrame(ChatError):
    reason = "invalid_frame"


class InvalidRoom(ChatError):
    reason = "invalid_room"


class InvalidMessage(ChatError):
    reason = "invalid_message"


class RateLimited(ChatError):
    reason = "rate_limited"


class RoomFull(ChatError):
    """Room or server capacity reached"""
    reason = "room_full"


class SessionClosed(ChatError):
    """Operation attempted on a disconnected session"""
    reason = "session_closed"
