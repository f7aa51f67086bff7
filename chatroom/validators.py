"""
Input validation for client frames, room ids and message payloads
"""

import re
from typing import Any, Dict, Tuple

from .constants import (
    ROOM_ID_PATTERN,
    USERNAME_PATTERN,
    MAX_MESSAGE_LENGTH,
    MESSAGE_SANITIZATION_PATTERN,
    MAX_ROOM_ID_LENGTH,
    MIN_ROOM_ID_LENGTH,
    CLIENT_EVENTS,
    ERROR_MESSAGES,
)
from .logger import get_logger, log_security_event

logger = get_logger()

# Required fields per client event
REQUIRED_FIELDS = {
    "join": ("room_id",),
    "leave": ("room_id",),
    "message": ("room_id", "payload"),
    "heartbeat": (),
    "list": (),
}

# Patterns only match inside HTML markup
DANGEROUS_PATTERNS = [
    r'<script[^>]*>.*?</script>',                             # Script tags
    r'<[^>]*\b(?:href|src|action)\s*=\s*["\']?\s*javascript:', # JavaScript URLs in attributes
    r'<[^>]*\bon\w+\s*=',                                      # Event handler attributes
    r'<[^>]*\bstyle\s*=[^>]*expression\s*\(',                  # CSS expressions
    r'<style[^>]*>[^<]*@import',                               # CSS imports
]


def sanitize_message(message: str) -> str:
    """Remove control characters (except newlines and tabs) and surrounding whitespace"""
    if not message:
        return ""
    return re.sub(MESSAGE_SANITIZATION_PATTERN, '', message).strip()


def validate_room_id(room_id: Any) -> Tuple[bool, str]:
    """
    Validate a room identifier

    Args:
        room_id: Raw room id from the client

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(room_id, str):
        log_security_event("invalid_room_type", {"room_id": str(room_id)})
        return False, ERROR_MESSAGES["invalid_room"]

    if len(room_id) < MIN_ROOM_ID_LENGTH or len(room_id) > MAX_ROOM_ID_LENGTH:
        log_security_event("invalid_room_length", {"length": len(room_id)})
        return False, ERROR_MESSAGES["invalid_room"]

    if not re.match(ROOM_ID_PATTERN, room_id):
        log_security_event("invalid_room_format", {"room_id": room_id})
        return False, ERROR_MESSAGES["invalid_room"]

    return True, ""


def validate_message(message: Any, connection_id: str = "", room_id: str = "") -> Tuple[bool, str]:
    """
    Validate message content with security checks

    Args:
        message: Message payload
        connection_id: Sender connection (for logging)
        room_id: Room id (for logging)

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(message, str):
        log_security_event("invalid_message_type", {"conn": connection_id, "room": room_id})
        return False, ERROR_MESSAGES["invalid_message"]

    if len(sanitize_message(message)) == 0 or len(message) > MAX_MESSAGE_LENGTH:
        log_security_event("invalid_message_length", {
            "conn": connection_id,
            "room": room_id,
            "length": len(message)
        })
        return False, ERROR_MESSAGES["invalid_message"]

    for pattern in DANGEROUS_PATTERNS:
        if re.search(pattern, message, re.IGNORECASE):
            log_security_event("potential_injection", {
                "conn": connection_id,
                "room": room_id,
                "pattern": pattern
            })
            return False, ERROR_MESSAGES["invalid_message"]

    return True, ""


def validate_username(username: Any) -> bool:
    return isinstance(username, str) and re.match(USERNAME_PATTERN, username) is not None


def validate_frame(frame: Any) -> Tuple[bool, str]:
    """
    Validate the structure of a decoded client frame

    Args:
        frame: Decoded JSON payload from the WebSocket

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(frame, dict):
        log_security_event("invalid_frame_type", {"frame_type": type(frame).__name__})
        return False, ERROR_MESSAGES["invalid_json"]

    event = frame.get("event")
    if event is None:
        log_security_event("missing_event", {"keys": sorted(frame.keys())})
        return False, ERROR_MESSAGES["invalid_frame"]

    if event not in CLIENT_EVENTS:
        log_security_event("unknown_event", {"event": event})
        return False, f"{ERROR_MESSAGES['unknown_event']}: {event}"

    for name in REQUIRED_FIELDS[event]:
        if name not in frame:
            log_security_event("missing_required_field", {
                "event": event,
                "missing_field": name
            })
            return False, f"{ERROR_MESSAGES['invalid_frame']}: missing '{name}'"

    return True, ""
