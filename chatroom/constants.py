"""
Limits and defaults for the chat room server
"""

# Rooms
DEFAULT_ROOM = "chat_room:lobby"
MAX_ROOM_ID_LENGTH = 64
MIN_ROOM_ID_LENGTH = 1
MAX_ROOMS_TOTAL = 1000
MAX_SUBSCRIBERS_PER_ROOM = 100

# Messages
MAX_MESSAGE_LENGTH = 5000
MESSAGE_HISTORY_LIMIT = 100
MESSAGE_EXPIRATION_SECONDS = 3600
RATE_LIMIT_MESSAGES_PER_MINUTE = 60

# Delivery
DELIVERY_TIMEOUT_SECONDS = 5.0

# Regex patterns for validation
ROOM_ID_PATTERN = r'^[a-zA-Z0-9_:\-]{1,64}$'
USERNAME_PATTERN = r'^[a-zA-Z0-9_]{1,20}$'
MESSAGE_SANITIZATION_PATTERN = r'[\x00-\x08\x0B\x0C\x0E-\x1F\x7F]'

# WebSocket settings
MAX_FRAME_SIZE_BYTES = 10240
CLOSE_CODE_POLICY_VIOLATION = 1008

# Server
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 8000
LOG_LEVEL = "INFO"
MAINTENANCE_INTERVAL_SECONDS = 60

# Frame events accepted from clients
CLIENT_EVENTS = ("join", "leave", "message", "heartbeat", "list")

# Error messages
ERROR_MESSAGES = {
    "auth_failure": "Authentication failed",
    "not_subscribed": "Not subscribed to this room",
    "invalid_room": "Room id must be 1-64 characters of letters, digits, '_', ':' or '-'",
    "invalid_message": "Message must be 1-5000 characters",
    "invalid_frame": "Invalid frame",
    "invalid_json": "Invalid JSON format",
    "unknown_event": "Unknown event",
    "rate_limited": "Rate limit exceeded, please slow down",
    "room_full": "Room is full, please try another",
    "too_many_rooms": "Server at maximum room capacity",
    "session_closed": "Connection is closed",
    "delivery_failure": "Delivery failed",
}
