"""
Logging setup for the chat room server
"""

import logging
import sys
from typing import Optional

from .constants import LOG_LEVEL

LOGGER_NAME = "chatroom"


class SecureFormatter(logging.Formatter):
    """Formatter that masks credentials in log lines"""

    def format(self, record):
        message = super().format(record)
        sanitized = message.replace('password=', 'password=***')
        sanitized = sanitized.replace('token=', 'token=***')
        return sanitized


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Get a logger with the server's formatting

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(SecureFormatter(
            '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        ))
        logger.addHandler(handler)
        logger.setLevel(LOG_LEVEL)
        logger.propagate = False

    return logger


def configure_logging(level: str = LOG_LEVEL) -> logging.Logger:
    """Apply the configured level to the server logger and its handlers"""
    logger = get_logger()
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
    return logger


def log_security_event(event_type: str, details: dict, logger: Optional[logging.Logger] = None):
    """
    Log security-related events with structured data

    Args:
        event_type: Type of security event
        details: Event details
        logger: Logger instance (optional)
    """
    if logger is None:
        logger = get_logger()
    logger.warning(f"SECURITY_EVENT: {event_type} | {details}")


def log_connection_event(connection_id: str, user: Optional[str], action: str, ip_address: str = "unknown"):
    """
    Log connection lifecycle events

    Args:
        connection_id: Connection identifier
        user: Authenticated user or None for anonymous
        action: Action (connect/disconnect/rejected)
        ip_address: Client IP address
    """
    get_logger().info(
        f"CONNECTION_EVENT: {action} | conn={connection_id} | user={user or 'anonymous'} | ip={ip_address}"
    )


def log_room_event(room_id: str, connection_id: str, action: str, details: str = ""):
    """
    Log room membership events

    Args:
        room_id: Room identifier
        connection_id: Connection identifier
        action: Action (join/leave/created/deleted)
        details: Additional details
    """
    get_logger().info(f"ROOM_EVENT: {action} | room={room_id} | conn={connection_id} | {details}")


def log_message_event(message_id: str, connection_id: str, room_id: str, action: str, details: str = ""):
    """
    Log message-related events

    Args:
        message_id: Unique message identifier
        connection_id: Sender connection
        room_id: Room identifier
        action: Action (received/broadcast/rejected/stored)
        details: Additional details
    """
    get_logger().info(
        f"MESSAGE_EVENT: {action} | id={message_id[:8]}... | conn={connection_id} | room={room_id} | {details}"
    )


def log_delivery_event(message_id: str, connection_id: str, action: str, details: str = ""):
    """Log per-recipient delivery outcomes"""
    get_logger().warning(
        f"DELIVERY_EVENT: {action} | id={message_id[:8]}... | conn={connection_id} | {details}"
    )


def log_websocket_event(event_type: str, connection_id: str, details: str = ""):
    """
    Log WebSocket protocol events

    Args:
        event_type: Type of WebSocket event
        connection_id: Connection identifier
        details: Additional details
    """
    get_logger().debug(f"WEBSOCKET_EVENT: {event_type} | conn={connection_id} | {details}")


def log_system_event(event_type: str, details: str, level: str = "info"):
    """
    Log system-level events

    Args:
        event_type: Type of system event
        details: Event details
        level: Log level (info/warning/error)
    """
    logger = get_logger()
    log_message = f"SYSTEM_EVENT: {event_type} | {details}"

    if level == "warning":
        logger.warning(log_message)
    elif level == "error":
        logger.error(log_message)
    else:
        logger.info(log_message)
