"""
Environment-driven settings for the chat room server
"""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Optional

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_ROOM,
    DELIVERY_TIMEOUT_SECONDS,
    LOG_LEVEL,
    MAX_ROOMS_TOTAL,
    MAX_SUBSCRIBERS_PER_ROOM,
    MESSAGE_EXPIRATION_SECONDS,
    MESSAGE_HISTORY_LIMIT,
    RATE_LIMIT_MESSAGES_PER_MINUTE,
)

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value else default


def parse_auth_tokens(raw: Optional[str]) -> Dict[str, str]:
    """
    Parse a ``token:user,token:user`` string into a token table

    Args:
        raw: Raw environment value

    Returns:
        Mapping of token to user identity
    """
    tokens: Dict[str, str] = {}
    if not raw:
        return tokens

    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue
        token, sep, user = item.partition(":")
        if not sep or not token or not user:
            raise ValueError(f"Malformed CHAT_AUTH_TOKENS entry: {item!r}")
        tokens[token.strip()] = user.strip()
    return tokens


@dataclass
class Settings:
    """Server settings"""
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = LOG_LEVEL
    default_room: str = DEFAULT_ROOM
    auto_join_default_room: bool = False
    echo_to_sender: bool = False
    allow_anonymous: bool = True
    auth_tokens: Dict[str, str] = field(default_factory=dict)
    delivery_timeout: float = DELIVERY_TIMEOUT_SECONDS
    history_enabled: bool = True
    history_limit: int = MESSAGE_HISTORY_LIMIT
    history_ttl: int = MESSAGE_EXPIRATION_SECONDS
    max_rooms: int = MAX_ROOMS_TOTAL
    max_subscribers_per_room: int = MAX_SUBSCRIBERS_PER_ROOM
    rate_limit_per_minute: int = RATE_LIMIT_MESSAGES_PER_MINUTE


def load_settings() -> Settings:
    """Build settings from ``CHAT_*`` environment variables"""
    return Settings(
        host=os.getenv("CHAT_HOST", DEFAULT_HOST),
        port=_env_int("CHAT_PORT", DEFAULT_PORT),
        log_level=os.getenv("CHAT_LOG_LEVEL", LOG_LEVEL).upper(),
        default_room=os.getenv("CHAT_DEFAULT_ROOM", DEFAULT_ROOM),
        auto_join_default_room=_env_bool("CHAT_AUTO_JOIN_DEFAULT_ROOM", False),
        echo_to_sender=_env_bool("CHAT_ECHO_TO_SENDER", False),
        allow_anonymous=_env_bool("CHAT_ALLOW_ANONYMOUS", True),
        auth_tokens=parse_auth_tokens(os.getenv("CHAT_AUTH_TOKENS")),
        delivery_timeout=_env_float("CHAT_DELIVERY_TIMEOUT", DELIVERY_TIMEOUT_SECONDS),
        history_enabled=_env_bool("CHAT_HISTORY_ENABLED", True),
        history_limit=_env_int("CHAT_HISTORY_LIMIT", MESSAGE_HISTORY_LIMIT),
        history_ttl=_env_int("CHAT_HISTORY_TTL", MESSAGE_EXPIRATION_SECONDS),
        max_rooms=_env_int("CHAT_MAX_ROOMS", MAX_ROOMS_TOTAL),
        max_subscribers_per_room=_env_int("CHAT_MAX_SUBSCRIBERS_PER_ROOM", MAX_SUBSCRIBERS_PER_ROOM),
        rate_limit_per_minute=_env_int("CHAT_RATE_LIMIT_PER_MINUTE", RATE_LIMIT_MESSAGES_PER_MINUTE),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
