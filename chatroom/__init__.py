"""
Chat room server core: room membership and message fan-out
"""

from .models import Connection, Room, ChatMessage
from .errors import (
    ChatError,
    AuthFailure,
    NotSubscribed,
    DeliveryFailure,
    InvalidFrame,
    InvalidRoom,
    InvalidMessage,
    RateLimited,
    RoomFull,
    SessionClosed,
)
from .config import Settings, load_settings, get_settings
from .room_directory import RoomDirectory
from .registry import ConnectionRegistry
from .broadcaster import Broadcaster
from .persistence import MessageStore, InMemoryMessageStore
from .auth import Authenticator, AnonymousAuthenticator, TokenAuthenticator, build_authenticator
from .gateway import SocketGateway, ClientSession, SessionState, create_gateway
from .constants import *
from .logger import (
    get_logger,
    configure_logging,
    log_security_event,
    log_connection_event,
    log_room_event,
    log_message_event,
    log_delivery_event,
    log_websocket_event,
    log_system_event,
)

__all__ = [
    'Connection',
    'Room',
    'ChatMessage',
    'ChatError',
    'AuthFailure',
    'NotSubscribed',
    'DeliveryFailure',
    'InvalidFrame',
    'InvalidRoom',
    'InvalidMessage',
    'RateLimited',
    'RoomFull',
    'SessionClosed',
    'Settings',
    'load_settings',
    'get_settings',
    'RoomDirectory',
    'ConnectionRegistry',
    'Broadcaster',
    'MessageStore',
    'InMemoryMessageStore',
    'Authenticator',
    'AnonymousAuthenticator',
    'TokenAuthenticator',
    'build_authenticator',
    'SocketGateway',
    'ClientSession',
    'SessionState',
    'create_gateway',
    'get_logger',
    'configure_logging',
    'log_security_event',
    'log_connection_event',
    'log_room_event',
    'log_message_event',
    'log_delivery_event',
    'log_websocket_event',
    'log_system_event',
]
