"""
Connection registry: live connections keyed by connection id
"""

import asyncio
import itertools
from typing import Any, Dict, Optional, Set

from .logger import get_logger, log_connection_event
from .models import Connection
from .room_directory import RoomDirectory

logger = get_logger()


class ConnectionRegistry:
    """Owns every live Connection; membership is delegated to the RoomDirectory"""

    def __init__(self, directory: RoomDirectory):
        self.directory = directory
        self._connections: Dict[str, Connection] = {}
        self._lock = asyncio.Lock()
        self._ids = itertools.count(1)
        self.total_registered = 0

    async def register(self, websocket: Any, user: Optional[str] = None,
                       ip_address: str = "unknown") -> str:
        """
        Register a new connection

        Args:
            websocket: Transport exposing ``async send_text(str)``
            user: Authenticated user identity, None for anonymous
            ip_address: Client IP address

        Returns:
            The new connection id
        """
        async with self._lock:
            connection_id = f"conn_{next(self._ids)}"
            self._connections[connection_id] = Connection(
                connection_id=connection_id,
                websocket=websocket,
                user=user,
                ip_address=ip_address,
            )
            self.total_registered += 1

        log_connection_event(connection_id, user, "connect", ip_address)
        return connection_id

    async def unregister(self, connection_id: str) -> bool:
        """
        Leave every joined room, then forget the connection

        Unknown ids are ignored so that disconnect races are harmless.

        Returns:
            True if the connection was registered
        """
        async with self._lock:
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return False
            # Late deliveries check this flag and are dropped
            connection.closed = True

        left = await self.directory.leave_all(connection_id)
        log_connection_event(connection_id, connection.user, "disconnect", connection.ip_address)
        if left:
            logger.info(f"Connection {connection_id} left {len(left)} room(s) on disconnect")
        return True

    async def get(self, connection_id: str) -> Optional[Connection]:
        async with self._lock:
            return self._connections.get(connection_id)

    async def joined_rooms(self, connection_id: str) -> Set[str]:
        return await self.directory.rooms_of(connection_id)

    async def count(self) -> int:
        async with self._lock:
            return len(self._connections)

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "active_connections": len(self._connections),
                "anonymous_connections": sum(1 for c in self._connections.values() if c.user is None),
                "total_registered": self.total_registered,
            }
