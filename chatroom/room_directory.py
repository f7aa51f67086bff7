"""
Room directory: room id -> subscriber set, guarded by a single lock
"""

import asyncio
from typing import Dict, List, Optional, Set

from .constants import ERROR_MESSAGES, MAX_ROOMS_TOTAL, MAX_SUBSCRIBERS_PER_ROOM
from .errors import RoomFull
from .logger import get_logger, log_room_event, log_security_event
from .models import Room

logger = get_logger()


class RoomDirectory:
    """Lock-guarded mapping of rooms to their subscribers

    Both sides of a membership (the room's subscriber set and the
    connection's joined-room set) live here and change under the same lock,
    so a connection is in a room's subscribers iff the room is in its joined
    set after every operation.
    """

    def __init__(self, max_rooms: int = MAX_ROOMS_TOTAL,
                 max_subscribers_per_room: int = MAX_SUBSCRIBERS_PER_ROOM):
        # room_id -> Room
        self._rooms: Dict[str, Room] = {}
        # connection_id -> joined room ids
        self._memberships: Dict[str, Set[str]] = {}
        self._lock = asyncio.Lock()
        self.max_rooms = max_rooms
        self.max_subscribers_per_room = max_subscribers_per_room
        self.rooms_created = 0
        self.rooms_deleted = 0

    async def join(self, room_id: str, connection_id: str) -> bool:
        """
        Subscribe a connection to a room, creating the room if absent

        Args:
            room_id: Room identifier
            connection_id: Connection identifier

        Returns:
            True if the connection was newly added, False if already subscribed

        Raises:
            RoomFull: room or server capacity reached
        """
        async with self._lock:
            room = self._rooms.get(room_id)

            if room is not None and connection_id in room.subscribers:
                return False

            if room is None:
                if len(self._rooms) >= self.max_rooms:
                    log_security_event("room_limit_exceeded", {
                        "current_rooms": len(self._rooms),
                        "max_rooms": self.max_rooms
                    })
                    raise RoomFull(ERROR_MESSAGES["too_many_rooms"])
                room = Room(room_id=room_id)
                self._rooms[room_id] = room
                self.rooms_created += 1
                log_room_event(room_id, connection_id, "created")

            elif len(room.subscribers) >= self.max_subscribers_per_room:
                log_security_event("room_full", {
                    "room": room_id,
                    "subscribers": len(room.subscribers),
                    "max_subscribers": self.max_subscribers_per_room
                })
                raise RoomFull()

            room.subscribers.add(connection_id)
            room.update_activity()
            self._memberships.setdefault(connection_id, set()).add(room_id)

            log_room_event(room_id, connection_id, "join", f"subscribers={len(room.subscribers)}")
            return True

    async def leave(self, room_id: str, connection_id: str) -> bool:
        """
        Unsubscribe a connection from a room, deleting the room when empty

        Returns:
            True if the connection was subscribed, False otherwise
        """
        async with self._lock:
            return self._leave_locked(room_id, connection_id)

    async def leave_all(self, connection_id: str) -> List[str]:
        """
        Remove a connection from every room it has joined

        Returns:
            Room ids that were left
        """
        async with self._lock:
            room_ids = sorted(self._memberships.get(connection_id, ()))
            for room_id in room_ids:
                self._leave_locked(room_id, connection_id)
            self._memberships.pop(connection_id, None)
            return room_ids

    def _leave_locked(self, room_id: str, connection_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None or connection_id not in room.subscribers:
            return False

        room.subscribers.discard(connection_id)
        joined = self._memberships.get(connection_id)
        if joined is not None:
            joined.discard(room_id)
            if not joined:
                del self._memberships[connection_id]

        if room.subscribers:
            room.update_activity()
        else:
            del self._rooms[room_id]
            self.rooms_deleted += 1
            log_room_event(room_id, connection_id, "deleted", "empty")

        log_room_event(room_id, connection_id, "leave")
        return True

    async def subscribers(self, room_id: str) -> Set[str]:
        """Snapshot of a room's subscribers; empty for an unknown room"""
        async with self._lock:
            room = self._rooms.get(room_id)
            return set(room.subscribers) if room else set()

    async def rooms_of(self, connection_id: str) -> Set[str]:
        """Snapshot of the rooms a connection has joined"""
        async with self._lock:
            return set(self._memberships.get(connection_id, ()))

    async def is_subscribed(self, room_id: str, connection_id: str) -> bool:
        async with self._lock:
            room = self._rooms.get(room_id)
            return room is not None and connection_id in room.subscribers

    async def record_message(self, room_id: str):
        async with self._lock:
            room = self._rooms.get(room_id)
            if room is not None:
                room.add_message()

    async def get_room(self, room_id: str) -> Optional[dict]:
        async with self._lock:
            room = self._rooms.get(room_id)
            return room.to_dict() if room else None

    async def rooms_info(self) -> List[dict]:
        """
        Get information about all active rooms

        Returns:
            List of room summaries, sorted by room id
        """
        async with self._lock:
            return [self._rooms[room_id].to_dict() for room_id in sorted(self._rooms)]

    async def stats(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "total_rooms": len(self._rooms),
                "total_subscriptions": sum(len(room.subscribers) for room in self._rooms.values()),
                "rooms_created": self.rooms_created,
                "rooms_deleted": self.rooms_deleted,
                "max_rooms": self.max_rooms,
                "max_subscribers_per_room": self.max_subscribers_per_room,
            }
