import asyncio
import random

import pytest

from chatroom import RoomDirectory, RoomFull


class TestRoomDirectory:
    """Room membership bookkeeping"""

    @pytest.mark.asyncio
    async def test_join_creates_room(self, directory):
        assert await directory.join("lobby", "a") is True

        assert await directory.subscribers("lobby") == {"a"}
        assert await directory.rooms_of("a") == {"lobby"}
        assert (await directory.stats())["rooms_created"] == 1

    @pytest.mark.asyncio
    async def test_join_is_idempotent(self, directory):
        await directory.join("lobby", "a")
        assert await directory.join("lobby", "a") is False

        assert len(await directory.subscribers("lobby")) == 1
        assert directory.rooms_created == 1

    @pytest.mark.asyncio
    async def test_leave_deletes_empty_room(self, directory):
        await directory.join("lobby", "a")
        await directory.join("lobby", "b")

        assert await directory.leave("lobby", "a") is True
        assert await directory.get_room("lobby") is not None

        assert await directory.leave("lobby", "b") is True
        assert await directory.get_room("lobby") is None
        assert await directory.rooms_info() == []
        assert directory.rooms_deleted == 1

    @pytest.mark.asyncio
    async def test_leave_when_not_joined_is_noop(self, directory):
        await directory.join("lobby", "a")

        assert await directory.leave("lobby", "b") is False
        assert await directory.leave("nowhere", "a") is False
        assert await directory.subscribers("lobby") == {"a"}

    @pytest.mark.asyncio
    async def test_unknown_room_has_no_subscribers(self, directory):
        assert await directory.subscribers("chat_room:lobby") == set()
        assert await directory.is_subscribed("chat_room:lobby", "a") is False

    @pytest.mark.asyncio
    async def test_subscribers_returns_snapshot(self, directory):
        await directory.join("lobby", "a")
        snapshot = await directory.subscribers("lobby")
        snapshot.add("intruder")

        assert await directory.subscribers("lobby") == {"a"}

    @pytest.mark.asyncio
    async def test_leave_all_keeps_both_sides_consistent(self, directory):
        for room_id in ("r1", "r2", "r3"):
            await directory.join(room_id, "a")
        await directory.join("r2", "b")

        left = await directory.leave_all("a")

        assert left == ["r1", "r2", "r3"]
        assert await directory.rooms_of("a") == set()
        assert await directory.subscribers("r2") == {"b"}
        assert [room["room_id"] for room in await directory.rooms_info()] == ["r2"]

    @pytest.mark.asyncio
    async def test_concurrent_joins_create_room_once(self, directory):
        ids = [f"conn_{i}" for i in range(50)]

        results = await asyncio.gather(*(directory.join("lobby", cid) for cid in ids))

        assert all(results)
        assert await directory.subscribers("lobby") == set(ids)
        assert directory.rooms_created == 1

    @pytest.mark.asyncio
    async def test_concurrent_joins_and_leaves(self, directory):
        ids = [f"conn_{i}" for i in range(40)]
        await asyncio.gather(*(directory.join("lobby", cid) for cid in ids))

        leaving = ids[::2]
        await asyncio.gather(
            *(directory.leave("lobby", cid) for cid in leaving),
            *(directory.join("lobby", f"late_{i}") for i in range(10)),
        )

        expected = set(ids[1::2]) | {f"late_{i}" for i in range(10)}
        assert await directory.subscribers("lobby") == expected

    @pytest.mark.asyncio
    async def test_random_sequences_match_last_operation(self, directory):
        rng = random.Random(1234)
        connections = [f"c{i}" for i in range(6)]
        rooms = ["lobby", "sports"]
        expected = {room_id: set() for room_id in rooms}

        for _ in range(300):
            cid = rng.choice(connections)
            op = rng.choice(["join", "join", "leave", "disconnect"])
            room_id = rng.choice(rooms)

            if op == "join":
                await directory.join(room_id, cid)
                expected[room_id].add(cid)
            elif op == "leave":
                await directory.leave(room_id, cid)
                expected[room_id].discard(cid)
            else:
                await directory.leave_all(cid)
                for members in expected.values():
                    members.discard(cid)

            for rid in rooms:
                assert await directory.subscribers(rid) == expected[rid]
            for c in connections:
                joined = {rid for rid in rooms if c in expected[rid]}
                assert await directory.rooms_of(c) == joined

    @pytest.mark.asyncio
    async def test_room_capacity(self):
        directory = RoomDirectory(max_rooms=1, max_subscribers_per_room=2)
        await directory.join("lobby", "a")
        await directory.join("lobby", "b")

        with pytest.raises(RoomFull):
            await directory.join("lobby", "c")
        with pytest.raises(RoomFull):
            await directory.join("sports", "a")

        assert await directory.rooms_of("c") == set()
        assert await directory.subscribers("lobby") == {"a", "b"}

    @pytest.mark.asyncio
    async def test_record_message_updates_room_info(self, directory):
        await directory.join("lobby", "a")
        await directory.record_message("lobby")
        await directory.record_message("unknown")

        info = await directory.get_room("lobby")
        assert info["message_count"] == 1
        assert info["subscriber_count"] == 1
