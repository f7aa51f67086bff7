import pytest


class TestConnectionRegistry:
    """Connection lifecycle"""

    @pytest.mark.asyncio
    async def test_register_assigns_unique_ids(self, registry, make_websocket):
        first = await registry.register(make_websocket(), "alice")
        second = await registry.register(make_websocket(), None)

        assert first != second
        assert await registry.count() == 2
        assert (await registry.get(first)).user == "alice"
        assert (await registry.get(second)).user is None

    @pytest.mark.asyncio
    async def test_joined_rooms_reflects_directory(self, registry, directory, make_websocket):
        cid = await registry.register(make_websocket())
        await directory.join("lobby", cid)
        await directory.join("sports", cid)

        assert await registry.joined_rooms(cid) == {"lobby", "sports"}

    @pytest.mark.asyncio
    async def test_unregister_leaves_every_room(self, registry, directory, make_websocket):
        cid = await registry.register(make_websocket())
        other = await registry.register(make_websocket())
        for room_id in ("lobby", "sports"):
            await directory.join(room_id, cid)
        await directory.join("lobby", other)
        connection = await registry.get(cid)

        assert await registry.unregister(cid) is True

        assert connection.closed is True
        assert await registry.get(cid) is None
        assert await registry.joined_rooms(cid) == set()
        assert await directory.subscribers("lobby") == {other}
        assert await directory.get_room("sports") is None

    @pytest.mark.asyncio
    async def test_unregister_unknown_is_noop(self, registry, make_websocket):
        cid = await registry.register(make_websocket())

        assert await registry.unregister("conn_missing") is False
        assert await registry.unregister(cid) is True
        assert await registry.unregister(cid) is False

    @pytest.mark.asyncio
    async def test_stats(self, registry, make_websocket):
        await registry.register(make_websocket(), "alice")
        cid = await registry.register(make_websocket())
        await registry.unregister(cid)

        stats = await registry.stats()
        assert stats == {
            "active_connections": 1,
            "anonymous_connections": 0,
            "total_registered": 2,
        }
