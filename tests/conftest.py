import asyncio
import json
from typing import Any, Dict, List

import pytest

from chatroom import (
    ConnectionRegistry,
    RoomDirectory,
    Settings,
    SocketGateway,
    InMemoryMessageStore,
)


class FakeWebSocket:
    """Transport double recording every frame sent to it"""

    def __init__(self, fail: bool = False, delay: float = 0.0):
        self.sent: List[Dict[str, Any]] = []
        self.fail = fail
        self.delay = delay

    async def send_text(self, text: str):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("transport is closing")
        self.sent.append(json.loads(text))

    def events(self, name: str) -> List[Dict[str, Any]]:
        return [frame for frame in self.sent if frame.get("event") == name]

    def payloads(self) -> List[str]:
        return [frame["payload"] for frame in self.events("message")]


@pytest.fixture
def make_websocket():
    def factory(**kwargs) -> FakeWebSocket:
        return FakeWebSocket(**kwargs)
    return factory


@pytest.fixture
def directory() -> RoomDirectory:
    return RoomDirectory()


@pytest.fixture
def registry(directory) -> ConnectionRegistry:
    return ConnectionRegistry(directory)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def store() -> InMemoryMessageStore:
    return InMemoryMessageStore(limit=10, ttl_seconds=60)


@pytest.fixture
def gateway(settings, store) -> SocketGateway:
    return SocketGateway(settings, store=store)
