"""
Shared test fixtures and configuration for the typed_graphql test suite.
"""

import asyncio
import json
from collections import deque
from typing import Any, AsyncGenerator, Deque, Dict, List, Optional

import aioresponses
import pytest
from aiohttp import ClientSession, WSMsgType, WSMessage

from typed_graphql import ClientConfig, GraphQLClient

GRAPHQL_URL = "http://localhost:8080/query"


@pytest.fixture
def graphql_url() -> str:
    """Endpoint used by HTTP tests."""
    return GRAPHQL_URL


@pytest.fixture
def client_config(graphql_url: str) -> ClientConfig:
    """Default client configuration for tests."""
    return ClientConfig(endpoint=graphql_url, headers={"Authorization": "Bearer test-token"})


@pytest.fixture
def mock_aiohttp():
    """Mock aiohttp responses for testing."""
    with aioresponses.aioresponses() as m:
        yield m


@pytest.fixture
async def http_session() -> AsyncGenerator[ClientSession, None]:
    """A real aiohttp session, closed after the test."""
    session = ClientSession()
    yield session
    await session.close()


@pytest.fixture
async def graphql_client(client_config: ClientConfig) -> AsyncGenerator[GraphQLClient, None]:
    """Create a GraphQLClient owning its session."""
    async with GraphQLClient(client_config) as client:
        yield client


class FakeWebSocket:
    """
    Scripted stand-in for aiohttp.ClientWebSocketResponse.

    Incoming messages are queued with ``feed_*``; ``receive`` waits for the
    next one. Sent text frames are recorded as parsed JSON in ``sent``.
    """

    def __init__(self, protocol: Optional[str] = "graphql-ws"):
        self.protocol = protocol
        self.sent: List[Dict[str, Any]] = []
        self.closed = False
        self.close_calls = 0
        self._incoming: Deque[WSMessage] = deque()
        self._available = asyncio.Event()

    def feed_frame(self, **frame: Any) -> None:
        self.feed_text(json.dumps(frame))

    def feed_text(self, data: str) -> None:
        self._feed(WSMessage(WSMsgType.TEXT, data, None))

    def feed_binary(self, data: bytes) -> None:
        self._feed(WSMessage(WSMsgType.BINARY, data, None))

    def feed_close(self) -> None:
        self._feed(WSMessage(WSMsgType.CLOSE, 1000, ""))

    def _feed(self, msg: WSMessage) -> None:
        self._incoming.append(msg)
        self._available.set()

    async def send_str(self, data: str) -> None:
        if self.closed:
            raise ConnectionResetError("Cannot write to closing transport")
        self.sent.append(json.loads(data))

    async def receive(self) -> WSMessage:
        while not self._incoming:
            if self.closed:
                return WSMessage(WSMsgType.CLOSED, None, None)
            self._available.clear()
            await self._available.wait()
        return self._incoming.popleft()

    async def close(self) -> bool:
        self.close_calls += 1
        if self.closed:
            return False
        self.closed = True
        self._available.set()
        return True

    def sent_types(self) -> List[str]:
        return [frame["type"] for frame in self.sent]


class FakeSession:
    """Minimal session whose ``ws_connect`` hands out a FakeWebSocket."""

    def __init__(self, websocket: FakeWebSocket):
        self.websocket = websocket
        self.connect_calls: List[Dict[str, Any]] = []
        self.closed = False

    async def ws_connect(self, url: str, **kwargs: Any) -> FakeWebSocket:
        self.connect_calls.append({"url": url, **kwargs})
        return self.websocket

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_websocket() -> FakeWebSocket:
    """A scripted websocket."""
    return FakeWebSocket()


@pytest.fixture
def fake_session(fake_websocket: FakeWebSocket) -> FakeSession:
    """A session that connects to ``fake_websocket``."""
    return FakeSession(fake_websocket)


def pytest_collection_modifyitems(config, items):
    """Add markers based on test file names."""
    for item in items:
        if "test_executor" in item.nodeid or "test_client" in item.nodeid:
            item.add_marker(pytest.mark.http)
        elif "test_subscription" in item.nodeid:
            item.add_marker(pytest.mark.websocket)

        if not any(marker.name == "slow" for marker in item.iter_markers()):
            item.add_marker(pytest.mark.unit)
