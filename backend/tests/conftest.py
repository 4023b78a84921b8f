"""
pytest configuration and fixtures.
"""

import asyncio
import json
from collections import namedtuple
from typing import Generator, Optional

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

from flood_relay.main import app
from flood_relay.models import ThresholdPair
from flood_relay.routers import get_threshold_service
from flood_relay.services import Connection, ConnectionHub


Address = namedtuple("Address", ["host", "port"])


class FakeWebSocket:
    """
    Stands in for a Starlette WebSocket.

    Sent frames land in .sent; frames to "receive" are queued with
    push_text() / push_disconnect().
    """

    _next_port = 40000

    def __init__(self, fail_on_send: bool = False):
        FakeWebSocket._next_port += 1
        self.client = Address("10.0.0.1", FakeWebSocket._next_port)
        self.application_state = WebSocketState.CONNECTING
        self.client_state = WebSocketState.CONNECTING
        self.fail_on_send = fail_on_send
        self.sent: list[str] = []
        self.close_codes: list[int] = []
        self._inbox: asyncio.Queue = asyncio.Queue()

    async def accept(self):
        self.application_state = WebSocketState.CONNECTED
        self.client_state = WebSocketState.CONNECTED

    async def send_text(self, data: str):
        if self.fail_on_send:
            raise RuntimeError("Unexpected ASGI message 'websocket.send'")
        self.sent.append(data)

    async def close(self, code: int = 1000):
        self.application_state = WebSocketState.DISCONNECTED
        self.close_codes.append(code)

    async def receive(self) -> dict:
        return await self._inbox.get()

    def push_text(self, text: str):
        self._inbox.put_nowait({"type": "websocket.receive", "text": text})

    def push_bytes(self, data: bytes):
        self._inbox.put_nowait({"type": "websocket.receive", "bytes": data})

    def push_disconnect(self, code: int = 1000):
        self._inbox.put_nowait({"type": "websocket.disconnect", "code": code})

    @property
    def messages(self) -> list[dict]:
        return [json.loads(frame) for frame in self.sent]

    def messages_of_type(self, frame_type: str) -> list[dict]:
        return [m for m in self.messages if m.get("type") == frame_type]


class StubThresholdService:
    """Threshold service that never touches the network."""

    def __init__(self, thresholds: ThresholdPair, defaults: Optional[ThresholdPair] = None):
        self.thresholds = thresholds
        self.defaults = defaults or thresholds
        self.calls = 0

    async def get_thresholds(self, label: str = "relay") -> ThresholdPair:
        self.calls += 1
        return self.thresholds

    async def close(self):
        pass


@pytest.fixture
def thresholds() -> ThresholdPair:
    """Normal at 100, flood below 80."""
    return ThresholdPair(normal=100, banjir=80)


@pytest.fixture
def threshold_service(thresholds: ThresholdPair) -> StubThresholdService:
    return StubThresholdService(thresholds)


@pytest.fixture
def hub() -> ConnectionHub:
    return ConnectionHub()


@pytest.fixture
def make_connection():
    """Factory for Connections over accepted fake sockets."""
    def _make(fail_on_send: bool = False) -> Connection:
        websocket = FakeWebSocket(fail_on_send=fail_on_send)
        websocket.application_state = WebSocketState.CONNECTED
        websocket.client_state = WebSocketState.CONNECTED
        return Connection(websocket)
    return _make


@pytest.fixture
def client(threshold_service: StubThresholdService) -> Generator[TestClient, None, None]:
    """Test client with the lifespan running and thresholds stubbed out."""
    app.dependency_overrides[get_threshold_service] = lambda: threshold_service
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
