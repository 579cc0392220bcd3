"""
Shared fixtures for the realtime tests.

Run tests:
----------
    pytest chatcore/tests -v
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest

from chatcore.config import Settings
from chatcore.realtime.broadcast import Broadcaster
from chatcore.realtime.registry import ConnectionRegistry
from chatcore.realtime.signaling import SignalingSession
from chatcore.realtime.typing_tracker import TypingTracker


# Short typing window so expiry tests finish quickly
TEST_TYPING_TIMEOUT = 0.05

TEST_INTERNAL_SECRET = "test-internal-secret-1234567890123456"


class FakeConnection:
    """In-memory stand-in for a WebSocket push channel."""

    def __init__(self, name: str = "conn", fail: bool = False, delay: float = 0.0):
        self.name = name
        self.fail = fail
        self.delay = delay
        self.sent: List[Dict[str, Any]] = []
        self.closed: Optional[tuple] = None

    async def send_text(self, data: str) -> None:
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError(f"{self.name} is closed")
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: Optional[str] = None) -> None:
        self.closed = (code, reason)

    def frames_of(self, event_type: str) -> List[Dict[str, Any]]:
        return [frame for frame in self.sent if frame["type"] == event_type]

    def __repr__(self) -> str:
        return f"FakeConnection({self.name!r})"


@pytest.fixture
def make_connection():
    """Factory for FakeConnection instances."""
    def _make(name: str = "conn", fail: bool = False, delay: float = 0.0) -> FakeConnection:
        return FakeConnection(name=name, fail=fail, delay=delay)
    return _make


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def tracker():
    return TypingTracker(timeout_seconds=TEST_TYPING_TIMEOUT)


@pytest.fixture
def broadcaster(registry):
    return Broadcaster(registry)


@pytest.fixture
def open_session(registry, tracker, broadcaster):
    """Factory creating a SignalingSession over the shared core fixtures."""
    def _open(connection, **options) -> SignalingSession:
        return SignalingSession(connection, registry, tracker, broadcaster, **options)
    return _open


@pytest.fixture
def test_settings():
    """Settings for application tests"""
    return Settings(
        INTERNAL_SHARED_SECRET=TEST_INTERNAL_SECRET,
        TYPING_TIMEOUT_SECONDS=0.2,
        LOG_LEVEL="DEBUG",
    )


@pytest.fixture
def internal_headers():
    """Headers accepted by the /internal endpoints"""
    return {"X-Internal-Secret": TEST_INTERNAL_SECRET}
