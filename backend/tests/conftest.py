"""Shared pytest fixtures for backend tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi.testclient import TestClient

ROOT_DIR = Path(__file__).resolve().parents[1]
for path in (ROOT_DIR, ROOT_DIR / "src"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

from app.main import app
from app.monitoring.registry import registry
from chatline.realtime import RealtimeService


class FakeChannel:
    """In-memory channel recording every event pushed to it."""

    _counter = 0

    def __init__(self, user_id: str | None = None, *, user_info: dict[str, Any] | None = None) -> None:
        FakeChannel._counter += 1
        self.channel_id = f"fake-{FakeChannel._counter}"
        self.user_id = user_id
        self.user_info = user_info
        self.sent: list[tuple[str, Any]] = []
        self.open = True

    @property
    def is_open(self) -> bool:
        return self.open

    def send(self, event: str, payload: Any) -> bool:
        if not self.open:
            return False
        self.sent.append((event, payload))
        return True

    async def close(self) -> None:
        self.open = False

    def events(self, name: str) -> list[Any]:
        return [payload for event, payload in self.sent if event == name]

    def last(self, name: str) -> Any:
        matches = self.events(name)
        assert matches, f"{self.channel_id} received no '{name}' event"
        return matches[-1]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    registry.reset()
    yield
    registry.reset()


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture()
def service() -> RealtimeService:
    return RealtimeService()


@pytest.fixture()
def make_channel():
    def factory(user_id: str | None = None, **kwargs: Any) -> FakeChannel:
        return FakeChannel(user_id, **kwargs)

    return factory


@pytest.fixture()
def connect(service: RealtimeService, make_channel):
    """Connect a fake channel through the lifecycle controller."""

    def factory(user_id: str | None = None, **kwargs: Any) -> FakeChannel:
        channel = make_channel(user_id, **kwargs)
        service.connect(channel)
        return channel

    return factory


@pytest.fixture()
def client() -> Iterator[TestClient]:
    """Yield a FastAPI TestClient with the realtime service started."""

    with TestClient(app) as test_client:
        yield test_client
