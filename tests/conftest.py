"""Test fixtures — an isolated app per test on in-memory SQLite.

Learn: create_app() takes explicit Settings, so every test gets its own
engine, registry, hub and bridge. The bridge is disabled (no broker in
tests); tests that need a connected bridge use the fakes below.

httpx's ASGITransport does not run the lifespan, so the db fixtures
create the tables themselves.
"""

import asyncio
from typing import Any
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from starlette.websockets import WebSocketState

from todobridge.bridge.service import BridgeState, CommandBridge
from todobridge.config import Settings
from todobridge.db.models import Base
from todobridge.main import create_app


def make_settings(**overrides) -> Settings:
    values = {
        "database_url": "sqlite+aiosqlite://",
        "seed_sample_data": False,
        "bridge_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


# ─── Fakes ───────────────────────────────────────────────


class FakeWebSocket:
    """Stands in for a Starlette WebSocket inside the hub."""

    def __init__(self, open_: bool = True, fail: bool = False):
        state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
        self.client_state = state
        self.application_state = state
        self.sent: list[str] = []
        self.close_codes: list[int] = []
        self.fail = fail

    async def send_text(self, data: str) -> None:
        if self.fail:
            raise RuntimeError("connection reset")
        self.sent.append(data)

    async def close(self, code: int = 1000) -> None:
        self.close_codes.append(code)
        self.client_state = WebSocketState.DISCONNECTED
        self.application_state = WebSocketState.DISCONNECTED


class FakePubSub:
    """Redis PubSub double: yields queued messages, then blocks until closed."""

    def __init__(self, messages: list[dict] | None = None):
        self.messages = list(messages or [])
        self.patterns: list[str] = []
        self.closed = asyncio.Event()

    async def psubscribe(self, *patterns: str) -> None:
        self.patterns.extend(patterns)

    async def listen(self):
        for message in self.messages:
            yield message
        await self.closed.wait()

    async def aclose(self) -> None:
        self.closed.set()


class FakeRedis:
    """Redis client double recording every PUBLISH."""

    def __init__(self, pubsub: FakePubSub | None = None):
        self.ping = AsyncMock(return_value=True)
        self.publish = AsyncMock(return_value=1)
        self.aclose = AsyncMock()
        self._pubsub = pubsub or FakePubSub()

    def pubsub(self) -> FakePubSub:
        return self._pubsub

    def published(self) -> list[tuple[str, Any]]:
        return [tuple(call.args) for call in self.publish.await_args_list]


async def wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll until predicate() is truthy."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


# ─── App fixtures ────────────────────────────────────────


@pytest.fixture()
def settings():
    return make_settings()


@pytest_asyncio.fixture()
async def app(settings):
    application = create_app(settings)
    async with application.state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    try:
        yield application
    finally:
        await application.state.bridge.stop()
        await application.state.engine.dispose()


@pytest_asyncio.fixture()
async def session_factory(app):
    return app.state.session_factory


@pytest_asyncio.fixture()
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture()
async def client(app):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture()
async def fake_redis():
    return FakeRedis()


@pytest_asyncio.fixture()
async def connected_bridge(app, fake_redis):
    """The app's bridge, running against a fake broker and fully subscribed."""
    bridge = CommandBridge(
        make_settings(bridge_enabled=True, bridge_reconnect_seconds=0.05),
        app.state.session_factory,
        app.state.hub,
        client_factory=lambda: fake_redis,
    )
    app.state.bridge = bridge
    app.state.notifier = bridge.notifier
    await bridge.start()
    await wait_for(lambda: bridge.state == BridgeState.SUBSCRIBED)
    yield bridge
    await bridge.stop()
