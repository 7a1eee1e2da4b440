"""WebSocket push channel tests — end to end through the real endpoint.

Learn: httpx's ASGITransport can't speak WebSocket, so these tests use
Starlette's TestClient. Inside `with TestClient(app)` the lifespan runs
(tables get created) and every request shares one event loop.
"""

import time

import pytest
from starlette.testclient import TestClient

from todobridge.main import create_app

from conftest import make_settings


def _wait_for_clients(app, expected: int, timeout: float = 2.0) -> None:
    deadline = time.monotonic() + timeout
    while app.state.registry.count() != expected:
        if time.monotonic() > deadline:
            raise AssertionError(f"expected {expected} clients, have {app.state.registry.count()}")
        time.sleep(0.01)


@pytest.fixture
def ws_app():
    return create_app(make_settings())


def test_created_item_is_pushed_to_every_client(ws_app):
    with TestClient(ws_app) as tc:
        with tc.websocket_connect("/ws/todos") as ws1, tc.websocket_connect("/ws/todos") as ws2:
            _wait_for_clients(ws_app, 2)

            resp = tc.post("/api/v1/todoitems", json={"title": "A"})
            assert resp.status_code == 201
            item = resp.json()

            for ws in (ws1, ws2):
                frame = ws.receive_json()
                assert frame["action"] == "created"
                assert frame["data"]["id"] == item["id"]
                assert frame["data"]["title"] == "A"
                assert "timestamp" in frame


def test_update_and_delete_are_pushed(ws_app):
    with TestClient(ws_app) as tc:
        item = tc.post("/api/v1/todoitems", json={"title": "B"}).json()
        with tc.websocket_connect("/ws/todos") as ws:
            _wait_for_clients(ws_app, 1)

            tc.put(f"/api/v1/todoitems/{item['id']}", json={"title": "B2", "isCompleted": True})
            frame = ws.receive_json()
            assert frame["action"] == "updated"
            assert frame["data"]["title"] == "B2"
            assert frame["data"]["isCompleted"] is True

            tc.delete(f"/api/v1/todoitems/{item['id']}")
            frame = ws.receive_json()
            assert frame["action"] == "deleted"
            assert frame["data"] == {"id": item["id"]}


def test_client_frames_are_ignored(ws_app):
    with TestClient(ws_app) as tc:
        with tc.websocket_connect("/ws/todos") as ws:
            _wait_for_clients(ws_app, 1)
            ws.send_text("hello?")
            ws.send_json({"type": "ping"})

            tc.post("/api/v1/todoitems", json={"title": "C"})
            assert ws.receive_json()["action"] == "created"


def test_disconnect_deregisters(ws_app):
    with TestClient(ws_app) as tc:
        with tc.websocket_connect("/ws/todos"):
            _wait_for_clients(ws_app, 1)
        _wait_for_clients(ws_app, 0)

        # Broadcasting to nobody is fine
        resp = tc.post("/api/v1/todoitems", json={"title": "D"})
        assert resp.status_code == 201
