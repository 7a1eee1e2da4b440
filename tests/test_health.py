"""Health endpoint tests."""

import pytest

from conftest import FakeWebSocket


@pytest.mark.asyncio
async def test_health_returns_ok(client):
    """Health endpoint should return server status and version."""
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["server"] == "ok"
    assert data["database"] == "ok"
    assert data["status"] == "healthy"
    assert data["bridge"] == "stopped"
    assert data["bridge_prefix"] == "blazor-net-app"
    assert "version" in data


@pytest.mark.asyncio
async def test_health_reports_websocket_clients(app, client):
    app.state.registry.add("a", FakeWebSocket())
    app.state.registry.add("b", FakeWebSocket())
    resp = await client.get("/api/v1/health")
    assert resp.json()["websocket_clients"] == 2


@pytest.mark.asyncio
async def test_health_with_connected_bridge(client, connected_bridge):
    data = (await client.get("/api/v1/health")).json()
    assert data["bridge"] == "subscribed"
    assert data["status"] == "healthy"
