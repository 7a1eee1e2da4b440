"""Health check endpoint.

Learn: Simple GET endpoint that verifies the server is running and
reports the state of its dependencies: the database, the command
bridge, and how many WebSocket clients are listening.
"""

from fastapi import APIRouter, Request
from sqlalchemy import text

from todobridge import __version__

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """Check server health and dependency connectivity."""
    state = request.app.state
    checks = {"server": "ok", "version": __version__}

    # Check database
    try:
        async with state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        checks["database"] = f"error: {e}"

    bridge = state.bridge
    status = "healthy" if checks["database"] == "ok" else "degraded"
    if bridge.settings.bridge_enabled and not bridge.is_connected:
        status = "degraded"

    return {
        "status": status,
        **checks,
        "bridge": bridge.state.value,
        "bridge_prefix": bridge.prefix,
        "websocket_clients": state.registry.count(),
    }
