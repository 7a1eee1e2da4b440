"""WebSocket endpoint — real-time todo change delivery to UI clients.

Learn: Each browser tab connects to /ws/todos. The handler accepts,
assigns a fresh connection id, and hands the socket to the hub, which
keeps it registered until the client goes away. Frames the client sends
are ignored; every frame the server sends looks like:

    {"action": "created", "data": {...}, "timestamp": "2025-01-01T00:00:00Z"}
"""

import uuid

from fastapi import APIRouter, WebSocket

router = APIRouter()


@router.websocket("/ws/todos")
async def todos_websocket(websocket: WebSocket):
    """Long-lived push connection — one per browser tab."""
    await websocket.accept()
    connection_id = str(uuid.uuid4())
    await websocket.app.state.hub.serve(websocket, connection_id)
