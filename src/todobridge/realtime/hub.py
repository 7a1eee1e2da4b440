"""Notification hub — fans change events out to every WebSocket client.

Learn: Broadcast is fire-and-forget, best effort:
1. Empty registry → return before doing any work
2. Serialize the event ONCE, share the text across all sends
3. One send attempt per open connection (bounded by a timeout)
4. Closed or failing connections are collected, then evicted after
   the pass, never while iterating. A socket whose send failed is
   also closed (1011) so the client knows to reconnect
5. No retries, no backlog: an evicted client just misses that event
   (the UI can always re-fetch over REST)

Per-recipient failures are logged, never raised to the caller.
"""

import asyncio

import structlog
from starlette import status
from starlette.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from todobridge.events.change import ChangeEvent
from todobridge.realtime.registry import ConnectionRegistry

logger = structlog.get_logger()


def is_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class NotificationHub:
    def __init__(self, registry: ConnectionRegistry, send_timeout: float = 5.0):
        self.registry = registry
        self.send_timeout = send_timeout

    async def broadcast(self, event: ChangeEvent) -> int:
        """Send an event to every open connection. Returns the delivered count."""
        connections = self.registry.snapshot()
        if not connections:
            return 0

        payload = event.to_wire()
        stale: list[tuple[str, WebSocket]] = []
        failed: list[tuple[str, WebSocket]] = []
        delivered = 0

        for connection_id, websocket in connections:
            if not is_open(websocket):
                stale.append((connection_id, websocket))
                continue
            try:
                await asyncio.wait_for(
                    websocket.send_text(payload), timeout=self.send_timeout
                )
                delivered += 1
            except Exception as e:
                logger.warning(
                    "hub.send_failed",
                    connection_id=connection_id,
                    action=event.action,
                    error=str(e) or type(e).__name__,
                )
                failed.append((connection_id, websocket))

        stale.extend(failed)
        for connection_id, websocket in stale:
            self.registry.remove(connection_id, websocket)
        for connection_id, websocket in failed:
            if is_open(websocket):
                await self._close(connection_id, websocket)

        logger.info(
            "hub.broadcast",
            action=event.action,
            item_id=event.item_id,
            delivered=delivered,
            evicted=len(stale),
        )
        return delivered

    async def _close(self, connection_id: str, websocket: WebSocket) -> None:
        """Close an evicted socket so the peer sees the drop and reconnects."""
        try:
            await asyncio.wait_for(
                websocket.close(code=status.WS_1011_INTERNAL_ERROR),
                timeout=self.send_timeout,
            )
        except Exception as e:
            logger.debug(
                "hub.close_failed",
                connection_id=connection_id,
                error=str(e) or type(e).__name__,
            )

    async def serve(self, websocket: WebSocket, connection_id: str) -> None:
        """Own one accepted connection until the peer closes it or it errors.

        Learn: Inbound frames are read and dropped; the channel is
        outbound-only. The loop exists to notice the close frame (or a read
        error) so the connection can deregister itself.
        """
        self.registry.add(connection_id, websocket)
        logger.info(
            "hub.client_connected",
            connection_id=connection_id,
            clients=self.registry.count(),
        )
        try:
            while True:
                message = await websocket.receive()
                if message["type"] == "websocket.disconnect":
                    break
        except WebSocketDisconnect:
            pass
        except Exception:
            logger.exception("hub.connection_error", connection_id=connection_id)
        finally:
            self.registry.remove(connection_id, websocket)
            logger.info(
                "hub.client_disconnected",
                connection_id=connection_id,
                clients=self.registry.count(),
            )
