"""Connection registry — the live WebSocket connections, keyed by id.

Learn: Several flows touch the registry at once: each connection's own
receive loop (add on accept, remove on close), and whatever triggers a
broadcast. Every operation takes the lock for just that one call, so no
flow ever sees a half-updated entry. Nothing holds the lock across an
await, and nothing locks across calls. A snapshot can be stale by the
time its caller acts on it, and callers must tolerate that.
"""

import threading
from typing import Any, Optional


class ConnectionRegistry:
    """Thread-safe map of connection id → channel."""

    def __init__(self):
        self._lock = threading.Lock()
        self._connections: dict[str, Any] = {}

    def add(self, connection_id: str, channel: Any) -> None:
        """Register a channel. An existing entry with the same id is replaced."""
        with self._lock:
            self._connections[connection_id] = channel

    def remove(self, connection_id: str, channel: Optional[Any] = None) -> bool:
        """Remove an entry. No-op if absent.

        When channel is given, the entry is only removed if it still maps
        to that channel (a replaced id keeps its newer channel).
        """
        with self._lock:
            current = self._connections.get(connection_id)
            if current is None:
                return False
            if channel is not None and current is not channel:
                return False
            del self._connections[connection_id]
            return True

    def snapshot(self) -> list[tuple[str, Any]]:
        """Point-in-time copy of (id, channel) pairs."""
        with self._lock:
            return list(self._connections.items())

    def count(self) -> int:
        """Current size. Advisory, for diagnostics only."""
        with self._lock:
            return len(self._connections)

    def __contains__(self, connection_id: str) -> bool:
        with self._lock:
            return connection_id in self._connections
