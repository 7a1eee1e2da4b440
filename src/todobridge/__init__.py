"""TodoBridge — todo items with real-time side channels.

Every mutation of the todo store is mirrored to WebSocket clients
(UI notifications) and to a pub/sub command bridge that automation
clients use to issue commands and receive correlated responses.
"""

__version__ = "0.1.0"
