"""ChangeNotifier — mirrors one mutation to both real-time side channels.

Learn: Called after every successful store mutation, by the REST handlers
and by the command bridge alike:
1. Bridge PUBLISH on <prefix>/todo/<action> (dropped while disconnected)
2. Hub broadcast to every open WebSocket (failed recipients evicted)

Neither step raises for delivery problems, so emitting never fails the
mutation that triggered it.
"""

from typing import Protocol

from todobridge.bridge.topics import event_topic
from todobridge.events.change import ChangeEvent
from todobridge.realtime.hub import NotificationHub


class EventPublisher(Protocol):
    prefix: str

    async def publish(self, topic: str, payload) -> bool: ...


class ChangeNotifier:
    def __init__(self, publisher: EventPublisher, hub: NotificationHub):
        self.publisher = publisher
        self.hub = hub

    async def emit(self, event: ChangeEvent) -> None:
        await self.publisher.publish(
            event_topic(self.publisher.prefix, event.action),
            event.projection(),
        )
        await self.hub.broadcast(event)
