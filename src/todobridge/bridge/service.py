"""Command bridge — todo CRUD over Redis pub/sub.

Learn: Automation clients don't speak HTTP; they PUBLISH a command and
listen for the answer:

    PUBLISH blazor-net-app/command/create '{"title": "A", "correlationId": "c1"}'
    → response on blazor-net-app/response/c1
      {"success": true, "data": {...}, "timestamp": "..."}

Lifecycle (one background task, started from the app lifespan):

    stopped → connecting → connected → subscribed
                  ↑                        │ connection lost
                  └──── disconnected ←─────┘
    stopped again only via stop()

If the bridge is disabled in config it stays "stopped" and never touches
the network. publish() while not connected is a logged no-op; callers
(command responses, REST event emission) must tolerate silent drops.

Every inbound command gets exactly one response, success or not. The one
exception is an unexpected crash mid-handling: that is logged and
swallowed so the subscription survives, and the caller simply times out.
"""

import asyncio
import uuid
from enum import Enum
from functools import partial
from typing import Any, Awaitable, Callable, Optional

import redis.asyncio as aioredis
import structlog
from pydantic_core import to_json
from redis.exceptions import RedisError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from todobridge.bridge.commands import (
    ITEM_DELETED,
    ITEM_NOT_FOUND,
    UNKNOWN_COMMAND,
    CommandError,
    CommandName,
    CommandResponse,
    CreateRequest,
    DeleteRequest,
    GetRequest,
    UpdateRequest,
    extract_correlation_id,
    parse_command,
)
from todobridge.bridge.topics import (
    command_name,
    derive_prefix,
    response_topic,
    subscription_pattern,
)
from todobridge.config import DEFAULT_TOPIC_PREFIX, Settings
from todobridge.events.change import ChangeEvent
from todobridge.events.notifier import ChangeNotifier
from todobridge.realtime.hub import NotificationHub
from todobridge.schemas.todo import to_payload
from todobridge.services.todo_service import TodoService

logger = structlog.get_logger()


class BridgeState(str, Enum):
    STOPPED = "stopped"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    SUBSCRIBED = "subscribed"
    DISCONNECTED = "disconnected"


_LIVE_STATES = (BridgeState.CONNECTED, BridgeState.SUBSCRIBED)


async def _close_quietly(resource: Any) -> None:
    try:
        await resource.aclose()
    except Exception as e:
        logger.debug("bridge.close_failed", error=str(e))


class CommandBridge:
    """Subscribes to <prefix>/#, executes commands, publishes responses."""

    def __init__(
        self,
        settings: Settings,
        session_factory: async_sessionmaker[AsyncSession],
        hub: NotificationHub,
        client_factory: Optional[Callable[[], aioredis.Redis]] = None,
    ):
        self.settings = settings
        self.prefix = derive_prefix(settings.bridge_topic)
        self.client_id = settings.bridge_client_id or f"{DEFAULT_TOPIC_PREFIX}-{uuid.uuid4()}"
        self.notifier = ChangeNotifier(self, hub)

        self._session_factory = session_factory
        self._client_factory = client_factory or self._redis_client
        self._client: Optional[aioredis.Redis] = None
        self._state = BridgeState.STOPPED
        self._task: Optional[asyncio.Task] = None
        self._stopping = False

        self._handlers: dict[CommandName, Callable[..., Awaitable[CommandResponse]]] = {
            CommandName.GET_ALL: self._get_all,
            CommandName.GET: self._get,
            CommandName.CREATE: self._create,
            CommandName.UPDATE: partial(self._update, partial=False),
            CommandName.UPDATE_PARTIAL: partial(self._update, partial=True),
            CommandName.DELETE: self._delete,
        }

    # ─── State ───────────────────────────────────────────

    @property
    def state(self) -> BridgeState:
        return self._state

    @property
    def is_connected(self) -> bool:
        return self._client is not None and self._state in _LIVE_STATES

    def _redis_client(self) -> aioredis.Redis:
        return aioredis.Redis(
            host=self.settings.bridge_broker,
            port=self.settings.bridge_port,
            client_name=self.client_id,
            encoding="utf-8",
            # Raw bytes; handle_message decodes leniently
            decode_responses=False,
        )

    # ─── Lifecycle ───────────────────────────────────────

    async def start(self) -> None:
        """Start the background connection loop (no-op when disabled)."""
        if not self.settings.bridge_enabled:
            logger.info("bridge.disabled")
            return
        if self._task is not None:
            return

        self._stopping = False
        logger.info(
            "bridge.starting",
            broker=self.settings.bridge_broker,
            port=self.settings.bridge_port,
            client_id=self.client_id,
            prefix=self.prefix,
        )
        self._task = asyncio.create_task(self._run(), name="command-bridge")

    async def stop(self) -> None:
        """Disconnect if connected and stop reconnecting."""
        if self._task is None:
            return

        self._stopping = True
        if self.is_connected:
            logger.info("bridge.stopping")
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self._state = BridgeState.STOPPED

    async def _run(self) -> None:
        """Connect, subscribe, consume, and reconnect whenever that breaks."""
        while not self._stopping:
            self._state = BridgeState.CONNECTING
            client = self._client_factory()
            pubsub = None
            try:
                await client.ping()
                self._client = client
                self._state = BridgeState.CONNECTED
                logger.info("bridge.connected", client_id=self.client_id)

                pattern = subscription_pattern(self.prefix)
                pubsub = client.pubsub()
                await pubsub.psubscribe(pattern)
                self._state = BridgeState.SUBSCRIBED
                logger.info("bridge.subscribed", pattern=pattern)

                async for message in pubsub.listen():
                    if message["type"] == "pmessage":
                        await self.handle_message(message["channel"], message["data"])
            except (RedisError, OSError) as e:
                logger.warning("bridge.connection_error", error=str(e))
            except Exception:
                logger.exception("bridge.error")
            finally:
                self._client = None
                self._state = BridgeState.DISCONNECTED
                if pubsub is not None:
                    await _close_quietly(pubsub)
                await _close_quietly(client)

            if not self._stopping:
                logger.warning(
                    "bridge.disconnected",
                    retry_in=self.settings.bridge_reconnect_seconds,
                )
                await asyncio.sleep(self.settings.bridge_reconnect_seconds)

    # ─── Publish ─────────────────────────────────────────

    async def publish(self, topic: str, payload: Any) -> bool:
        """Publish a JSON payload. Returns False if it was dropped.

        Learn: Redis PUBLISH has no QoS or retain flag. Delivery is
        at-most-once to whoever is subscribed right now, weaker than the
        at-least-once an MQTT broker would give. A subscriber that is
        offline misses the message for good. Never raises, never queues.
        """
        client = self._client
        if client is None or not self.is_connected:
            log = logger.warning if self.settings.bridge_enabled else logger.debug
            log("bridge.publish_skipped", topic=topic, state=self._state.value)
            return False

        if isinstance(payload, CommandResponse):
            body = payload.to_wire()
        else:
            body = to_json(payload).decode()

        try:
            await client.publish(topic, body)
        except (RedisError, OSError) as e:
            logger.error("bridge.publish_failed", topic=topic, error=str(e))
            return False

        logger.info("bridge.published", topic=topic)
        return True

    # ─── Inbound ─────────────────────────────────────────

    async def handle_message(self, topic: Any, payload: Any) -> Optional[CommandResponse]:
        """Handle one message from the subscription.

        Non-command topics (our own responses and events echo back through
        the wildcard subscription) are ignored. Returns the response that
        was published, or None.
        """
        try:
            if isinstance(topic, bytes):
                topic = topic.decode("utf-8", errors="replace")
            if isinstance(payload, bytes):
                payload = payload.decode("utf-8", errors="replace")

            name = command_name(self.prefix, topic)
            if name is None:
                return None
            logger.info("bridge.command_received", command=name, topic=topic)

            correlation_id = extract_correlation_id(payload)
            response = await self.dispatch(name, payload)
            await self.publish(response_topic(self.prefix, correlation_id), response)
            return response
        except Exception:
            logger.exception("bridge.command_failed", topic=topic)
            return None

    async def dispatch(self, name: str, payload: str) -> CommandResponse:
        """Run one command against the store and build its response."""
        try:
            command = CommandName(name)
        except ValueError:
            logger.warning("bridge.unknown_command", command=name)
            return CommandResponse.failure(UNKNOWN_COMMAND)

        try:
            request = parse_command(command, payload)
        except CommandError as e:
            logger.warning("bridge.invalid_command", command=name, error=e.message)
            return CommandResponse.failure(e.message)

        async with self._session_factory() as db:
            return await self._handlers[command](TodoService(db), request)

    # ─── Handlers ────────────────────────────────────────

    async def _get_all(self, svc: TodoService, request) -> CommandResponse:
        items = await svc.list_items()
        return CommandResponse.ok([to_payload(item) for item in items])

    async def _get(self, svc: TodoService, request: GetRequest) -> CommandResponse:
        item = await svc.get_item(request.id)
        if not item:
            return CommandResponse.failure(ITEM_NOT_FOUND)
        return CommandResponse.ok(to_payload(item))

    async def _create(self, svc: TodoService, request: CreateRequest) -> CommandResponse:
        item = await svc.create_item(
            title=request.title,
            description=request.description,
            is_completed=bool(request.is_completed),
        )
        logger.info("bridge.item_created", item_id=item.id)
        await self.notifier.emit(ChangeEvent.created(item))
        return CommandResponse.ok(to_payload(item))

    async def _update(
        self, svc: TodoService, request: UpdateRequest, partial: bool
    ) -> CommandResponse:
        # A blank title means "leave the title alone"
        title = request.title if request.title and request.title.strip() else None
        item = await svc.update_item(
            request.id,
            title=title,
            description=request.description,
            is_completed=request.is_completed,
        )
        if not item:
            return CommandResponse.failure(ITEM_NOT_FOUND)
        logger.info("bridge.item_updated", item_id=item.id, partial=partial)
        await self.notifier.emit(ChangeEvent.updated(item, partial=partial))
        return CommandResponse.ok(to_payload(item))

    async def _delete(self, svc: TodoService, request: DeleteRequest) -> CommandResponse:
        item = await svc.delete_item(request.id)
        if not item:
            return CommandResponse.failure(ITEM_NOT_FOUND)
        logger.info("bridge.item_deleted", item_id=request.id)
        await self.notifier.emit(ChangeEvent.deleted(request.id))
        return CommandResponse.ok(message=ITEM_DELETED)
