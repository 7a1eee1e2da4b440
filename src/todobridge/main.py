"""FastAPI application factory.

Learn: create_app() builds every shared component once and hangs it off
app.state: engine, session factory, connection registry, hub, bridge.
Nothing is a module global, so each test can build its own isolated app.

Lifespan manages startup/shutdown: create tables, seed sample data,
start the command bridge; on the way out stop the bridge and dispose
the engine.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from todobridge import __version__
from todobridge.api import api_router
from todobridge.bridge.service import CommandBridge
from todobridge.config import Settings, settings as default_settings
from todobridge.db.engine import build_engine, build_session_factory
from todobridge.db.models import Base
from todobridge.middleware.request_id import RequestIdMiddleware
from todobridge.realtime.hub import NotificationHub
from todobridge.realtime.registry import ConnectionRegistry
from todobridge.realtime.websocket import router as ws_router
from todobridge.services.todo_service import seed_sample_items

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown. The bridge connects in the background, so a missing broker
    never blocks startup. The app works without real-time automation.
    """
    state = app.state
    logger.info(
        "todobridge.starting",
        version=__version__,
        environment=state.settings.environment,
        port=state.settings.port,
    )

    async with state.engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    if state.settings.seed_sample_data:
        async with state.session_factory() as db:
            added = await seed_sample_items(db)
        if added:
            logger.info("todobridge.sample_data_seeded", items=added)

    await state.bridge.start()

    yield

    logger.info("todobridge.shutdown")
    await state.bridge.stop()
    await state.engine.dispose()


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings

    app = FastAPI(
        title="TodoBridge",
        description="Todo API with WebSocket change notifications and a pub/sub command bridge",
        version=__version__,
        lifespan=lifespan,
    )

    engine = build_engine(settings.database_url, echo=settings.debug)
    session_factory = build_session_factory(engine)
    registry = ConnectionRegistry()
    hub = NotificationHub(registry, send_timeout=settings.ws_send_timeout_seconds)
    bridge = CommandBridge(settings, session_factory, hub)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = session_factory
    app.state.registry = registry
    app.state.hub = hub
    app.state.bridge = bridge
    app.state.notifier = bridge.notifier

    # ── Middleware stack ──────────────────────────────────────
    app.add_middleware(RequestIdMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(api_router)
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: todobridge.main:app)
app = create_app()
