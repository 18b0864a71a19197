"""Starlight topology engine - FastAPI application."""

import logging
from contextlib import AsyncExitStack, asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .cache import redis_cache
from .client import StarlightApiClient
from .config import config, settings
from .editor import TopologyEditor
from .routers import events_router, layout_router, status_router, topology_router
from .store import EntityStore
from .sync import EventStreamListener, SyncHandler
from .websocket import ticker, websocket_endpoint, ws_manager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown events."""
    async with AsyncExitStack() as stack:
        # Startup
        await redis_cache.connect()
        stack.push_async_callback(redis_cache.disconnect)

        client = await stack.enter_async_context(StarlightApiClient())
        editor = TopologyEditor(app.state.store, client, config.layout)
        app.state.editor = editor

        response = await editor.fetch_network()
        if not response.success:
            logger.warning("Starting with an empty topology: %s", response.error)

        async def load_snapshot():
            result = await client.get_topology()
            return result.data if result.success else None

        listener = EventStreamListener(
            app.state.sync,
            redis_cache,
            settings.event_channel,
            snapshot_loader=load_snapshot if config.sync.resync_on_connect else None,
            on_applied=ws_manager.broadcast,
        )
        await listener.start()
        stack.push_async_callback(listener.stop)
        app.state.listener = listener

        yield

        # Shutdown
        ticker.shutdown()
        app.state.editor = None


app = FastAPI(
    title="Starlight",
    description="Network topology editor engine and live status API",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.store = EntityStore(config.canvas)
app.state.sync = SyncHandler(app.state.store)

# CORS configuration
origins = ["*"] if settings.dev_mode else []
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(topology_router, prefix="/api", tags=["topology"])
app.include_router(status_router, prefix="/api", tags=["status"])
app.include_router(layout_router, prefix="/api", tags=["layout"])
app.include_router(events_router, prefix="/api", tags=["events"])


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    store = app.state.store
    return {
        "status": "healthy",
        "service": "starlight",
        "websocket_clients": ws_manager.connection_count,
        "stream_connected": store.ui.ws_connected,
        "revision": store.revision,
        "sync": vars(app.state.sync.stats),
    }


# WebSocket endpoint
app.websocket("/ws/updates")(websocket_endpoint)
