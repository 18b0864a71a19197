"""WebSocket manager for live topology updates."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import WebSocket, WebSocketDisconnect

from .config import config
from .models.events import EventType, PingEvent
from .services import SharedTicker

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Manages WebSocket connections, broadcasts and per-client heartbeats."""

    def __init__(self, ticker: SharedTicker | None = None):
        self.active_connections: list[WebSocket] = []
        self.ticker = ticker
        self._heartbeats: dict[int, int] = {}
        self._lock = asyncio.Lock()

    async def connect(self, websocket: WebSocket) -> None:
        """Accept a new WebSocket connection and start its heartbeat."""
        await websocket.accept()
        async with self._lock:
            self.active_connections.append(websocket)

        if self.ticker is not None:

            async def heartbeat(_elapsed: float) -> None:
                await self.send_personal(heartbeat_message(), websocket)

            self._heartbeats[id(websocket)] = self.ticker.subscribe(heartbeat)

    async def disconnect(self, websocket: WebSocket) -> None:
        """Remove a WebSocket connection and its heartbeat."""
        async with self._lock:
            if websocket in self.active_connections:
                self.active_connections.remove(websocket)

        token = self._heartbeats.pop(id(websocket), None)
        if token is not None and self.ticker is not None:
            self.ticker.unsubscribe(token)

    async def send_personal(self, message: dict[str, Any], websocket: WebSocket) -> None:
        """Send a message to a specific client."""
        try:
            await websocket.send_json(message)
        except Exception:
            await self.disconnect(websocket)

    async def broadcast(self, message: dict[str, Any]) -> None:
        """Broadcast a message to all connected clients."""
        if not self.active_connections:
            return

        disconnected = []
        async with self._lock:
            for connection in self.active_connections:
                try:
                    await connection.send_json(message)
                except Exception:
                    disconnected.append(connection)

        # Clean up disconnected clients
        for conn in disconnected:
            await self.disconnect(conn)

    @property
    def connection_count(self) -> int:
        """Return the number of active connections."""
        return len(self.active_connections)


def heartbeat_message() -> dict[str, Any]:
    return PingEvent(type=EventType.PING.value, timestamp=datetime.now(timezone.utc)).to_wire()


# Singleton instances
ticker = SharedTicker(config.sync.heartbeat_seconds)
ws_manager = ConnectionManager(ticker)


async def websocket_endpoint(websocket: WebSocket) -> None:
    """
    WebSocket endpoint handler.

    Clients receive a ``connected`` greeting carrying the current topology,
    then every event the engine applies. Envelopes sent by a client are fed
    through the same sync handler and rebroadcast if they changed anything.
    """
    store = websocket.app.state.store
    sync = websocket.app.state.sync

    await ws_manager.connect(websocket)

    greeting: dict[str, Any] = {"type": "connected", "message": "Connected to Starlight"}
    if config.sync.resync_on_connect:
        greeting["topology"] = store.snapshot().to_wire()
    await ws_manager.send_personal(greeting, websocket)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON WebSocket message")
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await ws_manager.send_personal({"type": "pong"}, websocket)
                continue

            event = sync.parse(message)
            if event is not None and sync.apply(event):
                await ws_manager.broadcast(event.to_wire())
    except WebSocketDisconnect:
        pass
    finally:
        await ws_manager.disconnect(websocket)
