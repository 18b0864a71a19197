"""
Event Stream Listener

Transport adapter that reads topology events from a Redis pub/sub channel
and hands them to the SyncHandler in delivery order. On every (re)subscribe
it can pull a full snapshot and absorb it, so events missed while
disconnected are recovered.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Optional

from starlight.cache import CACHE_TOPOLOGY, RedisCache
from starlight.models import NetworkTopology
from starlight.sync.handler import SyncHandler

logger = logging.getLogger(__name__)

RECONNECT_DELAY_SECONDS = 5.0

SnapshotLoader = Callable[[], Awaitable[Optional[NetworkTopology]]]
EventCallback = Callable[[dict[str, Any]], Awaitable[None]]


class EventStreamListener:
    """Runs a background task consuming one channel."""

    def __init__(
        self,
        handler: SyncHandler,
        cache: RedisCache,
        channel: str,
        snapshot_loader: SnapshotLoader | None = None,
        on_applied: EventCallback | None = None,
    ):
        self.handler = handler
        self.cache = cache
        self.channel = channel
        self.snapshot_loader = snapshot_loader
        self.on_applied = on_applied
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        """Start consuming in the background."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="starlight-event-listener")
        logger.info("Event listener started on %s", self.channel)

    async def stop(self) -> None:
        """Cancel the consumer and wait for it to finish."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        self.handler.store.set_ws_connected(False)
        logger.info("Event listener stopped")

    async def _run(self) -> None:
        while True:
            try:
                async with self.cache.subscribe(self.channel) as messages:
                    self.handler.store.set_ws_connected(True)
                    await self.resync()
                    async for body in messages:
                        await self.handle_message(body)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.handler.store.set_ws_connected(False)
                logger.error("Event stream failed, reconnecting in %.0fs: %s", RECONNECT_DELAY_SECONDS, e)
                await asyncio.sleep(RECONNECT_DELAY_SECONDS)

    async def resync(self) -> int:
        """
        Absorb a fresh snapshot, if a loader is configured.

        Falls back to the last snapshot cached in Redis when the loader has
        nothing to offer.
        """
        if self.snapshot_loader is None:
            return 0
        topology = await self.snapshot_loader()
        if topology is None:
            cached = await self.cache.get_json(CACHE_TOPOLOGY)
            if not cached:
                logger.warning("Snapshot unavailable; continuing with local state")
                return 0
            logger.info("Backend snapshot unavailable; using cached copy")
            return self.handler.absorb_snapshot(NetworkTopology.model_validate(cached))

        added = self.handler.absorb_snapshot(topology)
        await self.cache.set_json(CACHE_TOPOLOGY, self.handler.store.snapshot().to_wire())
        return added

    async def handle_message(self, body: str | bytes | dict[str, Any]) -> bool:
        """Apply one message and notify ``on_applied`` if the store changed."""
        event = self.handler.parse(body)
        if event is None:
            return False
        changed = self.handler.apply(event)
        if changed and self.on_applied is not None:
            await self.on_applied(event.to_wire())
        return changed
