"""
Shared Ticker

One interval job fans out to every subscriber, instead of each consumer
running its own timer. The job exists only while somebody is subscribed:
the first subscription starts the scheduler and the last unsubscribe shuts
it down.

The scheduler factory and clock are injectable, so tests can drive
``tick()`` by hand without a running event loop or real time passing.
"""

from __future__ import annotations

import inspect
import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

logger = logging.getLogger(__name__)

JOB_ID = "shared_tick"

TickCallback = Callable[[float], Any]


@dataclass
class _Subscriber:
    callback: TickCallback
    min_interval: float
    last_fired: float | None = None


class SharedTicker:
    """Reference-counted periodic tick source."""

    def __init__(
        self,
        interval_seconds: float,
        scheduler_factory: Callable[[], Any] = AsyncIOScheduler,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interval_seconds = interval_seconds
        self._scheduler_factory = scheduler_factory
        self._clock = clock
        self._scheduler = None
        self._subscribers: dict[int, _Subscriber] = {}
        self._tokens = itertools.count(1)
        self._started_at: float | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def elapsed(self) -> float:
        """Seconds since the current run started, 0 when stopped."""
        if self._started_at is None:
            return 0.0
        return self._clock() - self._started_at

    def subscribe(self, callback: TickCallback, min_interval: float = 0.0) -> int:
        """
        Register a callback and return a token for ``unsubscribe``.

        The callback receives the elapsed time in seconds and may be a plain
        function or a coroutine function. ``min_interval`` throttles it below
        the ticker's own rate.
        """
        token = next(self._tokens)
        self._subscribers[token] = _Subscriber(callback, min_interval)
        if not self.running:
            self._start()
        return token

    def unsubscribe(self, token: int) -> None:
        if self._subscribers.pop(token, None) is None:
            return
        if not self._subscribers:
            self._stop()

    def shutdown(self) -> None:
        """Drop every subscriber and stop."""
        self._subscribers.clear()
        self._stop()

    def _start(self) -> None:
        self._scheduler = self._scheduler_factory()
        self._scheduler.add_job(
            self.tick,
            IntervalTrigger(seconds=self.interval_seconds),
            id=JOB_ID,
            name="Shared ticker",
            replace_existing=True,
        )
        self._scheduler.start()
        self._started_at = self._clock()
        logger.info("Shared ticker started: interval=%ss", self.interval_seconds)

    def _stop(self) -> None:
        if self._scheduler is None:
            return
        self._scheduler.shutdown(wait=False)
        self._scheduler = None
        self._started_at = None
        logger.info("Shared ticker stopped")

    async def tick(self) -> int:
        """Notify due subscribers. Returns how many were called."""
        now = self.elapsed
        fired = 0
        for token, sub in list(self._subscribers.items()):
            if token not in self._subscribers:
                # Unsubscribed by an earlier callback in this tick
                continue
            if sub.last_fired is not None and now - sub.last_fired < sub.min_interval:
                continue
            sub.last_fired = now
            fired += 1
            try:
                result = sub.callback(now)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error("Ticker subscriber %d failed: %s", token, e)
        return fired
