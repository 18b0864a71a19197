"""Redis client for Starlight: snapshot cache and event pub/sub."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as redis

from .config import settings

CACHE_TOPOLOGY = "starlight:topology"


class RedisCache:
    """Async Redis client wrapper."""

    def __init__(self, url: str | None = None):
        self._url = url or settings.redis_url
        self._client: redis.Redis | None = None

    async def connect(self) -> None:
        """Connect to Redis."""
        self._client = redis.from_url(
            self._url,
            encoding="utf-8",
            decode_responses=True,
        )

    async def disconnect(self) -> None:
        """Disconnect from Redis."""
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> redis.Redis:
        if not self._client:
            raise RuntimeError("Redis client not connected")
        return self._client

    async def get_json(self, key: str) -> dict[str, Any] | None:
        """Get and parse JSON from cache."""
        value = await self.client.get(key)
        if value:
            return json.loads(value)
        return None

    async def set_json(self, key: str, value: dict[str, Any], ttl: int | None = None) -> None:
        """Store a JSON document."""
        payload = json.dumps(value)
        if ttl:
            await self.client.setex(key, ttl, payload)
        else:
            await self.client.set(key, payload)

    @asynccontextmanager
    async def subscribe(self, channel: str) -> AsyncIterator[AsyncIterator[str]]:
        """
        Subscribe to a channel for the duration of the block.

        Yields an async iterator over message bodies in delivery order.
        """
        pubsub = self.client.pubsub()
        await pubsub.subscribe(channel)
        try:
            yield _message_bodies(pubsub)
        finally:
            await pubsub.unsubscribe(channel)
            await pubsub.aclose()


async def _message_bodies(pubsub) -> AsyncIterator[str]:
    async for message in pubsub.listen():
        if message.get("type") == "message":
            yield message["data"]


# Singleton instance
redis_cache = RedisCache()
