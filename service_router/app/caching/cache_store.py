"""
Redis-backed page cache for the edge router.
"""

from typing import Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from shared.errors import UpstreamUnavailable
from shared.logging import get_logger

from ..domain.endpoints import Listener


class CacheStore:
    """String key/value store on a Redis listener.

    The listener endpoint is resolved on every operation and a fresh
    connection is opened against it, so a relocated Redis is picked up on
    the next call. Entries carry no TTL.
    """

    def __init__(self, listener: Listener, password: str):
        self.listener = listener
        self._password = password
        self.logger = get_logger("router.cache")

    def _client(self) -> redis.Redis:
        endpoint = self.listener.endpoint()
        self.logger.debug("Cache endpoint", hostname=endpoint.hostname, port=endpoint.port)
        return redis.Redis(
            host=endpoint.hostname,
            port=endpoint.port,
            password=self._password,
            decode_responses=True,
        )

    async def get(self, key: str) -> Optional[str]:
        """Return the value stored under ``key``, or None."""
        client = self._client()
        try:
            return await client.get(key)
        except RedisError as exc:
            self.logger.error("Cache get error", key=key, error=str(exc))
            raise UpstreamUnavailable(self.listener.name, str(exc), details={"operation": "get", "key": key}) from exc
        finally:
            await client.aclose()

    async def set(self, key: str, value: str) -> None:
        """Store ``value`` under ``key``; returns once Redis acknowledged it."""
        client = self._client()
        try:
            await client.set(key, value)
        except RedisError as exc:
            self.logger.error("Cache set error", key=key, error=str(exc))
            raise UpstreamUnavailable(self.listener.name, str(exc), details={"operation": "set", "key": key}) from exc
        finally:
            await client.aclose()

    async def ping(self) -> bool:
        client = self._client()
        try:
            return bool(await client.ping())
        finally:
            await client.aclose()
