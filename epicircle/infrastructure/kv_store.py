import logging
from typing import Dict, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from epicircle.core.config import settings
from epicircle.domain.errors import StoreError
from epicircle.interfaces.IKeyValueStore import IKeyValueStore

logger = logging.getLogger(__name__)


class RedisKeyValueStore(IKeyValueStore):
    """Durable store. Every Redis failure surfaces as StoreError so callers can record it."""

    def __init__(self, client, prefix: str = ""):
        self.redis = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            return await self.redis.get(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis read failed for '{key}': {e}") from e

    async def set(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self._key(key), value)
        except RedisError as e:
            raise StoreError(f"Redis write failed for '{key}': {e}") from e

    async def remove(self, key: str) -> None:
        try:
            await self.redis.delete(self._key(key))
        except RedisError as e:
            raise StoreError(f"Redis delete failed for '{key}': {e}") from e

    async def close(self) -> None:
        try:
            await self.redis.aclose()
        except RedisError as e:
            logger.warning(f"⚠️ Redis close failed: {e}")


class MemoryKeyValueStore(IKeyValueStore):
    """RAM fallback. Same contract, gone when the process exits."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._memory_store: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._memory_store.get(key)

    async def set(self, key: str, value: str) -> None:
        self._memory_store[key] = value

    async def remove(self, key: str) -> None:
        self._memory_store.pop(key, None)


async def connect_store(
    url: Optional[str] = None,
    prefix: Optional[str] = None,
    timeout: Optional[float] = None,
) -> IKeyValueStore:
    """Redis when reachable at startup, RAM otherwise."""
    url = url if url is not None else settings.REDIS_URL
    prefix = prefix if prefix is not None else settings.KEY_PREFIX
    timeout = timeout if timeout is not None else settings.REDIS_CONNECT_TIMEOUT

    if not url:
        print("⚠️ Store: REDIS_URL not set. Using RAM store.")
        return MemoryKeyValueStore()

    client = redis.from_url(url, decode_responses=True, socket_connect_timeout=timeout)
    try:
        # Test connection immediately
        await client.ping()
    except (RedisError, OSError) as e:
        print(f"⚠️ Store: Redis unreachable ({e}). Using RAM fallback.")
        await client.aclose()
        return MemoryKeyValueStore()

    print("✅ Store: Connected to Redis.")
    return RedisKeyValueStore(client, prefix=prefix)
