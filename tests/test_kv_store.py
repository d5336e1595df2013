import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from epicircle.domain.errors import StoreError
from epicircle.infrastructure.kv_store import MemoryKeyValueStore, RedisKeyValueStore, connect_store


class FakeRedisClient:
    """Just the async calls the store makes, backed by a dict."""

    def __init__(self):
        self.data = {}
        self.closed = False

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value):
        self.data[key] = value

    async def delete(self, key):
        self.data.pop(key, None)

    async def aclose(self):
        self.closed = True


class DownRedisClient:
    async def get(self, key):
        raise RedisConnectionError("connection refused")

    async def set(self, key, value):
        raise RedisConnectionError("connection refused")

    async def delete(self, key):
        raise RedisConnectionError("connection refused")


async def test_memory_store_round_trip():
    store = MemoryKeyValueStore()

    assert await store.get("authToken") is None
    await store.set("authToken", "token_1")
    assert await store.get("authToken") == "token_1"
    await store.remove("authToken")
    await store.remove("authToken")
    assert await store.get("authToken") is None


async def test_redis_store_applies_prefix():
    client = FakeRedisClient()
    store = RedisKeyValueStore(client, prefix="epicircle:")

    await store.set("pickupRequests", "[]")

    assert client.data == {"epicircle:pickupRequests": "[]"}
    assert await store.get("pickupRequests") == "[]"
    await store.remove("pickupRequests")
    assert client.data == {}

    await store.close()
    assert client.closed


@pytest.mark.parametrize("call", [
    lambda s: s.get("authToken"),
    lambda s: s.set("authToken", "x"),
    lambda s: s.remove("authToken"),
])
async def test_redis_failures_surface_as_store_errors(call):
    store = RedisKeyValueStore(DownRedisClient())

    with pytest.raises(StoreError):
        await call(store)


async def test_connect_without_url_uses_ram():
    store = await connect_store(url="")

    assert isinstance(store, MemoryKeyValueStore)


async def test_connect_falls_back_to_ram_when_redis_is_unreachable():
    # Nothing listens on port 1
    store = await connect_store(url="redis://127.0.0.1:1/0", timeout=0.2)

    assert isinstance(store, MemoryKeyValueStore)
