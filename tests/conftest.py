import asyncio
import json

import pytest

from epicircle.application.pickup_ledger import PickupLedger
from epicircle.application.session_manager import SessionManager
from epicircle.domain.errors import StoreError
from epicircle.infrastructure.kv_store import MemoryKeyValueStore
from epicircle.infrastructure.repositories.pickup_repository import KeyValuePickupRepository
from epicircle.infrastructure.repositories.user_repository import KeyValueUserRepository

SCENARIO_A = {
    "customerId": "c1",
    "pickupDate": "2024-01-10",
    "timeSlot": "09:00-10:00",
    "address": "1 Main St",
}


class FlakyStore(MemoryKeyValueStore):
    """RAM store that can be told to fail, and counts writes."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.fail_reads = False
        self.fail_writes = False
        self.fail_removes = False
        self.fail_keys = set()
        self.writes = 0

    async def get(self, key):
        if self.fail_reads:
            raise StoreError("read refused")
        return await super().get(key)

    async def set(self, key, value):
        if self.fail_writes or key in self.fail_keys:
            raise StoreError("write refused")
        self.writes += 1
        await super().set(key, value)

    async def remove(self, key):
        if self.fail_removes:
            raise StoreError("remove refused")
        await super().remove(key)

    def blob(self, key):
        raw = self._memory_store.get(key)
        return json.loads(raw) if raw else None


class SlowStore(MemoryKeyValueStore):
    """Each write sleeps for the next delay in line, so later writes can finish first."""

    def __init__(self, delays):
        super().__init__()
        self.delays = list(delays)

    async def set(self, key, value):
        delay = self.delays.pop(0) if self.delays else 0
        await asyncio.sleep(delay)
        await super().set(key, value)


@pytest.fixture
def store():
    return FlakyStore()


@pytest.fixture
def ledger(store):
    return PickupLedger(KeyValuePickupRepository(store))


@pytest.fixture
def session_manager(store):
    return SessionManager(KeyValueUserRepository(store), demo_otp="123456", clock=lambda: 1700000000000)


@pytest.fixture
async def pending_request(ledger):
    result = await ledger.create(SCENARIO_A)
    return result.request


@pytest.fixture
async def accepted_request(ledger, pending_request):
    result = await ledger.accept(pending_request.id, "p1", "Partner P", "555-0100")
    return result.request
