import json
from typing import List

from pydantic import TypeAdapter, ValidationError

from epicircle.domain.errors import StoreError
from epicircle.domain.models import PickupRequest
from epicircle.interfaces.IKeyValueStore import IKeyValueStore
from epicircle.interfaces.IPickupRepository import IPickupRepository

PICKUP_REQUESTS_KEY = "pickupRequests"

_requests_adapter = TypeAdapter(List[PickupRequest])


class KeyValuePickupRepository(IPickupRepository):
    """The whole ledger lives in one JSON list, re-written on every save."""

    def __init__(self, store: IKeyValueStore):
        self.store = store

    async def load_all(self) -> List[PickupRequest]:
        raw = await self.store.get(PICKUP_REQUESTS_KEY)
        if not raw:
            return []
        try:
            return _requests_adapter.validate_json(raw)
        except ValidationError as e:
            raise StoreError(f"Corrupt '{PICKUP_REQUESTS_KEY}' blob: {e.error_count()} errors") from e

    async def save_all(self, requests: List[PickupRequest]) -> None:
        await self.store.set(PICKUP_REQUESTS_KEY, json.dumps([r.to_json() for r in requests]))
