import asyncio
import logging
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from pydantic import ValidationError

from epicircle.domain.errors import StoreError
from epicircle.domain.models import (
    LedgerResult,
    NewPickupRequest,
    PickupItem,
    PickupRequest,
    PickupStatus,
    PickupUpdate,
    epoch_millis,
    items_total,
    utc_timestamp,
)
from epicircle.domain.pickup_code import generate_pickup_code
from epicircle.interfaces.IPickupRepository import IPickupRepository

logger = logging.getLogger(__name__)

# --- STATE MACHINE ---
# pending -> accepted -> in-process -> pending-approval -> completed
# pending-approval -> pending is the customer's reject
TRANSITIONS = {
    PickupStatus.PENDING: {PickupStatus.ACCEPTED},
    PickupStatus.ACCEPTED: {PickupStatus.IN_PROCESS},
    PickupStatus.IN_PROCESS: {PickupStatus.PENDING_APPROVAL},
    PickupStatus.PENDING_APPROVAL: {PickupStatus.COMPLETED, PickupStatus.PENDING},
    PickupStatus.COMPLETED: set(),
}

LOAD_FAILED = "Failed to load data"
CREATE_FAILED = "Failed to create pickup request"
UPDATE_FAILED = "Failed to update pickup request"

# Fields wiped when a request goes back to the pool
_UNASSIGNED = {
    "partner_id": None,
    "partner_name": None,
    "partner_phone": None,
    "pickup_code": None,
    "items": None,
    "total_amount": None,
}


def can_transition(current: PickupStatus, target: PickupStatus) -> bool:
    return target in TRANSITIONS[current]


class PickupLedger:
    """
    All pickup requests of the app, in insertion order.

    Mutations are applied in memory first and then written to the store as one
    blob. A failed write keeps the in-memory change, records `error` and comes
    back as `persisted=False` until a later write or `refresh()` reconciles.
    """

    def __init__(
        self,
        repository: IPickupRepository,
        code_generator: Callable[[], str] = generate_pickup_code,
        clock: Callable[[], str] = utc_timestamp,
    ):
        self.repository = repository
        self._generate_code = code_generator
        self._clock = clock
        self._requests: List[PickupRequest] = []
        self._write_lock = asyncio.Lock()
        self.loading = False
        self.error: Optional[str] = None

    @property
    def requests(self) -> List[PickupRequest]:
        return list(self._requests)

    # --- LOADING ---

    async def load(self) -> None:
        self.loading = True
        try:
            self._requests = await self.repository.load_all()
            self.error = None
        except StoreError as e:
            logger.error(f"❌ Error loading data: {e}")
            self.error = LOAD_FAILED
        finally:
            self.loading = False

    async def refresh(self) -> None:
        await self.load()

    # --- COMMANDS ---

    async def create(self, fields: Union[NewPickupRequest, Mapping[str, Any]]) -> LedgerResult:
        if not isinstance(fields, NewPickupRequest):
            try:
                fields = NewPickupRequest.model_validate(fields)
            except ValidationError as e:
                logger.warning(f"⚠️ Pickup request rejected: {e.error_count()} invalid fields")
                return LedgerResult(ok=False, reason="invalid")

        now = self._clock()
        request = PickupRequest(
            **fields.model_dump(),
            id=self._new_id(),
            status=PickupStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        self._requests = self._requests + [request]
        logger.info(f"📦 Pickup {request.id} scheduled by {request.customer_id}")
        return await self._persist(request, CREATE_FAILED)

    async def update(self, request_id: str, changes: Union[PickupUpdate, Mapping[str, Any]]) -> LedgerResult:
        """Raw patch of the mutable fields. Lifecycle checks live in the transition methods."""
        if not isinstance(changes, PickupUpdate):
            try:
                changes = PickupUpdate.model_validate(changes)
            except ValidationError as e:
                logger.warning(f"⚠️ Patch for {request_id} rejected: {e.error_count()} invalid fields")
                return LedgerResult(ok=False, request=self.get(request_id), reason="invalid")

        values = {name: getattr(changes, name) for name in changes.model_fields_set}
        # model_construct() skips validation
        if "status" in values and values["status"] is None:
            return LedgerResult(ok=False, request=self.get(request_id), reason="invalid")
        return await self._apply(request_id, values)

    async def set_status(self, request_id: str, status: PickupStatus | str) -> LedgerResult:
        try:
            status = PickupStatus(status)
        except ValueError:
            return LedgerResult(ok=False, request=self.get(request_id), reason="invalid")
        if status == PickupStatus.COMPLETED:
            return await self.approve_pickup(request_id)
        if status == PickupStatus.PENDING:
            return await self.reject_pickup(request_id)
        # accepted / in-process / pending-approval carry a payload (partner, code, items)
        return LedgerResult(ok=False, request=self.get(request_id), reason="requires_operation")

    async def accept(
        self, request_id: str, partner_id: str, partner_name: str, partner_phone: str
    ) -> LedgerResult:
        return await self._transition(
            request_id,
            PickupStatus.ACCEPTED,
            partner_id=partner_id,
            partner_name=partner_name,
            partner_phone=partner_phone,
            pickup_code=self._generate_code(),
        )

    async def start_pickup(self, request_id: str, entered_code: str) -> bool:
        request = self.get(request_id)
        if request is None or not request.pickup_code:
            return False
        if entered_code.upper() != request.pickup_code.upper():
            logger.info(f"🔒 Wrong pickup code for {request_id}")
            return False
        result = await self._transition(request_id, PickupStatus.IN_PROCESS)
        return result.ok

    async def add_items(
        self,
        request_id: str,
        items: Sequence[Union[PickupItem, Mapping[str, Any]]],
        total_amount: Optional[float] = None,
    ) -> LedgerResult:
        try:
            items = [i if isinstance(i, PickupItem) else PickupItem.model_validate(i) for i in items]
        except ValidationError as e:
            logger.warning(f"⚠️ Items rejected for {request_id}: {e.error_count()} invalid fields")
            return LedgerResult(ok=False, request=self.get(request_id), reason="invalid")

        computed = items_total(items)
        if total_amount is None:
            total_amount = computed
        elif abs(total_amount - computed) > 0.01:
            # Stored as given, the partner's figure is what the customer approves
            logger.warning(f"⚠️ Pickup {request_id}: total {total_amount} != items sum {computed}")

        return await self._transition(
            request_id,
            PickupStatus.PENDING_APPROVAL,
            items=items,
            total_amount=total_amount,
        )

    async def approve_pickup(self, request_id: str) -> LedgerResult:
        return await self._transition(request_id, PickupStatus.COMPLETED)

    async def reject_pickup(self, request_id: str) -> LedgerResult:
        """Customer refuses the valuation. The request goes back to the pool for any partner."""
        return await self._transition(request_id, PickupStatus.PENDING, **_UNASSIGNED)

    # --- QUERIES ---

    def get(self, request_id: str) -> Optional[PickupRequest]:
        return next((r for r in self._requests if r.id == request_id), None)

    def get_by_customer(self, customer_id: str) -> List[PickupRequest]:
        return [r for r in self._requests if r.customer_id == customer_id]

    def get_by_partner(self, partner_id: str) -> List[PickupRequest]:
        return [r for r in self._requests if r.partner_id == partner_id]

    def get_available(self) -> List[PickupRequest]:
        return [r for r in self._requests if r.status == PickupStatus.PENDING]

    # --- INTERNALS ---

    async def _transition(self, request_id: str, target: PickupStatus, **values) -> LedgerResult:
        request = self.get(request_id)
        if request is None:
            return LedgerResult(ok=False, reason="not_found")
        if not can_transition(request.status, target):
            logger.warning(
                f"⚠️ Pickup {request_id}: {request.status.value} -> {target.value} not allowed"
            )
            return LedgerResult(ok=False, request=request, reason="invalid_transition")
        return await self._apply(request_id, {**values, "status": target})

    async def _apply(self, request_id: str, values: Dict[str, Any]) -> LedgerResult:
        if self.get(request_id) is None:
            logger.warning(f"⚠️ Pickup {request_id} not found, nothing updated")
            return LedgerResult(ok=False, reason="not_found")

        now = self._clock()
        updated = None
        requests = []
        for r in self._requests:
            if r.id == request_id:
                updated = r.model_copy(update={**values, "updated_at": now})
                requests.append(updated)
            else:
                requests.append(r)
        self._requests = requests
        logger.info(f"🔄 Pickup {request_id} is now {updated.status.value}")
        return await self._persist(updated, UPDATE_FAILED)

    async def _persist(self, request: PickupRequest, failure_message: str) -> LedgerResult:
        # Writes go out one at a time and always carry the latest list
        async with self._write_lock:
            try:
                await self.repository.save_all(list(self._requests))
            except StoreError as e:
                logger.error(f"❌ {failure_message}: {e}")
                self.error = failure_message
                return LedgerResult(ok=True, persisted=False, request=request, reason="store_error")
        return LedgerResult(ok=True, persisted=True, request=request)

    def _new_id(self) -> str:
        taken = {r.id for r in self._requests}
        stamp = epoch_millis()
        while str(stamp) in taken:
            stamp += 1
        return str(stamp)
