import time
from datetime import datetime
from enum import Enum
from typing import List, Optional
from uuid import uuid4

import pytz
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class UserType(str, Enum):
    CUSTOMER = "customer"
    PARTNER = "partner"


class PickupStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    IN_PROCESS = "in-process"
    PENDING_APPROVAL = "pending-approval"
    COMPLETED = "completed"


def epoch_millis() -> int:
    return int(time.time() * 1000)


def utc_timestamp() -> str:
    """ISO-8601 UTC with milliseconds, e.g. 2024-01-10T09:00:00.000Z"""
    now = datetime.now(pytz.utc)
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


class CamelModel(BaseModel):
    # Stored blobs and API payloads use camelCase keys (phoneNumber, pickupCode...)
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# ---------------------------------------------------------
# USERS & SESSION
# ---------------------------------------------------------
class User(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    phone_number: str
    name: str
    type: UserType


class Session(CamelModel):
    is_authenticated: bool = False
    user: Optional[User] = None
    token: Optional[str] = None


# ---------------------------------------------------------
# PICKUPS
# ---------------------------------------------------------
class PickupItem(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid4().hex[:12])
    name: str = Field(min_length=1)
    category: Optional[str] = None
    quantity: float = Field(ge=0)  # kg
    price: float = Field(ge=0)  # per kg


class PickupRequest(CamelModel):
    model_config = ConfigDict(frozen=True)

    id: str
    customer_id: str
    customer_name: str = ""
    customer_phone: str = ""
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    partner_phone: Optional[str] = None
    pickup_date: str
    time_slot: str
    address: str
    map_link: Optional[str] = None
    status: PickupStatus = PickupStatus.PENDING
    pickup_code: Optional[str] = None
    items: Optional[List[PickupItem]] = None
    total_amount: Optional[float] = None
    created_at: str
    updated_at: str


class NewPickupRequest(CamelModel):
    """What a customer supplies when scheduling. Everything else is assigned by the ledger."""

    customer_id: str = Field(min_length=1)
    customer_name: str = ""
    customer_phone: str = ""
    pickup_date: str = Field(min_length=1)
    time_slot: str = Field(min_length=1)
    address: str = Field(min_length=1)
    map_link: Optional[str] = None

    model_config = ConfigDict(str_strip_whitespace=True)


class PickupUpdate(CamelModel):
    """Partial patch over the mutable fields of a request. Only explicitly set fields are applied."""

    model_config = ConfigDict(extra="forbid")

    status: Optional[PickupStatus] = None
    partner_id: Optional[str] = None
    partner_name: Optional[str] = None
    partner_phone: Optional[str] = None
    pickup_code: Optional[str] = None
    items: Optional[List[PickupItem]] = None
    total_amount: Optional[float] = None

    @field_validator("status")
    @classmethod
    def status_not_null(cls, value):
        # Omit status to leave it alone, a request always has one
        if value is None:
            raise ValueError("status cannot be cleared")
        return value


class LedgerResult(CamelModel):
    # ok: change applied in memory. persisted: the write to the store went through.
    ok: bool
    persisted: bool = False
    request: Optional[PickupRequest] = None
    reason: Optional[str] = None


def items_total(items: List[PickupItem]) -> float:
    return round(sum(item.quantity * item.price for item in items), 2)
