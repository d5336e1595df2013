import logging
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import Field

from epicircle.application.container import AppContainer
from epicircle.application.projections import status_summary
from epicircle.domain.models import CamelModel, LedgerResult, NewPickupRequest, PickupItem, PickupStatus, User, UserType
from epicircle.domain.schedule import TIME_SLOTS, earliest_pickup_date, local_today, validate_pickup
from epicircle.interfaces.auth_routes import get_container

router = APIRouter()
logger = logging.getLogger(__name__)

# LedgerResult.reason -> HTTP status
_FAILURE_STATUS = {
    "not_found": 404,
    "invalid": 422,
    "invalid_transition": 409,
    "requires_operation": 409,
}


class SchedulePayload(CamelModel):
    pickup_date: date
    time_slot: str
    address: str = Field(min_length=1)
    map_link: Optional[str] = None


class PickupCodePayload(CamelModel):
    code: str = Field(min_length=1)


class ItemsPayload(CamelModel):
    items: List[PickupItem] = Field(min_length=1)
    total_amount: Optional[float] = None


# ---------------------------------------------------------
# HELPERS
# ---------------------------------------------------------
def current_user(container: AppContainer = Depends(get_container)) -> User:
    session = container.session_manager.session
    if not session.is_authenticated or session.user is None:
        raise HTTPException(status_code=401, detail="Not logged in")
    return session.user


def require_role(user: User, role: UserType) -> None:
    if user.type != role:
        raise HTTPException(status_code=403, detail=f"Only a {role.value} can do this")


def ledger_response(result: LedgerResult) -> dict:
    if result.ok:
        if not result.persisted:
            logger.warning(f"⚠️ Pickup change kept in memory only: {result.request.id}")
        return result.to_json()
    raise HTTPException(status_code=_FAILURE_STATUS.get(result.reason, 400), detail=result.reason)


def owned_request(container: AppContainer, pickup_id: str, user: User):
    request = container.ledger.get(pickup_id)
    if request is None:
        raise HTTPException(status_code=404, detail="not_found")
    owner = request.customer_id if user.type == UserType.CUSTOMER else request.partner_id
    if owner != user.id:
        raise HTTPException(status_code=403, detail="Not your pickup")
    return request


# ---------------------------------------------------------
# QUERIES
# ---------------------------------------------------------
@router.get("/schedule/time-slots")
def time_slots():
    return {
        "earliestDate": earliest_pickup_date(local_today()).isoformat(),
        "slots": [{"time": label, "available": available} for label, available in TIME_SLOTS],
    }


@router.get("/pickups")
def list_pickups(
    customer_id: Optional[str] = None,
    partner_id: Optional[str] = None,
    available: bool = False,
    container: AppContainer = Depends(get_container),
):
    ledger = container.ledger
    if available:
        requests = ledger.get_available()
    elif customer_id:
        requests = ledger.get_by_customer(customer_id)
    elif partner_id:
        requests = ledger.get_by_partner(partner_id)
    else:
        requests = ledger.requests
    return {
        "pickupRequests": [r.to_json() for r in requests],
        "loading": ledger.loading,
        "error": ledger.error,
    }


@router.get("/pickups/mine")
def my_pickups(user: User = Depends(current_user), container: AppContainer = Depends(get_container)):
    ledger = container.ledger
    if user.type == UserType.CUSTOMER:
        # Newest first, as in the order history
        requests = sorted(ledger.get_by_customer(user.id), key=lambda r: r.created_at, reverse=True)
        return {"pickupRequests": [r.to_json() for r in requests]}
    return {
        "available": [r.to_json() for r in ledger.get_available()],
        "assigned": [r.to_json() for r in ledger.get_by_partner(user.id)],
    }


@router.get("/pickups/summary")
def pickup_summary(user: User = Depends(current_user), container: AppContainer = Depends(get_container)):
    ledger = container.ledger
    if user.type == UserType.CUSTOMER:
        return status_summary(ledger.get_by_customer(user.id))
    summary = status_summary(ledger.get_by_partner(user.id))
    summary["pending"] = len(ledger.get_available())
    return summary


@router.get("/pickups/{pickup_id}")
def read_pickup(pickup_id: str, container: AppContainer = Depends(get_container)):
    request = container.ledger.get(pickup_id)
    if request is None:
        raise HTTPException(status_code=404, detail="not_found")
    return request.to_json()


# ---------------------------------------------------------
# COMMANDS
# ---------------------------------------------------------
@router.post("/pickups/refresh")
async def refresh_pickups(container: AppContainer = Depends(get_container)):
    await container.ledger.refresh()
    return list_pickups(container=container)


@router.post("/pickups", status_code=201)
async def schedule_pickup(
    payload: SchedulePayload,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.CUSTOMER)
    problem = validate_pickup(payload.pickup_date, payload.time_slot, local_today())
    if problem:
        raise HTTPException(status_code=422, detail=problem)

    result = await container.ledger.create(
        NewPickupRequest(
            customer_id=user.id,
            customer_name=user.name,
            customer_phone=user.phone_number,
            pickup_date=payload.pickup_date.isoformat(),
            time_slot=payload.time_slot,
            address=payload.address,
            map_link=(payload.map_link or "").strip() or None,
        )
    )
    return ledger_response(result)


@router.post("/pickups/{pickup_id}/accept")
async def accept_pickup(
    pickup_id: str,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.PARTNER)
    result = await container.ledger.accept(pickup_id, user.id, user.name, user.phone_number)
    return ledger_response(result)


@router.post("/pickups/{pickup_id}/start")
async def start_pickup(
    pickup_id: str,
    payload: PickupCodePayload,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.PARTNER)
    request = owned_request(container, pickup_id, user)
    if request.status != PickupStatus.ACCEPTED:
        raise HTTPException(status_code=409, detail=f"Pickup is {request.status.value}, it can only be started once accepted.")
    started = await container.ledger.start_pickup(pickup_id, payload.code.strip())
    if not started:
        raise HTTPException(status_code=409, detail="Invalid pickup code. Please check with the customer.")
    return container.ledger.get(pickup_id).to_json()


@router.post("/pickups/{pickup_id}/items")
async def submit_items(
    pickup_id: str,
    payload: ItemsPayload,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.PARTNER)
    owned_request(container, pickup_id, user)
    result = await container.ledger.add_items(pickup_id, payload.items, payload.total_amount)
    return ledger_response(result)


@router.post("/pickups/{pickup_id}/approve")
async def approve_pickup(
    pickup_id: str,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.CUSTOMER)
    owned_request(container, pickup_id, user)
    return ledger_response(await container.ledger.approve_pickup(pickup_id))


@router.post("/pickups/{pickup_id}/reject")
async def reject_pickup(
    pickup_id: str,
    user: User = Depends(current_user),
    container: AppContainer = Depends(get_container),
):
    require_role(user, UserType.CUSTOMER)
    owned_request(container, pickup_id, user)
    return ledger_response(await container.ledger.reject_pickup(pickup_id))
