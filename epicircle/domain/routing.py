from enum import Enum
from typing import Tuple

from epicircle.domain.models import Session, UserType


class Screen(str, Enum):
    LOADING = "Loading"
    AUTH = "Auth"
    CUSTOMER_DASHBOARD = "CustomerDashboard"
    SCHEDULE_PICKUP = "SchedulePickup"
    ORDER_HISTORY = "OrderHistory"
    PARTNER_DASHBOARD = "PartnerDashboard"


CUSTOMER_SCREENS = (Screen.CUSTOMER_DASHBOARD, Screen.SCHEDULE_PICKUP, Screen.ORDER_HISTORY)
PARTNER_SCREENS = (Screen.PARTNER_DASHBOARD,)


def route(session: Session, loading: bool = False) -> Tuple[Screen, ...]:
    """Screens reachable for the given session. First entry is the landing screen."""
    if loading:
        return (Screen.LOADING,)
    if not session.is_authenticated or session.user is None:
        return (Screen.AUTH,)
    if session.user.type == UserType.CUSTOMER:
        return CUSTOMER_SCREENS
    return PARTNER_SCREENS
