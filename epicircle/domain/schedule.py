from datetime import date, datetime, timedelta
from typing import List, Optional

import pytz

from epicircle.core.config import settings

# (label, available)
TIME_SLOTS = [
    ("09:00 AM - 10:00 AM", True),
    ("10:00 AM - 11:00 AM", True),
    ("11:00 AM - 12:00 PM", True),
    ("12:00 PM - 01:00 PM", False),  # Lunch break
    ("01:00 PM - 02:00 PM", True),
    ("02:00 PM - 03:00 PM", True),
    ("03:00 PM - 04:00 PM", True),
    ("04:00 PM - 05:00 PM", True),
]


def available_slots() -> List[str]:
    return [label for label, available in TIME_SLOTS if available]


def local_today(timezone: str | None = None) -> date:
    tz = pytz.timezone(timezone or settings.TIMEZONE)
    return datetime.now(tz).date()


def earliest_pickup_date(today: date) -> date:
    # Same-day pickups are not offered
    return today + timedelta(days=1)


def validate_pickup(pickup_date: date, time_slot: str, today: date) -> Optional[str]:
    """Returns a user-facing error message, or None when the slot can be booked."""
    if pickup_date < earliest_pickup_date(today):
        return "Pickups can be scheduled from tomorrow onwards"
    if time_slot not in available_slots():
        return "Please select an available time slot for your pickup"
    return None
