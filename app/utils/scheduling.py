import re
from datetime import datetime, date, time, timedelta

from app.core import config

_TIME_RE = re.compile(r"^\s*(\d{1,2}):(\d{2})")


def parse_time_slot(time_slot):
    """Leading "HH:MM" of a slot string ("14:00", "14:00 - 15:00")."""
    if isinstance(time_slot, time):
        return time_slot
    if not time_slot:
        return None
    match = _TIME_RE.match(str(time_slot))
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return time(hour, minute)


def scheduled_start(booking_date, time_slot):
    """Combine a local calendar date and local time-of-day into one instant."""
    if isinstance(booking_date, str):
        try:
            booking_date = date.fromisoformat(booking_date)
        except ValueError:
            return None
    if not isinstance(booking_date, date):
        return None
    slot = parse_time_slot(time_slot)
    if slot is None:
        return None
    return datetime.combine(booking_date, slot)


def can_refund(booking_date, time_slot, now=None, cutoff_hours=None) -> bool:
    """True when the booking starts at least ``cutoff_hours`` after ``now``."""
    start = scheduled_start(booking_date, time_slot)
    if start is None:
        return False
    now = now or datetime.now()
    cutoff = timedelta(hours=config.REFUND_CUTOFF_HOURS if cutoff_hours is None else cutoff_hours)
    return start - now >= cutoff
