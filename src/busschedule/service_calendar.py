"""
Service-day resolution and wall-clock time arithmetic.

Decides whether buses run on a given date and which day-type schedule
applies. All functions are pure: the table of non-operating dates is
passed in explicitly (it comes from the active schedule version).
"""

import logging
from datetime import date, datetime, timedelta
from typing import Mapping, Optional, Tuple, Union

from .config import BusScheduleConfig
from .models import WEEKDAY, WEEKEND, ServiceStatus, Trip

logger = logging.getLogger(__name__)

DateLike = Union[date, datetime]


def as_date(value: DateLike) -> date:
    """Return the calendar date of a date or datetime."""
    if isinstance(value, datetime):
        return value.date()
    return value


def get_day_type(value: DateLike) -> str:
    """Classify Saturday and Sunday as weekend, everything else as weekday."""
    return WEEKEND if as_date(value).weekday() >= 5 else WEEKDAY


def resolve_service_status(
    value: DateLike,
    non_operating_days: Optional[Mapping[str, str]] = None
) -> ServiceStatus:
    """
    Resolve the service status for a date.

    Args:
        value: Date (or datetime) to check
        non_operating_days: Mapping of ISO date to the reason there is no service

    Returns:
        ServiceStatus; day_type is None exactly when is_operating is False
    """
    day = as_date(value)
    reason = (non_operating_days or {}).get(day.isoformat())
    if reason is not None:
        return ServiceStatus(is_operating=False, day_type=None, reason=reason)

    return ServiceStatus(is_operating=True, day_type=get_day_type(day))


def get_next_operating_day(
    from_date: DateLike,
    non_operating_days: Optional[Mapping[str, str]] = None,
    horizon: int = BusScheduleConfig.NEXT_OPERATING_DAY_HORIZON
) -> Optional[date]:
    """
    Find the first operating day after ``from_date``.

    Args:
        from_date: Day to start from (not itself considered)
        non_operating_days: Mapping of ISO date to reason
        horizon: Maximum number of days to look ahead

    Returns:
        The next operating date, or None if none is found within the horizon
    """
    day = as_date(from_date)
    for _ in range(horizon):
        day += timedelta(days=1)
        if resolve_service_status(day, non_operating_days).is_operating:
            return day

    logger.warning(f"No operating day found within {horizon} days of {as_date(from_date)}")
    return None


def is_trip_running_on(trip: Trip, value: DateLike, day_type: str) -> bool:
    """
    Check whether a trip runs on a concrete date.

    daysExclude wins over everything, daysInclude forces the trip in
    regardless of its daysGroup, otherwise the day-type filter applies.
    """
    iso = as_date(value).isoformat()
    if iso in trip.days_exclude:
        return False
    if iso in trip.days_include:
        return True
    return trip.days_group is None or trip.days_group == day_type


def parse_time(time_string: str) -> Tuple[int, int]:
    """
    Parse an "HH:MM" wall-clock time.

    Raises:
        ValueError: If the string is not in HH:MM form or out of range
    """
    hours, sep, minutes = time_string.strip().partition(":")
    if not sep or not hours.isdigit() or not minutes.isdigit():
        raise ValueError(f"Invalid time: {time_string!r}")
    if int(hours) > 23 or int(minutes) > 59:
        raise ValueError(f"Time out of range: {time_string!r}")
    return int(hours), int(minutes)


def minutes_until(time_string: str, now: datetime) -> int:
    """
    Whole minutes from ``now`` until ``time_string`` on the same day.

    Negative values mean the time has already passed. There is no
    cross-midnight handling.
    """
    hours, minutes = parse_time(time_string)
    target = datetime.combine(now.date(), datetime.min.time(), tzinfo=now.tzinfo)
    target += timedelta(hours=hours, minutes=minutes)
    return int((target - now).total_seconds() // 60)


def is_past_time(time_string: str, now: datetime) -> bool:
    """Check whether a same-day time has already passed."""
    return minutes_until(time_string, now) < 0
