"""
Query context.

A ScheduleContext pins the reference date, the schedule version selected
for it, and the store restricted to that version's lines. Query
functions take a context explicitly instead of reading global state.
"""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Dict, List, Optional

from .models import ServiceStatus, Schedule, Trip
from .service_calendar import (
    DateLike,
    as_date,
    get_next_operating_day,
    is_trip_running_on,
    resolve_service_status,
)
from .store import ScheduleStore
from .versions import get_current_schedule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduleContext:
    """
    Snapshot of everything queries need for one reference date.

    ``store`` is the full static store; ``active`` holds only the lines
    listed by the current schedule version and everything under them.
    """

    reference_date: date
    current_schedule: Optional[Schedule]
    store: ScheduleStore
    active: ScheduleStore

    @classmethod
    def create(cls, store: ScheduleStore, reference_date: DateLike) -> "ScheduleContext":
        """Select the schedule version for ``reference_date`` and filter the store."""
        day = as_date(reference_date)
        schedule = get_current_schedule(store.all_schedules, day)

        if schedule is None:
            logger.warning(f"No schedule version is valid on {day.isoformat()}")
            active = store.restricted_to([])
        else:
            active = store.restricted_to(schedule.lines)
            logger.info(
                f"Using schedule {schedule.id} for {day.isoformat()} "
                f"({len(active.lines)} active lines)"
            )

        return cls(reference_date=day, current_schedule=schedule, store=store, active=active)

    @classmethod
    def for_now(cls, store: ScheduleStore) -> "ScheduleContext":
        return cls.create(store, datetime.now())

    @property
    def has_schedule(self) -> bool:
        """False means service is unknown, which is not the same as no service."""
        return self.current_schedule is not None

    @property
    def non_operating_days(self) -> Dict[str, str]:
        if self.current_schedule is None:
            return {}
        return self.current_schedule.non_operating_table

    def service_status(self, value: Optional[DateLike] = None) -> ServiceStatus:
        """Resolve the service status for a date (the reference date by default)."""
        return resolve_service_status(value or self.reference_date, self.non_operating_days)

    def next_operating_day(self, value: Optional[DateLike] = None) -> Optional[date]:
        return get_next_operating_day(value or self.reference_date, self.non_operating_days)

    def get_trips_running_on(self, direction_id: str, value: DateLike, day_type: str) -> List[Trip]:
        """Get the active trips of a direction that run on a concrete date."""
        return [
            trip for trip in self.active.get_all_trips_for_direction(direction_id)
            if is_trip_running_on(trip, value, day_type)
        ]
