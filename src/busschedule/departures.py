"""
Departure queries.

Answers "what leaves from this stop next" for the service day of a
given moment, honouring the active schedule version, the service
calendar and per-date trip overrides.
"""

import logging
from datetime import datetime
from typing import List, Optional, Set

from .config import BusScheduleConfig
from .context import ScheduleContext
from .models import DAY_TYPES, Departure, Direction, DirectionInfo, Line
from .service_calendar import minutes_until

logger = logging.getLogger(__name__)


def _direction_info(ctx: ScheduleContext, direction: Direction) -> Optional[DirectionInfo]:
    line = ctx.active.get_line(direction.parent_line)
    if line is None:
        return None
    return DirectionInfo(
        line_id=line.id,
        line_name=line.name,
        line_color=line.color,
        direction_id=direction.id,
        direction_name=direction.name,
    )


def get_directions_serving_platform(
    ctx: ScheduleContext,
    platform_id: str,
    day_type: Optional[str] = None
) -> List[DirectionInfo]:
    """
    Get the active directions with a trip stopping at a platform.

    Args:
        ctx: Query context
        platform_id: Platform to look up
        day_type: Restrict to one day type; None means either

    Returns:
        DirectionInfo list without duplicates, in data order
    """
    store = ctx.active
    day_types = DAY_TYPES if day_type is None else (day_type,)
    result = []

    for direction in store.directions.values():
        serves = any(
            stage.platform == platform_id
            for dt in day_types
            for trip in store.get_trips_for_direction(direction.id, dt)
            for stage in trip.stages
        )
        if not serves:
            continue
        info = _direction_info(ctx, direction)
        if info is not None:
            result.append(info)

    return result


def get_directions_serving_stop(
    ctx: ScheduleContext,
    stop_id: str,
    day_type: Optional[str] = None
) -> List[DirectionInfo]:
    """Get the active directions serving any platform of a stop."""
    seen = set()
    result = []
    for platform in ctx.active.get_platforms_for_stop(stop_id):
        for info in get_directions_serving_platform(ctx, platform.id, day_type):
            if info.direction_id not in seen:
                seen.add(info.direction_id)
                result.append(info)
    return result


def _departures_for_direction(
    ctx: ScheduleContext,
    direction: Direction,
    platform_ids: Set[str],
    day_type: str,
    now: datetime
) -> List[Departure]:
    # The trips running on this date decide whether the line operates
    line = ctx.active.get_line(direction.parent_line)
    if line is None:
        return []

    departures = []
    for trip in ctx.get_trips_running_on(direction.id, now, day_type):
        for stage in trip.stages:
            if stage.platform not in platform_ids:
                continue
            minutes = minutes_until(stage.time, now)
            if minutes < 0:
                continue
            departures.append(Departure(
                line_id=line.id,
                line_name=line.name,
                line_color=line.color,
                direction_id=direction.id,
                destination_name=direction.name,
                platform_id=stage.platform,
                time=stage.time,
                minutes_until=minutes,
            ))

    return departures


def _resolve_day_type(ctx: ScheduleContext, now: datetime) -> Optional[str]:
    if not ctx.has_schedule:
        logger.debug("No current schedule version, departures unavailable")
        return None

    status = ctx.service_status(now)
    if not status.is_operating:
        logger.debug(f"No service on {now.date().isoformat()}: {status.reason}")
        return None

    return status.day_type


def _sort_and_limit(departures: List[Departure], limit: int) -> List[Departure]:
    departures.sort(key=lambda d: (d.minutes_until, d.time, d.line_id, d.direction_id, d.platform_id))
    return departures[:limit]


def get_next_departures(
    ctx: ScheduleContext,
    stop_id: str,
    limit: int = BusScheduleConfig.DEFAULT_DEPARTURE_LIMIT,
    now: Optional[datetime] = None
) -> List[Departure]:
    """
    Get the next departures from every platform of a stop.

    Returns an empty list when there is no current schedule version or
    no service on the day of ``now``. Only departures at or after
    ``now`` on the same day are included.

    Args:
        ctx: Query context
        stop_id: Stop to query
        limit: Maximum number of departures
        now: Moment of the query (defaults to the current time)

    Returns:
        Departures ordered by minutes until departure
    """
    now = now or datetime.now()
    day_type = _resolve_day_type(ctx, now)
    if day_type is None:
        return []

    store = ctx.active
    platform_ids = {p.id for p in store.get_platforms_for_stop(stop_id)}
    if not platform_ids:
        return []

    departures: List[Departure] = []
    for direction in store.directions.values():
        departures.extend(_departures_for_direction(ctx, direction, platform_ids, day_type, now))

    return _sort_and_limit(departures, limit)


def get_next_departures_for_direction(
    ctx: ScheduleContext,
    stop_id: str,
    direction_id: str,
    limit: int = BusScheduleConfig.DEFAULT_DEPARTURE_LIMIT,
    now: Optional[datetime] = None
) -> List[Departure]:
    """Get the next departures from a stop in a single direction."""
    now = now or datetime.now()
    day_type = _resolve_day_type(ctx, now)
    if day_type is None:
        return []

    direction = ctx.active.get_direction(direction_id)
    if direction is None:
        return []

    platform_ids = {p.id for p in ctx.active.get_platforms_for_stop(stop_id)}
    departures = _departures_for_direction(ctx, direction, platform_ids, day_type, now)
    return _sort_and_limit(departures, limit)


def get_operating_lines(ctx: ScheduleContext, day_type: str) -> List[Line]:
    """Get the active lines with at least one trip for a day type."""
    return [
        line for line in ctx.active.lines.values()
        if ctx.active.does_line_operate_on(line.id, day_type)
    ]
