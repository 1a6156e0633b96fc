"""
Canonical stop sequences and timetable grids.

A direction's trips do not all serve the same stops, and loop routes
visit the same stop more than once per trip. This module merges the
trips of a direction into one ordered, position-indexed list of stops
and positions each trip's times against it.
"""

import logging
from typing import Dict, List, Optional, Set

from .context import ScheduleContext
from .models import StopEntry, Timetable, Trip
from .service_calendar import parse_time
from .store import ScheduleStore

logger = logging.getLogger(__name__)


def _is_resolvable(store: ScheduleStore, platform_id: str) -> bool:
    return store.get_stop_for_platform(platform_id) is not None


def _first_unused(sequence: List[str], platform_id: str, used: Set[int]) -> Optional[int]:
    for position, candidate in enumerate(sequence):
        if candidate == platform_id and position not in used:
            return position
    return None


def _next_unused(sequence: List[str], platform_id: str, used: Set[int], after: Optional[int]) -> Optional[int]:
    """First unused matching position after ``after``, else the first unused one."""
    if after is not None:
        for position in range(after + 1, len(sequence)):
            if sequence[position] == platform_id and position not in used:
                return position
    return _first_unused(sequence, platform_id, used)


def merge_stop_sequence(store: ScheduleStore, trips: List[Trip]) -> List[str]:
    """
    Merge trips into one canonical list of platform ids.

    The trip with the most stages is the template; every one of its
    stages becomes an entry, so stops visited twice on a loop appear
    twice. Other trips claim matching positions in order, preferring the
    first unused one after the position they last reached. Platforms
    missing from the list are inserted right after the canonical
    position of the nearest preceding stage of the same trip, or
    appended when there is none.

    This is a greedy, best-effort visual ordering. Short trips that
    diverge in incompatible ways can yield an order no single trip has.
    """
    if not trips:
        return []

    template = max(trips, key=lambda t: t.stage_count)
    sequence = [
        stage.platform for stage in template.stages
        if _is_resolvable(store, stage.platform)
    ]

    for trip in trips:
        if trip.id == template.id:
            continue

        used: Set[int] = set()
        anchor: Optional[int] = None

        for stage in trip.stages:
            if not _is_resolvable(store, stage.platform):
                continue

            if stage.platform in sequence:
                position = _next_unused(sequence, stage.platform, used, anchor)
                if position is not None:
                    used.add(position)
                    anchor = position
                continue

            insert_at = len(sequence) if anchor is None else anchor + 1
            sequence.insert(insert_at, stage.platform)
            used = {p + 1 if p >= insert_at else p for p in used}
            used.add(insert_at)
            anchor = insert_at
            logger.debug(f"Inserted {stage.platform} from trip {trip.id} at position {insert_at}")

    return sequence


def get_stop_sequence_for_direction(
    ctx: ScheduleContext,
    direction_id: str,
    day_type: str
) -> List[StopEntry]:
    """
    Get the canonical, ordered stops of a direction for a day type.

    Args:
        ctx: Query context
        direction_id: Direction to build the sequence for
        day_type: 'weekday' or 'weekend'

    Returns:
        One StopEntry per canonical position; empty for unknown directions
    """
    store = ctx.active
    trips = store.get_trips_for_direction(direction_id, day_type)

    entries = []
    for position, platform_id in enumerate(merge_stop_sequence(store, trips)):
        stop = store.get_stop_for_platform(platform_id)
        entries.append(StopEntry(
            position=position,
            stop_id=stop.id,
            stop_name=stop.name,
            platform_id=platform_id,
        ))

    return entries


def build_trip_position_map(sequence: List[StopEntry], trip: Trip) -> Dict[int, str]:
    """
    Position one trip's stage times against a canonical sequence.

    Each stage claims the first canonical position with the same platform
    that an earlier stage of this trip has not claimed. This keeps the
    first and second visit of a loop stop on their own rows.

    Returns:
        Sparse mapping of canonical position to "HH:MM", in stage order
    """
    platforms = [entry.platform_id for entry in sequence]
    used: Set[int] = set()
    position_map: Dict[int, str] = {}

    for stage in trip.stages:
        position = _first_unused(platforms, stage.platform, used)
        if position is None:
            continue
        used.add(position)
        position_map[sequence[position].position] = stage.time

    return position_map


def positions_are_monotonic(position_map: Dict[int, str]) -> bool:
    """Check that the claimed positions increase in stage order."""
    positions = list(position_map)
    return all(a < b for a, b in zip(positions, positions[1:]))


def _first_time_key(trip: Trip):
    if trip.first_time is None:
        return (1, (0, 0))
    return (0, parse_time(trip.first_time))


def build_timetable(ctx: ScheduleContext, direction_id: str, day_type: str) -> Timetable:
    """
    Build the schedule grid of a direction.

    Rows are the canonical stops, columns the trips ordered by their
    first departure.
    """
    sequence = get_stop_sequence_for_direction(ctx, direction_id, day_type)
    trips = sorted(
        ctx.active.get_trips_for_direction(direction_id, day_type),
        key=_first_time_key,
    )

    timetable = Timetable(direction_id=direction_id, day_type=day_type, stops=sequence)
    for trip in trips:
        position_map = build_trip_position_map(sequence, trip)
        if not positions_are_monotonic(position_map):
            logger.warning(f"Trip {trip.id} does not follow the canonical stop order")
        timetable.trips.append(trip)
        timetable.times.append(position_map)

    logger.debug(
        f"Built timetable for {direction_id} ({day_type}): "
        f"{len(sequence)} stops x {timetable.trip_count} trips"
    )
    return timetable


def get_times_for_stop_in_direction(
    ctx: ScheduleContext,
    stop_id: str,
    direction_id: str,
    day_type: str
) -> List[str]:
    """Get every time a direction serves any platform of a stop, sorted."""
    store = ctx.active
    platform_ids = {p.id for p in store.get_platforms_for_stop(stop_id)}

    times = [
        stage.time
        for trip in store.get_trips_for_direction(direction_id, day_type)
        for stage in trip.stages
        if stage.platform in platform_ids
    ]
    return sorted(times, key=parse_time)
