"""
In-memory relational store over the static schedule snapshot.

The store is built once from the seven entity collections and never
modified afterwards. Lookups by unknown id return None.
"""

import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from .models import Direction, Line, Platform, Route, Schedule, Stop, Trip
from .service_calendar import parse_time

logger = logging.getLogger(__name__)


class ScheduleStore:
    """
    Build-once indices over stops, platforms, routes, lines, directions,
    trips and schedule versions.
    """

    def __init__(
        self,
        stops: Iterable[Stop] = (),
        platforms: Iterable[Platform] = (),
        routes: Iterable[Route] = (),
        lines: Iterable[Line] = (),
        directions: Iterable[Direction] = (),
        trips: Iterable[Trip] = (),
        schedules: Iterable[Schedule] = ()
    ):
        self.stops: Dict[str, Stop] = {s.id: s for s in stops}
        self.platforms: Dict[str, Platform] = {p.id: p for p in platforms}
        self.routes: Dict[str, Route] = {r.id: r for r in routes}
        self.lines: Dict[str, Line] = {l.id: l for l in lines}
        self.directions: Dict[str, Direction] = {d.id: d for d in directions}
        self.trips: Dict[str, Trip] = {t.id: t for t in trips}
        self.schedules: Dict[str, Schedule] = {s.id: s for s in schedules}

        self._platforms_by_stop: Dict[str, List[Platform]] = defaultdict(list)
        for platform in self.platforms.values():
            self._platforms_by_stop[platform.parent_stop].append(platform)

        self._directions_by_line: Dict[str, List[Direction]] = defaultdict(list)
        for direction in self.directions.values():
            self._directions_by_line[direction.parent_line].append(direction)

        self._trips_by_direction: Dict[str, List[Trip]] = defaultdict(list)
        for trip in self.trips.values():
            self._trips_by_direction[trip.parent_direction].append(trip)

        self._routes_by_pair: Dict[Tuple[str, str], Route] = {}
        for route in self.routes.values():
            if route.key in self._routes_by_pair:
                logger.warning(
                    f"Duplicate route segment {route.key[0]} -> {route.key[1]}, "
                    f"keeping {self._routes_by_pair[route.key].id}"
                )
                continue
            self._routes_by_pair[route.key] = route

        logger.debug(
            f"Indexed {len(self.stops)} stops, {len(self.platforms)} platforms, "
            f"{len(self.routes)} routes, {len(self.lines)} lines, "
            f"{len(self.directions)} directions, {len(self.trips)} trips, "
            f"{len(self.schedules)} schedules"
        )

    # Lookups by id

    def get_stop(self, stop_id: str) -> Optional[Stop]:
        return self.stops.get(stop_id)

    def get_platform(self, platform_id: str) -> Optional[Platform]:
        return self.platforms.get(platform_id)

    def get_line(self, line_id: str) -> Optional[Line]:
        return self.lines.get(line_id)

    def get_direction(self, direction_id: str) -> Optional[Direction]:
        return self.directions.get(direction_id)

    def get_trip(self, trip_id: str) -> Optional[Trip]:
        return self.trips.get(trip_id)

    def get_route_segment(self, start_platform: str, end_platform: str) -> Optional[Route]:
        """Get the authored road segment between two platforms, if any."""
        return self._routes_by_pair.get((start_platform, end_platform))

    def get_line_for_direction(self, direction_id: str) -> Optional[Line]:
        direction = self.get_direction(direction_id)
        if direction is None:
            return None
        return self.get_line(direction.parent_line)

    def get_stop_for_platform(self, platform_id: str) -> Optional[Stop]:
        platform = self.get_platform(platform_id)
        if platform is None:
            return None
        return self.get_stop(platform.parent_stop)

    # Multi-map lookups

    def get_platforms_for_stop(self, stop_id: str) -> List[Platform]:
        return list(self._platforms_by_stop.get(stop_id, ()))

    def get_directions_for_line(self, line_id: str) -> List[Direction]:
        return list(self._directions_by_line.get(line_id, ()))

    def get_all_trips_for_direction(self, direction_id: str) -> List[Trip]:
        """Get every trip of a direction, regardless of day type."""
        return list(self._trips_by_direction.get(direction_id, ()))

    def get_trips_for_direction(self, direction_id: str, day_type: str) -> List[Trip]:
        """
        Get the trips of a direction for a day type.

        A trip is included when it has no daysGroup or its daysGroup
        equals ``day_type``. Per-date overrides (daysInclude/daysExclude)
        are not applied here; see service_calendar.is_trip_running_on.
        """
        return [
            trip for trip in self._trips_by_direction.get(direction_id, ())
            if trip.days_group is None or trip.days_group == day_type
        ]

    def get_trip_by_name(self, direction_id: str, name: str, day_type: str) -> Optional[Trip]:
        """Find a trip by its human-facing name within a direction and day type."""
        for trip in self.get_trips_for_direction(direction_id, day_type):
            if trip.name == name:
                return trip
        return None

    def does_line_operate_on(self, line_id: str, day_type: str) -> bool:
        """Check whether any direction of the line has trips for the day type."""
        return any(
            self.get_trips_for_direction(direction.id, day_type)
            for direction in self.get_directions_for_line(line_id)
        )

    @property
    def all_schedules(self) -> List[Schedule]:
        return list(self.schedules.values())

    def restricted_to(self, line_ids: Sequence[str]) -> "ScheduleStore":
        """
        Build a store holding only the lines in ``line_ids`` and the
        directions and trips reachable from them.

        Stops, platforms, routes and schedule versions are kept as they are.
        """
        active: Set[str] = {line_id for line_id in line_ids if line_id in self.lines}
        directions = [d for d in self.directions.values() if d.parent_line in active]
        direction_ids = {d.id for d in directions}

        return ScheduleStore(
            stops=self.stops.values(),
            platforms=self.platforms.values(),
            routes=self.routes.values(),
            lines=[self.lines[line_id] for line_id in self.lines if line_id in active],
            directions=directions,
            trips=[t for t in self.trips.values() if t.parent_direction in direction_ids],
            schedules=self.schedules.values(),
        )

    def validate(self) -> List[str]:
        """
        Check referential integrity and stage ordering.

        Problems are logged as warnings and returned; nothing is raised.
        """
        problems: List[str] = []

        for platform in self.platforms.values():
            if platform.parent_stop not in self.stops:
                problems.append(f"Platform {platform.id} references unknown stop {platform.parent_stop}")

        for route in self.routes.values():
            for platform_id in route.key:
                if platform_id not in self.platforms:
                    problems.append(f"Route {route.id} references unknown platform {platform_id}")

        for direction in self.directions.values():
            if direction.parent_line not in self.lines:
                problems.append(f"Direction {direction.id} references unknown line {direction.parent_line}")

        for trip in self.trips.values():
            if trip.parent_direction not in self.directions:
                problems.append(f"Trip {trip.id} references unknown direction {trip.parent_direction}")

            previous = None
            for stage in trip.stages:
                if stage.platform not in self.platforms:
                    problems.append(f"Trip {trip.id} references unknown platform {stage.platform}")
                try:
                    current = parse_time(stage.time)
                except ValueError:
                    problems.append(f"Trip {trip.id} has invalid time {stage.time!r}")
                    continue
                if previous is not None and current <= previous:
                    problems.append(f"Trip {trip.id} stage times are not increasing at {stage.time}")
                previous = current

        for schedule in self.schedules.values():
            for line_id in schedule.lines:
                if line_id not in self.lines:
                    problems.append(f"Schedule {schedule.id} references unknown line {line_id}")

        for problem in problems:
            logger.warning(problem)

        return problems
