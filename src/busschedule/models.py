"""
Data models for bus schedule entities.

This module defines the relational entities loaded from the static
schedule snapshot and the plain records returned by the query engine.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

WEEKDAY = "weekday"
WEEKEND = "weekend"
DAY_TYPES = (WEEKDAY, WEEKEND)

Coordinate = Tuple[float, float]


@dataclass(frozen=True)
class Stop:
    """A named physical location riders recognize."""

    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}


@dataclass(frozen=True)
class Platform:
    """One directional boarding point of a stop."""

    id: str
    parent_stop: str
    lat: float
    lng: float
    description: Optional[str] = None

    @property
    def coordinates(self) -> Coordinate:
        """Return (latitude, longitude) tuple."""
        return (self.lat, self.lng)

    @property
    def direction(self) -> str:
        """
        Return the direction suffix encoded in the platform id.

        e.g. "kazimierza-wielkiego:south" -> "south"
        """
        return self.id.split(":")[-1]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "parent_stop": self.parent_stop,
            "lat": self.lat,
            "lng": self.lng,
        }
        if self.description:
            data["description"] = self.description
        return data


@dataclass(frozen=True)
class Route:
    """
    Road-following path between two platforms.

    ``coordinates`` holds only the interior points; the endpoints are the
    coordinates of the two platforms themselves.
    """

    id: str
    parent_platform_start: str
    parent_platform_end: str
    coordinates: Tuple[Coordinate, ...] = ()

    @property
    def key(self) -> Tuple[str, str]:
        return (self.parent_platform_start, self.parent_platform_end)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "parent_platform_start": self.parent_platform_start,
            "parent_platform_end": self.parent_platform_end,
            "coordinates": [list(c) for c in self.coordinates],
        }


@dataclass(frozen=True)
class Line:
    """A bus line identity, independent of direction."""

    id: str
    name: str
    color: str

    @property
    def safe_filename(self) -> str:
        """Return a filesystem-safe version of the line id."""
        name = re.sub(r"[^\w\-]", "_", self.id)[:100]
        return name or "line"

    @property
    def kml_color(self) -> str:
        """
        Convert the line color to KML AABBGGRR format.

        Line colors are stored as CSS hex (e.g. '#FF0000' for red),
        KML expects 'ff0000ff' for opaque red.
        """
        color = self.color.lstrip("#").upper()
        if len(color) == 3:
            color = "".join(c * 2 for c in color)
        if not re.fullmatch(r"[0-9A-F]{6}", color):
            color = "FFFFFF"

        r, g, b = color[0:2], color[2:4], color[4:6]
        return f"ff{b}{g}{r}".lower()

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "color": self.color}


@dataclass(frozen=True)
class Direction:
    """One travel direction of a line; ``name`` is the destination."""

    id: str
    name: str
    parent_line: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "parent_line": self.parent_line}


@dataclass(frozen=True)
class Stage:
    """A single (platform, time) step of a trip."""

    platform: str
    time: str

    def to_dict(self) -> Dict[str, Any]:
        return {"platform": self.platform, "time": self.time}


@dataclass(frozen=True)
class Trip:
    """One scheduled run of a direction."""

    id: str
    name: str
    parent_direction: str
    stages: Tuple[Stage, ...] = ()
    days_group: Optional[str] = None
    days_include: Tuple[str, ...] = ()
    days_exclude: Tuple[str, ...] = ()

    @property
    def stage_count(self) -> int:
        return len(self.stages)

    @property
    def first_time(self) -> Optional[str]:
        """Return the time of the first stage, if any."""
        return self.stages[0].time if self.stages else None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "parent_direction": self.parent_direction,
            "stages": [stage.to_dict() for stage in self.stages],
        }
        if self.days_group:
            data["daysGroup"] = self.days_group
        if self.days_include:
            data["daysInclude"] = list(self.days_include)
        if self.days_exclude:
            data["daysExclude"] = list(self.days_exclude)
        return data


@dataclass(frozen=True)
class NonOperatingDay:
    """A date without any service, with a human-readable reason."""

    date: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "name": self.name}


@dataclass(frozen=True)
class Schedule:
    """A dated snapshot declaring which lines are active."""

    id: str
    updated_at: str
    valid_from: str
    lines: Tuple[str, ...] = ()
    non_operating_days: Tuple[NonOperatingDay, ...] = ()

    @property
    def non_operating_table(self) -> Dict[str, str]:
        """Return a mapping of ISO date to reason."""
        return {day.date: day.name for day in self.non_operating_days}

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "updated_at": self.updated_at,
            "valid_from": self.valid_from,
            "lines": list(self.lines),
        }
        if self.non_operating_days:
            data["non_operating_days"] = [d.to_dict() for d in self.non_operating_days]
        return data


# Query results


@dataclass(frozen=True)
class ServiceStatus:
    """Whether buses run on a date, and under which day type."""

    is_operating: bool
    day_type: Optional[str]
    reason: Optional[str] = None


@dataclass(frozen=True)
class Departure:
    """A single upcoming departure from a stop."""

    line_id: str
    line_name: str
    line_color: str
    direction_id: str
    destination_name: str
    platform_id: str
    time: str
    minutes_until: int


@dataclass(frozen=True)
class StopEntry:
    """One row of the canonical stop sequence of a direction."""

    position: int
    stop_id: str
    stop_name: str
    platform_id: str


@dataclass(frozen=True)
class DirectionInfo:
    """Display information for a direction and its line."""

    line_id: str
    line_name: str
    line_color: str
    direction_id: str
    direction_name: str


@dataclass
class Timetable:
    """Schedule grid for one direction and day type."""

    direction_id: str
    day_type: str
    stops: List[StopEntry] = field(default_factory=list)
    trips: List[Trip] = field(default_factory=list)
    # One sparse position -> time map per trip, aligned with ``trips``
    times: List[Dict[int, str]] = field(default_factory=list)

    @property
    def trip_count(self) -> int:
        return len(self.trips)

    def row(self, position: int) -> List[Optional[str]]:
        """Return the times of every trip at a canonical position."""
        return [times.get(position) for times in self.times]


@dataclass
class PlatformMarker:
    """A served platform, as shown on a map."""

    platform_id: str
    stop_id: str
    stop_name: str
    lat: float
    lng: float
    directions: List[DirectionInfo] = field(default_factory=list)
