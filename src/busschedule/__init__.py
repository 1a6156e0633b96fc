"""
busschedule - Municipal bus timetable data model and query engine

A Python library and CLI tool that loads a versioned, relational bus
schedule snapshot and answers timetable questions: next departures from
a stop, the stop order of a direction, and route geometry for maps.
"""

__version__ = "0.1.0"

from .context import ScheduleContext
from .data_loader import ScheduleDataLoader, load_store
from .departures import get_next_departures, get_next_departures_for_direction
from .geometry import get_map_center, get_trip_route_coordinates
from .kml_export import KMLExporter
from .migration import migrate_legacy
from .sequence import build_timetable, build_trip_position_map, get_stop_sequence_for_direction
from .service_calendar import get_next_operating_day, resolve_service_status
from .store import ScheduleStore
from .versions import get_current_schedule

__all__ = [
    "ScheduleContext",
    "ScheduleDataLoader",
    "ScheduleStore",
    "KMLExporter",
    "build_timetable",
    "build_trip_position_map",
    "get_current_schedule",
    "get_map_center",
    "get_next_departures",
    "get_next_departures_for_direction",
    "get_next_operating_day",
    "get_stop_sequence_for_direction",
    "get_trip_route_coordinates",
    "load_store",
    "migrate_legacy",
    "resolve_service_status",
]
