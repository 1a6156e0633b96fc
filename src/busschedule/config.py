"""
Configuration for busschedule.

Holds the defaults used across the package. Command-line options
override them where they apply.
"""

import os
from pathlib import Path
from typing import Optional, Union


class BusScheduleConfig:
    """Package-wide defaults."""

    # Environment variable pointing at the directory with the data files
    DATA_DIR_ENV = "BUSSCHEDULE_DATA_DIR"
    DEFAULT_DATA_DIR = "data"

    STOPS_FILE = "stops.json"
    PLATFORMS_FILE = "platforms.json"
    ROUTES_FILE = "routes.json"
    LINES_FILE = "lines.json"
    DIRECTIONS_FILE = "directions.json"
    TRIPS_FILE = "trips.json"
    SCHEDULES_FILE = "schedules.json"

    # Legacy two-file format, converted by the migration
    LEGACY_SCHEDULES_FILE = "schedules.json"
    LEGACY_SHAPES_FILE = "shapes.json"
    STOP_ID_MIGRATION_FILE = "stop-id-migration.json"

    DEFAULT_DEPARTURE_LIMIT = 5

    # Points closer than this (degrees, per axis) are treated as the same point
    COORDINATE_EPSILON = 1e-6

    # Used when there are no platforms to average
    DEFAULT_MAP_CENTER = (51.75, 20.5)

    # Days searched by get_next_operating_day before giving up
    NEXT_OPERATING_DAY_HORIZON = 366

    @classmethod
    def data_files(cls):
        """Return the seven relational data file names."""
        return (
            cls.STOPS_FILE,
            cls.PLATFORMS_FILE,
            cls.ROUTES_FILE,
            cls.LINES_FILE,
            cls.DIRECTIONS_FILE,
            cls.TRIPS_FILE,
            cls.SCHEDULES_FILE,
        )


def resolve_data_dir(path: Optional[Union[str, Path]] = None) -> Path:
    """
    Resolve the data directory.

    Args:
        path: Explicit directory. Falls back to the BUSSCHEDULE_DATA_DIR
            environment variable, then to ./data

    Returns:
        Path to the data directory (not checked for existence)
    """
    value = path or os.getenv(BusScheduleConfig.DATA_DIR_ENV) or BusScheduleConfig.DEFAULT_DATA_DIR
    return Path(value)
