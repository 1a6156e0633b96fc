"""
Static schedule data loader.

This module reads the seven relational JSON collections (stops,
platforms, routes, lines, directions, trips, schedules) from a directory
and builds a ScheduleStore from them.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .config import BusScheduleConfig
from .exceptions import DataFormatError
from .models import (
    DAY_TYPES,
    Direction,
    Line,
    NonOperatingDay,
    Platform,
    Route,
    Schedule,
    Stage,
    Stop,
    Trip,
)
from .service_calendar import parse_time
from .store import ScheduleStore

logger = logging.getLogger(__name__)


class ScheduleDataLoader:
    """
    Loader for the relational schedule snapshot.

    Reads every collection once and returns an immutable store.
    """

    def __init__(self, data_dir: Union[str, Path]):
        """
        Initialize loader with a data directory.

        Args:
            data_dir: Path to directory containing the seven JSON files
        """
        self.data_dir = Path(data_dir)
        self._validate_data_directory()

    def _validate_data_directory(self) -> None:
        """Validate that the data directory exists and contains every file."""
        if not self.data_dir.exists():
            raise FileNotFoundError(f"Data directory not found: {self.data_dir}")

        missing_files = [
            filename for filename in BusScheduleConfig.data_files()
            if not (self.data_dir / filename).exists()
        ]
        if missing_files:
            raise FileNotFoundError(
                f"Missing required data files: {', '.join(missing_files)}"
            )

    def load(self) -> ScheduleStore:
        """
        Load all collections and build the store.

        Returns:
            ScheduleStore over the loaded entities

        Raises:
            DataFormatError: If a file is not a JSON list of valid entries
        """
        logger.info(f"Loading schedule data from {self.data_dir}")

        store = ScheduleStore(
            stops=self._load_stops(),
            platforms=self._load_platforms(),
            routes=self._load_routes(),
            lines=self._load_lines(),
            directions=self._load_directions(),
            trips=self._load_trips(),
            schedules=self._load_schedules(),
        )

        logger.info(
            f"Loaded {len(store.stops)} stops, {len(store.lines)} lines, "
            f"{len(store.trips)} trips, {len(store.schedules)} schedule versions"
        )
        return store

    def _read_collection(self, filename: str) -> List[Dict[str, Any]]:
        path = self.data_dir / filename
        logger.debug(f"Reading {path}")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise DataFormatError(filename, f"invalid JSON ({e})") from e

        if not isinstance(data, list):
            raise DataFormatError(filename, "expected a list of entries")

        for index, row in enumerate(data):
            if not isinstance(row, dict):
                raise DataFormatError(filename, f"entry {index} is not an object")

        return data

    @staticmethod
    def _require(row: Dict[str, Any], key: str, filename: str) -> Any:
        if key not in row:
            entry = row.get('id', '?')
            raise DataFormatError(filename, f"entry {entry} is missing '{key}'")
        return row[key]

    def _load_stops(self) -> List[Stop]:
        """Parse stops.json."""
        filename = BusScheduleConfig.STOPS_FILE
        stops = [
            Stop(
                id=self._require(row, 'id', filename),
                name=self._require(row, 'name', filename),
            )
            for row in self._read_collection(filename)
        ]
        logger.debug(f"Loaded {len(stops)} stops")
        return stops

    def _load_platforms(self) -> List[Platform]:
        """Parse platforms.json."""
        filename = BusScheduleConfig.PLATFORMS_FILE
        platforms = []

        for row in self._read_collection(filename):
            try:
                lat = float(self._require(row, 'lat', filename))
                lng = float(self._require(row, 'lng', filename))
            except (TypeError, ValueError) as e:
                raise DataFormatError(filename, f"entry {row.get('id', '?')} has invalid coordinates") from e

            platforms.append(Platform(
                id=self._require(row, 'id', filename),
                parent_stop=self._require(row, 'parent_stop', filename),
                lat=lat,
                lng=lng,
                description=row.get('description'),
            ))

        logger.debug(f"Loaded {len(platforms)} platforms")
        return platforms

    def _load_routes(self) -> List[Route]:
        """Parse routes.json (road geometry between platform pairs)."""
        filename = BusScheduleConfig.ROUTES_FILE
        routes = []

        for row in self._read_collection(filename):
            try:
                coordinates = tuple(
                    (float(point[0]), float(point[1]))
                    for point in row.get('coordinates', [])
                )
            except (TypeError, ValueError, IndexError) as e:
                raise DataFormatError(filename, f"entry {row.get('id', '?')} has invalid coordinates") from e

            routes.append(Route(
                id=self._require(row, 'id', filename),
                parent_platform_start=self._require(row, 'parent_platform_start', filename),
                parent_platform_end=self._require(row, 'parent_platform_end', filename),
                coordinates=coordinates,
            ))

        logger.debug(f"Loaded {len(routes)} routes")
        return routes

    def _load_lines(self) -> List[Line]:
        """Parse lines.json."""
        filename = BusScheduleConfig.LINES_FILE
        lines = [
            Line(
                id=self._require(row, 'id', filename),
                name=self._require(row, 'name', filename),
                color=row.get('color', '#FFFFFF'),
            )
            for row in self._read_collection(filename)
        ]
        logger.debug(f"Loaded {len(lines)} lines")
        return lines

    def _load_directions(self) -> List[Direction]:
        """Parse directions.json."""
        filename = BusScheduleConfig.DIRECTIONS_FILE
        directions = [
            Direction(
                id=self._require(row, 'id', filename),
                name=self._require(row, 'name', filename),
                parent_line=self._require(row, 'parent_line', filename),
            )
            for row in self._read_collection(filename)
        ]
        logger.debug(f"Loaded {len(directions)} directions")
        return directions

    def _load_trips(self) -> List[Trip]:
        """Parse trips.json, checking stage times and day groups."""
        filename = BusScheduleConfig.TRIPS_FILE
        trips = []

        for row in self._read_collection(filename):
            trip_id = self._require(row, 'id', filename)

            stages = []
            for stage in self._require(row, 'stages', filename):
                if not isinstance(stage, dict):
                    raise DataFormatError(filename, f"trip {trip_id} has a stage that is not an object")
                time = stage.get('time', '')
                try:
                    parse_time(time)
                except (AttributeError, ValueError) as e:
                    raise DataFormatError(filename, f"trip {trip_id} has invalid time {time!r}") from e
                stages.append(Stage(platform=self._require(stage, 'platform', filename), time=time))

            days_group = row.get('daysGroup')
            if days_group is not None and days_group not in DAY_TYPES:
                raise DataFormatError(filename, f"trip {trip_id} has unknown daysGroup {days_group!r}")

            trips.append(Trip(
                id=trip_id,
                name=self._require(row, 'name', filename),
                parent_direction=self._require(row, 'parent_direction', filename),
                stages=tuple(stages),
                days_group=days_group,
                days_include=tuple(row.get('daysInclude', ())),
                days_exclude=tuple(row.get('daysExclude', ())),
            ))

        logger.debug(f"Loaded {len(trips)} trips")
        return trips

    def _load_schedules(self) -> List[Schedule]:
        """Parse schedules.json (schedule versions)."""
        filename = BusScheduleConfig.SCHEDULES_FILE
        schedules = []

        for row in self._read_collection(filename):
            non_operating_days = tuple(
                NonOperatingDay(
                    date=self._require(day, 'date', filename),
                    name=day.get('name', ''),
                )
                for day in row.get('non_operating_days', ())
            )
            schedules.append(Schedule(
                id=self._require(row, 'id', filename),
                updated_at=row.get('updated_at', ''),
                valid_from=self._require(row, 'valid_from', filename),
                lines=tuple(row.get('lines', ())),
                non_operating_days=non_operating_days,
            ))

        logger.debug(f"Loaded {len(schedules)} schedule versions")
        return schedules


def load_store(data_dir: Union[str, Path]) -> ScheduleStore:
    """Load the schedule snapshot in ``data_dir`` into a store."""
    return ScheduleDataLoader(data_dir).load()
