"""
Legacy data migration.

Converts the old two-file format (a monolithic schedules.json with
numeric stop ids and A/B platform letters, plus shapes.json with road
segments) into the seven relational collections. This is a one-time
batch transform; the runtime only ever reads the relational form.
"""

import json
import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

from .config import BusScheduleConfig
from .exceptions import MigrationError
from .models import (
    WEEKDAY,
    WEEKEND,
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

logger = logging.getLogger(__name__)

# Platform letter -> direction suffix of the new platform id
PLATFORM_DIRECTIONS = {"A": "south", "B": "north"}

SEGMENT_KEY_PATTERN = re.compile(r"^(\d+)-([AB])_(\d+)-([AB])$")


def slugify(text: str) -> str:
    """
    Turn a display name into an id.

    Lowercase, diacritics stripped, runs of anything that is not a
    letter or digit replaced by a single hyphen.
    """
    normalized = unicodedata.normalize("NFD", text.lower())
    without_diacritics = "".join(c for c in normalized if not unicodedata.combining(c))
    # ł has no decomposition
    without_diacritics = without_diacritics.replace("ł", "l")
    return re.sub(r"[^a-z0-9]+", "-", without_diacritics).strip("-")


def platform_id_for(stop_id: str, letter: str) -> str:
    return f"{stop_id}:{PLATFORM_DIRECTIONS[letter]}"


def line_id_for(number: Any) -> str:
    return f"line{number}"


def direction_suffix_for(old_direction_id: str, name: str) -> str:
    """Map a legacy direction id to the south/north suffix, or a slug of its name."""
    if "to-mrowka" in old_direction_id or "to-domki" in old_direction_id:
        return "south"
    if "from-mrowka" in old_direction_id or "from-domki" in old_direction_id:
        return "north"
    return slugify(name)


@dataclass
class MigrationResult:
    """The relational collections produced by a migration."""

    stops: List[Stop] = field(default_factory=list)
    platforms: List[Platform] = field(default_factory=list)
    routes: List[Route] = field(default_factory=list)
    lines: List[Line] = field(default_factory=list)
    directions: List[Direction] = field(default_factory=list)
    trips: List[Trip] = field(default_factory=list)
    schedules: List[Schedule] = field(default_factory=list)

    # Old numeric stop id -> new string id, for migrating saved settings
    stop_id_map: Dict[int, str] = field(default_factory=dict)

    skipped_stages: int = 0
    skipped_segments: int = 0
    platform_fallbacks: int = 0

    def collections(self) -> Dict[str, List[Dict[str, Any]]]:
        """Return the collections keyed by their file names, as plain dicts."""
        config = BusScheduleConfig
        return {
            config.STOPS_FILE: [s.to_dict() for s in self.stops],
            config.PLATFORMS_FILE: [p.to_dict() for p in self.platforms],
            config.ROUTES_FILE: [r.to_dict() for r in self.routes],
            config.LINES_FILE: [l.to_dict() for l in self.lines],
            config.DIRECTIONS_FILE: [d.to_dict() for d in self.directions],
            config.TRIPS_FILE: [t.to_dict() for t in self.trips],
            config.SCHEDULES_FILE: [s.to_dict() for s in self.schedules],
        }


class LegacyMigrator:
    """
    Converts legacy schedules/shapes data into relational collections.

    Malformed or unmappable entries are logged and skipped; the
    migration always continues with the remaining entries.
    """

    def __init__(
        self,
        old_schedules: Dict[str, Any],
        old_shapes: Optional[Dict[str, Any]] = None,
        valid_from: Optional[str] = None
    ):
        """
        Args:
            old_schedules: Parsed legacy schedules.json
            old_shapes: Parsed legacy shapes.json, if available
            valid_from: valid_from of the generated schedule version
                (defaults to January 1st of the lastUpdated year)
        """
        for section in ("metadata", "stops", "lines"):
            if section not in old_schedules:
                raise MigrationError(f"Legacy schedules data has no '{section}' section")

        self.old_schedules = old_schedules
        self.old_shapes = old_shapes or {}
        self.valid_from = valid_from

        self.result = MigrationResult()
        # "oldStopId-letter" -> new platform id
        self._platform_map: Dict[str, str] = {}

    def migrate(self) -> MigrationResult:
        """Run every conversion step and return the result."""
        self._migrate_stops()
        self._migrate_routes()
        self._migrate_lines()
        self._migrate_schedule()

        result = self.result
        logger.info(
            f"Migrated {len(result.stops)} stops, {len(result.platforms)} platforms, "
            f"{len(result.routes)} routes, {len(result.lines)} lines, "
            f"{len(result.directions)} directions, {len(result.trips)} trips"
        )
        if result.skipped_stages or result.skipped_segments:
            logger.warning(
                f"Skipped {result.skipped_stages} stages and {result.skipped_segments} segments"
            )
        return result

    def _migrate_stops(self) -> None:
        """Generate stops and their platforms."""
        for old_stop in self.old_schedules["stops"]:
            stop_id = slugify(old_stop["name"])
            self.result.stop_id_map[old_stop["id"]] = stop_id
            self.result.stops.append(Stop(id=stop_id, name=old_stop["name"]))

            for letter in ("A", "B"):
                old_platform = old_stop.get("platforms", {}).get(letter)
                if not old_platform:
                    continue

                platform_id = platform_id_for(stop_id, letter)
                self._platform_map[f"{old_stop['id']}-{letter}"] = platform_id
                self.result.platforms.append(Platform(
                    id=platform_id,
                    parent_stop=stop_id,
                    lat=old_platform["lat"],
                    lng=old_platform["lng"],
                    description=old_platform.get("description"),
                ))

        logger.debug(f"Generated {len(self.result.stops)} stops, {len(self.result.platforms)} platforms")

    def _migrate_routes(self) -> None:
        """Generate route segments from the legacy shape segments."""
        segments = self.old_shapes.get("segments", {})

        for segment_key, segment in segments.items():
            if segment_key.startswith("comment"):
                continue

            match = SEGMENT_KEY_PATTERN.match(segment_key)
            if not match:
                logger.warning(f"Skipping invalid segment key: {segment_key}")
                self.result.skipped_segments += 1
                continue

            from_stop, from_letter, to_stop, to_letter = match.groups()
            start = self._platform_map.get(f"{from_stop}-{from_letter}")
            end = self._platform_map.get(f"{to_stop}-{to_letter}")
            if not start or not end:
                logger.warning(f"Could not map segment {segment_key}: missing platform ids")
                self.result.skipped_segments += 1
                continue

            self.result.routes.append(Route(
                id=f"{start}--{end}",
                parent_platform_start=start,
                parent_platform_end=end,
                coordinates=tuple(tuple(point) for point in segment.get("coordinates", [])),
            ))

    def _non_operating_days(self) -> Tuple[NonOperatingDay, ...]:
        days = []
        for day in self.old_schedules["metadata"].get("nonOperatingDays", []):
            iso = date(day["year"], day["month"], day["day"]).isoformat()
            days.append(NonOperatingDay(date=iso, name=day.get("name", "")))
        return tuple(days)

    def _migrate_lines(self) -> None:
        """Generate lines, directions and trips."""
        excluded = tuple(day.date for day in self._non_operating_days())

        for old_line in self.old_schedules["lines"]:
            line_id = line_id_for(old_line["id"])
            self.result.lines.append(Line(id=line_id, name=old_line["name"], color=old_line["color"]))

            for old_direction in old_line.get("directions", []):
                suffix = direction_suffix_for(old_direction["id"], old_direction["name"])
                direction_id = f"{line_id}:{suffix}"
                self.result.directions.append(Direction(
                    id=direction_id,
                    name=old_direction["name"],
                    parent_line=line_id,
                ))

                schedules = old_direction.get("schedules", {})
                for days_group in (WEEKDAY, WEEKEND):
                    for old_trip in schedules.get(days_group, {}).get("trips", []):
                        self.result.trips.append(Trip(
                            id=f"{direction_id}:{days_group}:{old_trip['tripId']}",
                            name=old_trip["tripId"],
                            parent_direction=direction_id,
                            stages=self._migrate_stages(old_trip),
                            days_group=days_group,
                            days_exclude=excluded,
                        ))

    def _migrate_stages(self, old_trip: Dict[str, Any]) -> Tuple[Stage, ...]:
        stages = []
        for old_stop in old_trip.get("stops", []):
            letter = old_stop["platform"]
            platform_id = self._platform_map.get(f"{old_stop['stopId']}-{letter}")

            if not platform_id:
                alternate = "B" if letter == "A" else "A"
                platform_id = self._platform_map.get(f"{old_stop['stopId']}-{alternate}")
                if platform_id:
                    logger.warning(
                        f"Using alternate platform {alternate} for stop {old_stop['stopId']} "
                        f"(requested {letter})"
                    )
                    self.result.platform_fallbacks += 1

            if not platform_id:
                logger.warning(f"Missing platform mapping for {old_stop['stopId']}-{letter}")
                self.result.skipped_stages += 1
                continue

            stages.append(Stage(platform=platform_id, time=old_stop["time"]))

        return tuple(stages)

    def _migrate_schedule(self) -> None:
        """Generate the single schedule version covering every line."""
        metadata = self.old_schedules["metadata"]
        updated_at = metadata.get("lastUpdated", "")

        valid_from = self.valid_from
        if valid_from is None:
            year = updated_at[:4] if updated_at[:4].isdigit() else str(date.today().year)
            valid_from = f"{year}-01-01"

        self.result.schedules.append(Schedule(
            id=f"{valid_from[:4]}-v1",
            updated_at=updated_at,
            valid_from=valid_from,
            lines=tuple(line.id for line in self.result.lines),
            non_operating_days=self._non_operating_days(),
        ))


def migrate_legacy(
    old_schedules: Dict[str, Any],
    old_shapes: Optional[Dict[str, Any]] = None,
    valid_from: Optional[str] = None
) -> MigrationResult:
    """Convert parsed legacy data into relational collections."""
    return LegacyMigrator(old_schedules, old_shapes, valid_from).migrate()


def load_legacy(input_dir: Union[str, Path]) -> Tuple[Dict[str, Any], Optional[Dict[str, Any]]]:
    """
    Read the legacy schedules.json and shapes.json from a directory.

    shapes.json is optional; without it no route segments are generated.
    """
    input_dir = Path(input_dir)
    schedules_file = input_dir / BusScheduleConfig.LEGACY_SCHEDULES_FILE
    shapes_file = input_dir / BusScheduleConfig.LEGACY_SHAPES_FILE

    if not schedules_file.exists():
        raise FileNotFoundError(f"Legacy schedules file not found: {schedules_file}")

    with open(schedules_file, 'r', encoding='utf-8') as f:
        old_schedules = json.load(f)

    old_shapes = None
    if shapes_file.exists():
        with open(shapes_file, 'r', encoding='utf-8') as f:
            old_shapes = json.load(f)
    else:
        logger.warning("shapes.json not found - routes will not have geometry")

    return old_schedules, old_shapes


def _write_json(path: Path, payload: Any) -> None:
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, ensure_ascii=False, indent=2)


def write_migration(result: MigrationResult, output_dir: Union[str, Path]) -> List[Path]:
    """
    Write the migrated collections and the stop id map.

    Existing legacy schedules.json and shapes.json in ``output_dir`` are
    renamed to schedules.old.json and shapes.old.json first.

    Returns:
        Paths of the files written
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    for legacy_name in (BusScheduleConfig.LEGACY_SCHEDULES_FILE, BusScheduleConfig.LEGACY_SHAPES_FILE):
        legacy_path = output_dir / legacy_name
        if legacy_path.exists():
            backup_path = legacy_path.with_suffix(".old.json")
            legacy_path.rename(backup_path)
            logger.info(f"Backed up {legacy_path.name} to {backup_path.name}")

    written = []
    for filename, payload in result.collections().items():
        path = output_dir / filename
        _write_json(path, payload)
        written.append(path)

    id_map_path = output_dir / BusScheduleConfig.STOP_ID_MIGRATION_FILE
    _write_json(id_map_path, {str(old): new for old, new in result.stop_id_map.items()})
    written.append(id_map_path)

    logger.info(f"Wrote {len(written)} files to {output_dir}")
    return written
