"""
Shared fixtures: a small network with a loop line, a two-stop line with
per-date overrides and a line outside every current schedule version.
"""

import json
from datetime import date

import pytest

from busschedule.context import ScheduleContext
from busschedule.models import (
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
from busschedule.store import ScheduleStore

# 2025-03-13 is a Thursday, 2025-03-14 a Friday, 2025-03-15 a Saturday
THURSDAY = date(2025, 3, 13)
FRIDAY = date(2025, 3, 14)
SATURDAY = date(2025, 3, 15)
LABOUR_DAY = date(2025, 5, 1)


def _trip(trip_id, name, direction, stages, **kwargs):
    return Trip(
        id=trip_id,
        name=name,
        parent_direction=direction,
        stages=tuple(Stage(platform=p, time=t) for p, t in stages),
        **kwargs
    )


def build_store() -> ScheduleStore:
    stops = [
        Stop("centrum", "Centrum"),
        Stop("park", "Park"),
        Stop("szkola", "Szkoła"),
        Stop("dworzec", "Dworzec"),
        Stop("osiedle", "Osiedle"),
    ]
    platforms = [
        Platform("centrum:south", "centrum", 52.0, 21.0),
        Platform("centrum:north", "centrum", 52.0002, 21.0002),
        Platform("park:south", "park", 52.002, 21.002),
        Platform("park:north", "park", 52.0022, 21.0022),
        Platform("szkola:south", "szkola", 52.004, 21.004),
        Platform("dworzec:south", "dworzec", 52.006, 21.006),
        Platform("osiedle:south", "osiedle", 52.003, 21.0035),
    ]
    routes = [
        Route(
            "centrum:south--park:south",
            "centrum:south",
            "park:south",
            ((52.001, 21.001),),
        ),
    ]
    lines = [
        Line("line1", "1", "#FF0000"),
        Line("line2", "2", "#0000FF"),
        Line("line3", "3", "#00FF00"),
    ]
    directions = [
        Direction("line1:loop", "Dworzec przez Centrum", "line1"),
        Direction("line2:north", "Centrum", "line2"),
        Direction("line3:south", "Centrum", "line3"),
    ]
    trips = [
        # Loop trip: Centrum is visited twice
        _trip("line1:loop:weekday:101", "101", "line1:loop", [
            ("centrum:south", "08:00"),
            ("park:south", "08:10"),
            ("szkola:south", "08:20"),
            ("centrum:south", "08:30"),
            ("dworzec:south", "08:40"),
        ], days_group="weekday"),
        # Short variant with a deviation through Osiedle
        _trip("line1:loop:weekday:102", "102", "line1:loop", [
            ("centrum:south", "09:00"),
            ("park:south", "09:10"),
            ("osiedle:south", "09:15"),
            ("szkola:south", "09:20"),
        ], days_group="weekday"),
        _trip("line1:loop:weekend:103", "103", "line1:loop", [
            ("centrum:south", "10:00"),
            ("park:south", "10:10"),
        ], days_group="weekend"),
        _trip("line2:north:weekday:201", "201", "line2:north", [
            ("park:north", "08:05"),
            ("centrum:north", "08:15"),
        ], days_group="weekday"),
        _trip("line2:north:weekday:202", "202", "line2:north", [
            ("park:north", "09:05"),
            ("centrum:north", "09:15"),
        ], days_group="weekday", days_exclude=("2025-03-14",)),
        _trip("line2:north:weekend:203", "203", "line2:north", [
            ("centrum:north", "12:00"),
        ], days_group="weekend", days_include=("2025-03-14",)),
        _trip("line3:south:weekday:301", "301", "line3:south", [
            ("centrum:south", "08:20"),
        ], days_group="weekday"),
    ]
    schedules = [
        Schedule("2024-v1", "2023-12-01", "2024-01-01", ("line1",)),
        Schedule(
            "2025-v1", "2024-12-01", "2025-01-01", ("line1", "line2"),
            non_operating_days=(NonOperatingDay("2025-05-01", "Labour Day"),),
        ),
        Schedule("2099-v1", "2098-12-01", "2099-01-01", ("line3",)),
    ]

    return ScheduleStore(
        stops=stops,
        platforms=platforms,
        routes=routes,
        lines=lines,
        directions=directions,
        trips=trips,
        schedules=schedules,
    )


def write_store(store: ScheduleStore, data_dir) -> None:
    """Write a store as the seven relational JSON files."""
    collections = {
        "stops.json": store.stops,
        "platforms.json": store.platforms,
        "routes.json": store.routes,
        "lines.json": store.lines,
        "directions.json": store.directions,
        "trips.json": store.trips,
        "schedules.json": store.schedules,
    }
    data_dir.mkdir(parents=True, exist_ok=True)
    for filename, entities in collections.items():
        payload = [entity.to_dict() for entity in entities.values()]
        (data_dir / filename).write_text(json.dumps(payload, ensure_ascii=False), encoding="utf-8")


@pytest.fixture
def store():
    return build_store()


@pytest.fixture
def ctx(store):
    """Context for a Thursday under the 2025 schedule version."""
    return ScheduleContext.create(store, THURSDAY)


@pytest.fixture
def data_dir(tmp_path, store):
    path = tmp_path / "data"
    write_store(store, path)
    return path
