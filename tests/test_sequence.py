"""
Unit tests for canonical stop sequences and timetable grids.
"""

from busschedule.context import ScheduleContext
from busschedule.models import Stage, Trip
from busschedule.sequence import (
    build_timetable,
    build_trip_position_map,
    get_stop_sequence_for_direction,
    get_times_for_stop_in_direction,
    merge_stop_sequence,
    positions_are_monotonic,
)

from conftest import SATURDAY


def _trip(trip_id, platforms):
    return Trip(
        id=trip_id,
        name=trip_id,
        parent_direction="line1:loop",
        stages=tuple(Stage(p, f"08:{i:02d}") for i, p in enumerate(platforms)),
    )


def test_loop_stop_appears_twice(ctx):
    """Test a stop visited twice by the longest trip keeps both positions."""
    sequence = get_stop_sequence_for_direction(ctx, "line1:loop", "weekday")

    assert [e.platform_id for e in sequence] == [
        "centrum:south",
        "park:south",
        "osiedle:south",
        "szkola:south",
        "centrum:south",
        "dworzec:south",
    ]
    assert [e.position for e in sequence] == list(range(6))
    assert sequence[3].stop_name == "Szkoła"


def test_sequence_depends_on_day_type(ctx):
    """Test only trips of the requested day type are merged."""
    sequence = get_stop_sequence_for_direction(ctx, "line1:loop", "weekend")

    assert [e.stop_id for e in sequence] == ["centrum", "park"]


def test_sequence_is_deterministic(ctx):
    """Test repeated calls give identical sequences."""
    first = get_stop_sequence_for_direction(ctx, "line1:loop", "weekday")
    second = get_stop_sequence_for_direction(ctx, "line1:loop", "weekday")

    assert first == second


def test_unknown_or_inactive_direction_is_empty(ctx):
    """Test directions outside the current version have no sequence."""
    assert get_stop_sequence_for_direction(ctx, "missing", "weekday") == []
    assert get_stop_sequence_for_direction(ctx, "line3:south", "weekday") == []


def test_platform_without_anchor_is_appended(store):
    """Test a platform before any shared stage goes to the end."""
    template = _trip("long", ["centrum:south", "park:south", "szkola:south"])
    other = _trip("short", ["dworzec:south", "park:south"])

    assert merge_stop_sequence(store, [template, other]) == [
        "centrum:south",
        "park:south",
        "szkola:south",
        "dworzec:south",
    ]


def test_consecutive_insertions_keep_order(store):
    """Test several new platforms are inserted one after another."""
    template = _trip("long", [
        "centrum:south", "park:south", "szkola:south", "park:north", "centrum:north",
    ])
    other = _trip("short", ["centrum:south", "osiedle:south", "dworzec:south", "szkola:south"])

    assert merge_stop_sequence(store, [template, other]) == [
        "centrum:south",
        "osiedle:south",
        "dworzec:south",
        "park:south",
        "szkola:south",
        "park:north",
        "centrum:north",
    ]


def test_deviation_after_second_loop_visit(store):
    """Test a stop reached after the second visit of a loop stop is placed after it."""
    template = _trip("loop", [
        "centrum:south", "park:south", "szkola:south", "centrum:south", "dworzec:south",
    ])
    other = _trip("deviation", ["szkola:south", "centrum:south", "osiedle:south"])

    assert merge_stop_sequence(store, [template, other]) == [
        "centrum:south",
        "park:south",
        "szkola:south",
        "centrum:south",
        "osiedle:south",
        "dworzec:south",
    ]


def test_unresolvable_platforms_are_skipped(store):
    """Test stages whose platform has no stop are ignored."""
    trip = _trip("t", ["centrum:south", "ghost:south", "park:south"])

    assert merge_stop_sequence(store, [trip]) == ["centrum:south", "park:south"]
    assert merge_stop_sequence(store, []) == []


def test_position_map_separates_loop_visits(ctx):
    """Test the second visit of a loop stop claims the later position."""
    sequence = get_stop_sequence_for_direction(ctx, "line1:loop", "weekday")
    trip = ctx.active.get_trip("line1:loop:weekday:101")

    position_map = build_trip_position_map(sequence, trip)

    assert position_map == {0: "08:00", 1: "08:10", 3: "08:20", 4: "08:30", 5: "08:40"}
    assert positions_are_monotonic(position_map)


def test_position_map_of_deviating_trip(ctx):
    """Test a trip through a deviation stop maps onto the inserted row."""
    sequence = get_stop_sequence_for_direction(ctx, "line1:loop", "weekday")
    trip = ctx.active.get_trip("line1:loop:weekday:102")

    assert build_trip_position_map(sequence, trip) == {
        0: "09:00",
        1: "09:10",
        2: "09:15",
        3: "09:20",
    }


def test_monotonic_check():
    """Test positions must increase in stage order."""
    assert positions_are_monotonic({})
    assert positions_are_monotonic({0: "08:00", 2: "08:10"})
    assert not positions_are_monotonic({2: "08:00", 0: "08:10"})


def test_build_timetable(ctx):
    """Test the grid has one column per trip and one row per position."""
    timetable = build_timetable(ctx, "line1:loop", "weekday")

    assert timetable.trip_count == 2
    assert [t.name for t in timetable.trips] == ["101", "102"]
    assert len(timetable.stops) == 6
    assert timetable.row(0) == ["08:00", "09:00"]
    assert timetable.row(2) == [None, "09:15"]
    assert timetable.row(4) == ["08:30", None]
    assert timetable.row(5) == ["08:40", None]


def test_timetable_for_weekend(store):
    """Test a weekend grid only holds weekend trips."""
    ctx = ScheduleContext.create(store, SATURDAY)
    timetable = build_timetable(ctx, "line1:loop", "weekend")

    assert [t.name for t in timetable.trips] == ["103"]
    assert timetable.row(0) == ["10:00"]


def test_times_for_stop_in_direction(ctx):
    """Test every visit of a stop contributes a time."""
    assert get_times_for_stop_in_direction(ctx, "centrum", "line1:loop", "weekday") == [
        "08:00", "08:30", "09:00",
    ]
    assert get_times_for_stop_in_direction(ctx, "centrum", "line2:north", "weekday") == [
        "08:15", "09:15",
    ]
