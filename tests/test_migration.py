"""
Unit tests for the legacy data migration.
"""

import json

import pytest

from busschedule.data_loader import load_store
from busschedule.exceptions import MigrationError
from busschedule.migration import (
    direction_suffix_for,
    load_legacy,
    migrate_legacy,
    slugify,
    write_migration,
)


def _legacy_schedules():
    return {
        "metadata": {
            "lastUpdated": "2025-02-10",
            "nonOperatingDays": [
                {"year": 2025, "month": 12, "day": 25, "name": "Christmas Day"},
            ],
        },
        "stops": [
            {
                "id": 1,
                "name": "Łódź Główna",
                "platforms": {
                    "A": {"lat": 51.75, "lng": 19.45},
                    "B": {"lat": 51.7502, "lng": 19.4502, "description": "opposite"},
                },
            },
            {
                "id": 2,
                "name": "Mrówka",
                "platforms": {"A": {"lat": 51.76, "lng": 19.46}},
            },
        ],
        "lines": [
            {
                "id": 1,
                "name": "1",
                "color": "#FF0000",
                "directions": [
                    {
                        "id": "line1-to-mrowka",
                        "name": "Mrówka",
                        "schedules": {
                            "weekday": {
                                "trips": [
                                    {
                                        "tripId": "101",
                                        "stops": [
                                            {"stopId": 1, "platform": "A", "time": "08:00"},
                                            {"stopId": 2, "platform": "A", "time": "08:10"},
                                        ],
                                    },
                                ],
                            },
                        },
                    },
                ],
            },
        ],
    }


def _legacy_shapes():
    return {
        "segments": {
            "comment_1": "ignored",
            "1-A_2-A": {"coordinates": [[51.755, 19.455]]},
            "not-a-key": {"coordinates": []},
        },
    }


def test_slugify():
    """Test diacritics are stripped and separators collapsed."""
    assert slugify("Łódź Główna") == "lodz-glowna"
    assert slugify("Kazimierza Wielkiego") == "kazimierza-wielkiego"
    assert slugify("  Plac  3 Maja / Dworzec ") == "plac-3-maja-dworzec"


def test_direction_suffix():
    """Test legacy direction ids map onto south/north."""
    assert direction_suffix_for("line1-to-mrowka", "Mrówka") == "south"
    assert direction_suffix_for("line1-from-domki", "Centrum") == "north"
    assert direction_suffix_for("line7-circle", "Pętla Żeromskiego") == "petla-zeromskiego"


def test_migration_counts():
    """Test stops, platforms and trips generated from a small legacy file."""
    result = migrate_legacy(_legacy_schedules(), _legacy_shapes())

    assert [s.id for s in result.stops] == ["lodz-glowna", "mrowka"]
    assert [p.id for p in result.platforms] == ["lodz-glowna:south", "lodz-glowna:north", "mrowka:south"]
    assert len(result.trips) == 1
    assert result.skipped_stages == 0
    assert result.stop_id_map == {1: "lodz-glowna", 2: "mrowka"}


def test_migrated_entities():
    """Test generated ids and cross references."""
    result = migrate_legacy(_legacy_schedules(), _legacy_shapes())

    assert result.lines[0].id == "line1"
    assert result.directions[0].id == "line1:south"
    trip = result.trips[0]
    assert trip.id == "line1:south:weekday:101"
    assert trip.days_group == "weekday"
    assert trip.days_exclude == ("2025-12-25",)
    assert [s.platform for s in trip.stages] == ["lodz-glowna:south", "mrowka:south"]
    assert result.platforms[1].description == "opposite"


def test_migrated_routes():
    """Test valid segment keys become routes and the rest are counted."""
    result = migrate_legacy(_legacy_schedules(), _legacy_shapes())

    assert len(result.routes) == 1
    route = result.routes[0]
    assert route.id == "lodz-glowna:south--mrowka:south"
    assert route.coordinates == ((51.755, 19.455),)
    assert result.skipped_segments == 1


def test_generated_schedule_version():
    """Test one version covering every line is generated."""
    result = migrate_legacy(_legacy_schedules())
    schedule = result.schedules[0]

    assert schedule.id == "2025-v1"
    assert schedule.valid_from == "2025-01-01"
    assert schedule.lines == ("line1",)
    assert schedule.non_operating_table == {"2025-12-25": "Christmas Day"}

    override = migrate_legacy(_legacy_schedules(), valid_from="2026-03-01").schedules[0]
    assert override.id == "2026-v1"
    assert override.valid_from == "2026-03-01"


def test_platform_fallback(caplog):
    """Test a missing platform letter falls back to the other platform."""
    legacy = _legacy_schedules()
    trip = legacy["lines"][0]["directions"][0]["schedules"]["weekday"]["trips"][0]
    trip["stops"][1]["platform"] = "B"

    result = migrate_legacy(legacy)

    assert result.trips[0].stages[1].platform == "mrowka:south"
    assert result.platform_fallbacks == 1
    assert "alternate platform A" in caplog.text


def test_unknown_stop_is_skipped():
    """Test stages referencing unknown stops are dropped and counted."""
    legacy = _legacy_schedules()
    trip = legacy["lines"][0]["directions"][0]["schedules"]["weekday"]["trips"][0]
    trip["stops"].append({"stopId": 99, "platform": "A", "time": "08:20"})

    result = migrate_legacy(legacy)

    assert len(result.trips[0].stages) == 2
    assert result.skipped_stages == 1


def test_missing_section():
    """Test legacy data without stops cannot be migrated."""
    legacy = _legacy_schedules()
    del legacy["stops"]

    with pytest.raises(MigrationError, match="stops"):
        migrate_legacy(legacy)


def test_write_and_load(tmp_path):
    """Test the written files load and the legacy files are backed up."""
    (tmp_path / "schedules.json").write_text(json.dumps(_legacy_schedules()), encoding="utf-8")
    (tmp_path / "shapes.json").write_text(json.dumps(_legacy_shapes()), encoding="utf-8")

    old_schedules, old_shapes = load_legacy(tmp_path)
    write_migration(migrate_legacy(old_schedules, old_shapes), tmp_path)

    assert (tmp_path / "schedules.old.json").exists()
    assert (tmp_path / "shapes.old.json").exists()
    id_map = json.loads((tmp_path / "stop-id-migration.json").read_text(encoding="utf-8"))
    assert id_map == {"1": "lodz-glowna", "2": "mrowka"}

    store = load_store(tmp_path)
    assert set(store.stops) == {"lodz-glowna", "mrowka"}
    assert store.validate() == []


def test_load_legacy_without_shapes(tmp_path, caplog):
    """Test shapes.json is optional."""
    (tmp_path / "schedules.json").write_text(json.dumps(_legacy_schedules()), encoding="utf-8")

    old_schedules, old_shapes = load_legacy(tmp_path)

    assert old_shapes is None
    assert "shapes.json not found" in caplog.text


def test_load_legacy_missing_schedules(tmp_path):
    """Test the legacy schedules file is required."""
    with pytest.raises(FileNotFoundError):
        load_legacy(tmp_path)
