"""
Command-line interface for busschedule.

Provides a Click-based CLI over the schedule query engine, the legacy
data migration and the KML export. Query results are printed as JSON.
"""

import functools
import json
import logging
import sys
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import BusScheduleConfig, resolve_data_dir
from .context import ScheduleContext
from .data_loader import load_store
from .departures import get_next_departures, get_next_departures_for_direction
from .exceptions import BusScheduleError
from .geometry import find_nearest_stops
from .kml_export import KMLExporter
from .migration import load_legacy, migrate_legacy, write_migration
from .models import DAY_TYPES
from .sequence import build_timetable

logger = logging.getLogger(__name__)

DATETIME_FORMATS = ['%Y-%m-%d %H:%M', '%Y-%m-%dT%H:%M', '%Y-%m-%d']


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        stream=sys.stderr
    )


def echo_json(payload) -> None:
    click.echo(json.dumps(payload, ensure_ascii=False, indent=2))


def handle_errors(command):
    """Report expected failures on stderr and exit with status 1."""
    @functools.wraps(command)
    def wrapper(*args, **kwargs):
        try:
            return command(*args, **kwargs)
        except (FileNotFoundError, BusScheduleError) as e:
            logger.error(f"{type(e).__name__}: {e}")
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        except Exception as e:
            logger.exception("Unexpected error")
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
    return wrapper


def _context(obj) -> ScheduleContext:
    store = load_store(obj['data_dir'])
    if obj['at'] is None:
        return ScheduleContext.for_now(store)
    return ScheduleContext.create(store, obj['at'])


@click.group()
@click.option(
    '--data-dir',
    type=click.Path(file_okay=False, path_type=Path),
    envvar=BusScheduleConfig.DATA_DIR_ENV,
    help=f'Directory with the schedule JSON files (env: {BusScheduleConfig.DATA_DIR_ENV}, default: ./data)'
)
@click.option(
    '--at', 'at',
    type=click.DateTime(formats=DATETIME_FORMATS),
    help='Reference date/time instead of now, e.g. "2025-03-14 08:15"'
)
@click.option(
    '--verbose', '-v',
    is_flag=True,
    help='Enable verbose logging'
)
@click.version_option(version=__version__, prog_name='busschedule')
@click.pass_context
def main(click_ctx: click.Context, data_dir: Optional[Path], at: Optional[datetime], verbose: bool) -> None:
    """
    Query municipal bus timetables.

    Examples:

      Next departures from a stop:
        busschedule departures kazimierza-wielkiego

      Timetable grid of a direction on weekends:
        busschedule timetable line1:south --day-type weekend

      Convert legacy schedules.json + shapes.json:
        busschedule migrate ./legacy ./data
    """
    setup_logging(verbose)
    click_ctx.ensure_object(dict)
    click_ctx.obj['data_dir'] = resolve_data_dir(data_dir)
    click_ctx.obj['at'] = at
    click_ctx.obj['now'] = at or datetime.now()


@main.command()
@click.pass_obj
@handle_errors
def status(obj) -> None:
    """Show the schedule version and service status for the date."""
    ctx = _context(obj)
    service = ctx.service_status()
    next_day = ctx.next_operating_day() if not service.is_operating else None

    echo_json({
        'date': ctx.reference_date.isoformat(),
        'schedule': ctx.current_schedule.id if ctx.current_schedule else None,
        'is_operating': service.is_operating,
        'day_type': service.day_type,
        'reason': service.reason,
        'next_operating_day': next_day.isoformat() if next_day else None,
    })


@main.command()
@click.argument('stop_id')
@click.option('--limit', '-n', type=int, default=BusScheduleConfig.DEFAULT_DEPARTURE_LIMIT,
              help=f'Maximum number of departures (default: {BusScheduleConfig.DEFAULT_DEPARTURE_LIMIT})')
@click.option('--direction', '-d', 'direction_id', help='Only departures in this direction')
@click.pass_obj
@handle_errors
def departures(obj, stop_id: str, limit: int, direction_id: Optional[str]) -> None:
    """Show the next departures from STOP_ID."""
    ctx = _context(obj)
    if ctx.store.get_stop(stop_id) is None:
        logger.warning(f"Unknown stop {stop_id}")

    if direction_id:
        result = get_next_departures_for_direction(ctx, stop_id, direction_id, limit, obj['now'])
    else:
        result = get_next_departures(ctx, stop_id, limit, obj['now'])

    echo_json([asdict(d) for d in result])


@main.command()
@click.argument('direction_id')
@click.option('--day-type', type=click.Choice(DAY_TYPES), help='Day type (default: that of the date)')
@click.pass_obj
@handle_errors
def timetable(obj, direction_id: str, day_type: Optional[str]) -> None:
    """Show the timetable grid of DIRECTION_ID."""
    ctx = _context(obj)
    day_type = day_type or ctx.service_status().day_type or DAY_TYPES[0]
    grid = build_timetable(ctx, direction_id, day_type)

    echo_json({
        'direction_id': grid.direction_id,
        'day_type': grid.day_type,
        'trips': [trip.name for trip in grid.trips],
        'rows': [
            {
                'stop_id': entry.stop_id,
                'stop_name': entry.stop_name,
                'platform_id': entry.platform_id,
                'times': grid.row(entry.position),
            }
            for entry in grid.stops
        ],
    })


@main.command()
@click.option('--near', nargs=2, type=float, metavar='LAT LNG', help='Sort stops by distance from a point')
@click.option('--limit', '-n', type=int, default=5, help='Number of stops with --near (default: 5)')
@click.pass_obj
@handle_errors
def stops(obj, near, limit: int) -> None:
    """List stops, or the stops nearest to a point."""
    ctx = _context(obj)
    if near:
        lat, lng = near
        echo_json([
            {'id': stop.id, 'name': stop.name, 'distance_m': round(meters)}
            for stop, meters in find_nearest_stops(ctx, lat, lng, limit)
        ])
        return

    echo_json([
        {
            'id': stop.id,
            'name': stop.name,
            'platforms': [p.id for p in ctx.store.get_platforms_for_stop(stop.id)],
        }
        for stop in ctx.store.stops.values()
    ])


@main.command()
@click.pass_obj
@handle_errors
def validate(obj) -> None:
    """Check the data files for dangling references and unordered trips."""
    store = load_store(obj['data_dir'])
    problems = store.validate()
    for problem in problems:
        click.echo(problem)

    if problems:
        click.echo(f"\n{len(problems)} problem(s) found", err=True)
        sys.exit(1)
    click.echo("No problems found")


@main.command()
@click.argument('input_dir', type=click.Path(exists=True, file_okay=False, path_type=Path))
@click.argument('output_dir', type=click.Path(file_okay=False, path_type=Path))
@click.option('--valid-from', help='valid_from of the generated schedule version (YYYY-MM-DD)')
@handle_errors
def migrate(input_dir: Path, output_dir: Path, valid_from: Optional[str]) -> None:
    """
    Convert legacy schedules.json + shapes.json in INPUT_DIR into the
    relational files in OUTPUT_DIR.
    """
    old_schedules, old_shapes = load_legacy(input_dir)
    result = migrate_legacy(old_schedules, old_shapes, valid_from)
    written = write_migration(result, output_dir)

    click.echo(f"Migrated {len(result.stops)} stops, {len(result.platforms)} platforms, "
               f"{len(result.trips)} trips into {output_dir}")
    if result.skipped_stages or result.skipped_segments:
        click.echo(f"Warning: skipped {result.skipped_stages} stages and "
                   f"{result.skipped_segments} segments", err=True)
    for path in written:
        logger.debug(f"Wrote {path}")


@main.command('export-kml')
@click.argument('output_dir', type=click.Path(file_okay=False, path_type=Path))
@click.option('--day-type', type=click.Choice(DAY_TYPES), default=DAY_TYPES[0],
              help='Day type whose trips define the geometry (default: weekday)')
@click.option('--split-by', type=click.Choice(['line', 'all'], case_sensitive=False), default='line',
              help='"line" creates one file per line, "all" a single file (default: line)')
@click.option('--include-platforms/--no-platforms', default=True,
              help='Include platform markers (default: yes)')
@click.option('--line-width', type=int, default=4, help='Line width in pixels (default: 4)')
@click.pass_obj
@handle_errors
def export_kml(obj, output_dir: Path, day_type: str, split_by: str,
               include_platforms: bool, line_width: int) -> None:
    """Export the active lines as KML files into OUTPUT_DIR."""
    ctx = _context(obj)
    exporter = KMLExporter(line_width=line_width, include_platforms=include_platforms)
    output_files = exporter.export_batch(
        ctx, day_type, output_dir, split_by_line=(split_by.lower() == 'line')
    )
    click.echo(f"Generated {len(output_files)} KML file(s) in {output_dir}")


if __name__ == '__main__':
    main()
