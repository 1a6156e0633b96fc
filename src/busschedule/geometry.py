"""
Route geometry and map helpers.

Stitches platform-to-platform road segments into polylines for trips,
directions and lines, and provides the coordinate lookups a map view
needs (markers, center point, distances).
"""

import logging
from typing import Dict, List, Optional, Sequence, Tuple

from geopy.distance import geodesic

from .config import BusScheduleConfig
from .context import ScheduleContext
from .departures import get_directions_serving_platform
from .models import Coordinate, Platform, PlatformMarker, Stage, Stop
from .store import ScheduleStore

logger = logging.getLogger(__name__)


def _same_point(a: Coordinate, b: Coordinate) -> bool:
    epsilon = BusScheduleConfig.COORDINATE_EPSILON
    return abs(a[0] - b[0]) < epsilon and abs(a[1] - b[1]) < epsilon


def compose_stage_coordinates(store: ScheduleStore, stages: Sequence[Stage]) -> List[Coordinate]:
    """
    Build a polyline through the platforms of a stage list.

    Between consecutive platforms the authored road segment is used when
    there is one, otherwise a straight line. Stages whose platform does
    not resolve are skipped.

    Args:
        store: Store to resolve platforms and segments from
        stages: Ordered stages of a trip

    Returns:
        List of (lat, lng) points
    """
    platforms = [
        platform for platform in (store.get_platform(stage.platform) for stage in stages)
        if platform is not None
    ]
    if len(platforms) == 1:
        return [platforms[0].coordinates]

    coordinates: List[Coordinate] = []
    for start, end in zip(platforms, platforms[1:]):
        segment = [start.coordinates]
        route = store.get_route_segment(start.id, end.id)
        if route is not None:
            segment.extend(tuple(point) for point in route.coordinates)
        segment.append(end.coordinates)

        # Skip the shared boundary point between consecutive segments
        if coordinates and _same_point(coordinates[-1], segment[0]):
            segment = segment[1:]
        coordinates.extend(segment)

    return coordinates


def get_trip_route_coordinates(
    ctx: ScheduleContext,
    direction_id: str,
    trip_name: str,
    day_type: str
) -> List[Coordinate]:
    """Get the polyline of a single trip, looked up by its name."""
    trip = ctx.active.get_trip_by_name(direction_id, trip_name, day_type)
    if trip is None:
        logger.debug(f"No trip {trip_name} in {direction_id} ({day_type})")
        return []
    return compose_stage_coordinates(ctx.active, trip.stages)


def get_direction_route_coordinates(
    ctx: ScheduleContext,
    direction_id: str,
    day_type: str
) -> List[Coordinate]:
    """Get the polyline of a direction, drawn along its longest trip."""
    trips = ctx.active.get_trips_for_direction(direction_id, day_type)
    if not trips:
        return []
    longest = max(trips, key=lambda t: t.stage_count)
    return compose_stage_coordinates(ctx.active, longest.stages)


def get_line_route_coordinates(
    ctx: ScheduleContext,
    line_id: str,
    day_type: str
) -> Dict[str, List[Coordinate]]:
    """Get one polyline per direction of a line, keyed by direction id."""
    result = {}
    for direction in ctx.active.get_directions_for_line(line_id):
        coordinates = get_direction_route_coordinates(ctx, direction.id, day_type)
        if coordinates:
            result[direction.id] = coordinates
    return result


def get_map_center(ctx: ScheduleContext) -> Coordinate:
    """
    Get the arithmetic mean of all platform coordinates.

    This is a simple centroid, good enough for a single-city network.
    """
    platforms = list(ctx.store.platforms.values())
    if not platforms:
        return BusScheduleConfig.DEFAULT_MAP_CENTER

    lat = sum(p.lat for p in platforms) / len(platforms)
    lng = sum(p.lng for p in platforms) / len(platforms)
    return (lat, lng)


def get_all_platform_markers(ctx: ScheduleContext, day_type: str) -> List[PlatformMarker]:
    """Get one marker per platform served by an active trip on a day type."""
    store = ctx.active
    markers = []
    seen = set()

    for direction in store.directions.values():
        for trip in store.get_trips_for_direction(direction.id, day_type):
            for stage in trip.stages:
                if stage.platform in seen:
                    continue
                seen.add(stage.platform)

                platform = store.get_platform(stage.platform)
                stop = store.get_stop_for_platform(stage.platform)
                if platform is None or stop is None:
                    continue

                markers.append(PlatformMarker(
                    platform_id=platform.id,
                    stop_id=stop.id,
                    stop_name=stop.name,
                    lat=platform.lat,
                    lng=platform.lng,
                    directions=get_directions_serving_platform(ctx, platform.id, day_type),
                ))

    return markers


def resolve_stop_platform(
    store: ScheduleStore,
    stop_id: str,
    platform_id: Optional[str] = None
) -> Optional[Platform]:
    """
    Pick a platform of a stop.

    When ``platform_id`` is not a platform of the stop another platform
    of the same stop is used instead, and the swap is logged.
    """
    platforms = store.get_platforms_for_stop(stop_id)
    if not platforms:
        return None

    if platform_id is None:
        return platforms[0]

    for platform in platforms:
        if platform.id == platform_id:
            return platform

    logger.warning(
        f"Platform {platform_id} not found for stop {stop_id}, using {platforms[0].id} instead"
    )
    return platforms[0]


def calculate_distance_to_stop(
    ctx: ScheduleContext,
    lat: float,
    lng: float,
    stop_id: str,
    platform_id: Optional[str] = None
) -> Optional[float]:
    """
    Calculate the distance from a point to a stop's platform.

    Returns:
        Distance in meters, or None if the stop has no platforms
    """
    platform = resolve_stop_platform(ctx.store, stop_id, platform_id)
    if platform is None:
        return None
    return geodesic((lat, lng), platform.coordinates).meters


def find_nearest_stops(
    ctx: ScheduleContext,
    lat: float,
    lng: float,
    limit: int = 5
) -> List[Tuple[Stop, float]]:
    """
    Find the stops closest to a point.

    The distance to a stop is the distance to its nearest platform.

    Returns:
        (stop, meters) pairs, nearest first
    """
    store = ctx.store
    distances = []

    for stop in store.stops.values():
        platforms = store.get_platforms_for_stop(stop.id)
        if not platforms:
            continue
        meters = min(geodesic((lat, lng), p.coordinates).meters for p in platforms)
        distances.append((stop, meters))

    distances.sort(key=lambda item: item[1])
    return distances[:limit]
