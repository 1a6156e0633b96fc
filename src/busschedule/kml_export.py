"""
KML export of line geometry.

Writes the composed direction polylines and served platforms of the
active lines to KML files for GIS tools such as Google Earth.
"""

import logging
from pathlib import Path
from typing import List, Optional

import simplekml

from .context import ScheduleContext
from .geometry import get_all_platform_markers, get_direction_route_coordinates
from .models import Line

logger = logging.getLogger(__name__)


class KMLExporter:
    """
    Exporter for KML files from the active schedule.

    Each direction of a line becomes a LineString colored like the line;
    served platforms become placemarks.
    """

    def __init__(
        self,
        line_width: int = 4,
        include_platforms: bool = True,
        altitude_mode: str = 'clampToGround'
    ):
        """
        Initialize KML exporter.

        Args:
            line_width: Width of direction lines in pixels
            include_platforms: Whether to include platform markers in output
            altitude_mode: KML altitude mode (clampToGround, relativeToGround, absolute)
        """
        self.line_width = line_width
        self.include_platforms = include_platforms
        self.altitude_mode = altitude_mode

    def export_line(
        self,
        ctx: ScheduleContext,
        line_id: str,
        day_type: str,
        output_path: Path
    ) -> Optional[Path]:
        """
        Write a KML file for a single active line.

        Returns:
            The path written, or None if the line is not active
        """
        line = ctx.active.get_line(line_id)
        if line is None:
            logger.warning(f"Line {line_id} is not in the current schedule")
            return None

        logger.info(f"Generating KML for line {line.name}")

        kml = simplekml.Kml()
        kml.document.name = f"Line {line.name}"
        self._add_line_to_container(kml, ctx, line, day_type)

        if self.include_platforms:
            self._add_platforms(kml.newfolder(name="Platforms"), ctx, day_type, {line.id})

        return self._save(kml, output_path)

    def export_all(
        self,
        ctx: ScheduleContext,
        day_type: str,
        output_path: Path
    ) -> Path:
        """Write a single KML file with every active line."""
        logger.info(f"Generating combined KML for {len(ctx.active.lines)} lines")

        kml = simplekml.Kml()
        kml.document.name = "All Lines"

        for line in ctx.active.lines.values():
            line_folder = kml.newfolder(name=f"Line {line.name}")
            self._add_line_to_container(line_folder, ctx, line, day_type)

        if self.include_platforms:
            self._add_platforms(kml.newfolder(name="Platforms"), ctx, day_type, None)

        return self._save(kml, output_path)

    def _add_line_to_container(self, container, ctx: ScheduleContext, line: Line, day_type: str) -> None:
        """Add one LineString per direction of a line."""
        for direction in ctx.active.get_directions_for_line(line.id):
            coordinates = get_direction_route_coordinates(ctx, direction.id, day_type)
            if len(coordinates) < 2:
                logger.warning(f"Direction {direction.id} has no geometry for {day_type}")
                continue

            linestring = container.newlinestring(name=f"{line.name} - {direction.name}")
            # KML expects lon, lat
            linestring.coords = [(lng, lat) for lat, lng in coordinates]
            linestring.style.linestyle.color = line.kml_color
            linestring.style.linestyle.width = self.line_width
            linestring.altitudemode = self.altitude_mode

            logger.debug(f"Added direction {direction.id} with {len(coordinates)} points")

    def _add_platforms(self, folder, ctx: ScheduleContext, day_type: str, line_ids) -> None:
        """Add placemarks for served platforms, optionally limited to some lines."""
        shared_style = simplekml.Style()
        shared_style.iconstyle.scale = 0.8
        shared_style.iconstyle.icon.href = (
            "http://maps.google.com/mapfiles/kml/shapes/bus.png"
        )

        count = 0
        for marker in get_all_platform_markers(ctx, day_type):
            if line_ids is not None and not any(d.line_id in line_ids for d in marker.directions):
                continue

            point = folder.newpoint(name=marker.stop_name)
            point.coords = [(marker.lng, marker.lat)]
            description_parts = [f"Platform: {marker.platform_id}"]
            description_parts.extend(
                f"{d.line_name} -> {d.direction_name}" for d in marker.directions
            )
            point.description = "\n".join(description_parts)
            point.style = shared_style
            count += 1

        logger.debug(f"Added {count} platforms")

    @staticmethod
    def _save(kml: simplekml.Kml, output_path: Path) -> Path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        kml.save(str(output_path))
        logger.info(f"Saved KML to {output_path}")
        return output_path

    def export_batch(
        self,
        ctx: ScheduleContext,
        day_type: str,
        output_dir: Path,
        split_by_line: bool = True
    ) -> List[Path]:
        """
        Generate KML files for every active line.

        Args:
            ctx: Query context
            day_type: Day type whose trips define the geometry
            output_dir: Directory where KML files will be saved
            split_by_line: If True, one file per line; otherwise a single file

        Returns:
            List of paths to generated KML files
        """
        output_dir = Path(output_dir)
        if not split_by_line:
            return [self.export_all(ctx, day_type, output_dir / "all_lines.kml")]

        output_files = []
        for line in ctx.active.lines.values():
            path = self.export_line(ctx, line.id, day_type, output_dir / f"{line.safe_filename}.kml")
            if path is not None:
                output_files.append(path)
        return output_files
