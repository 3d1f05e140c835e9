"""
Snapping new service lines onto existing mains.
"""

from typing import Callable, Iterable, NamedTuple, Optional
import logging

from .geometry import GeoPoint, LocalProjection, min_distance_to_polyline
from .utility import LineClass, UtilityKind, UtilityLine

logger = logging.getLogger(__name__)


class Connection(NamedTuple):
    """Nearest main line and the point on it to connect to."""

    line: UtilityLine
    snap_point: GeoPoint
    distance_meters: float
    segment_index: int


class ConnectionFinder:
    """Stateless nearest-main query over the current utility snapshot."""

    def __init__(self, lines_provider: Callable[[], Iterable[UtilityLine]]):
        self.lines_provider = lines_provider

    def find_nearby_main(
        self,
        point: GeoPoint,
        kind: UtilityKind,
        max_distance_meters: float = 20.0,
    ) -> Optional[Connection]:
        """
        Find the nearest main line of the same kind within a radius.

        Args:
            point: Point being drawn, usually the last vertex of a service line
            kind: Utility kind of the line being drawn
            max_distance_meters: Search radius, inclusive

        Returns:
            Connection for the nearest qualifying main, or None
        """
        kind = UtilityKind(kind)
        if not point.is_finite():
            return None
        best: Optional[Connection] = None
        projection: Optional[LocalProjection] = None

        for line in self.lines_provider():
            if line.line_class != LineClass.MAIN or line.kind != kind:
                continue
            if not line.is_measurable():
                continue

            if projection is None:
                projection = LocalProjection(point)
            result = min_distance_to_polyline(point, line.vertices, projection)
            if result.point is None or result.distance_meters > max_distance_meters:
                continue
            if best is None or result.distance_meters < best.distance_meters:
                best = Connection(
                    line, result.point, result.distance_meters, result.segment_index
                )

        if best is not None:
            logger.debug(
                f"Nearest {kind.value} main is {best.line.utility_id} "
                f"at {best.distance_meters:.1f} m"
            )
        return best
