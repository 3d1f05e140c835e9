#!/usr/bin/env python3
"""
Geometric primitives for utility proximity analysis.

This module provides great-circle distances, a local Transverse Mercator
projection for planar segment math, and point-to-segment / point-to-polyline
queries. Projections are always centred on the query point and are never
kept between queries, so results never depend on a map view or zoom level.
Building a pyproj projection dominates the cost of a query, so callers that
measure many lines from one point should build one LocalProjection and pass
it down.
"""

from typing import NamedTuple, Optional, Sequence, Tuple
import logging
import math

from shapely.geometry import LineString, Point
import pyproj

logger = logging.getLogger(__name__)

# WGS84 equatorial radius in meters
EARTH_RADIUS_M = 6378137.0
FEET_PER_METER = 3.28084

# Planar segments shorter than this are treated as a single point
DEGENERATE_SEGMENT_M = 1e-3


class GeoPoint(NamedTuple):
    """Represents a geographic position with latitude and longitude."""

    latitude: float
    longitude: float

    def is_finite(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)


class SegmentProjection(NamedTuple):
    """Closest point on a segment to a query point."""

    point: GeoPoint
    t: float  # Position along the segment, 0 = start, 1 = end
    distance_meters: float


class PolylineDistance(NamedTuple):
    """Closest point on a polyline to a query point."""

    distance_meters: float
    point: Optional[GeoPoint]
    segment_index: int
    t: float


NO_POLYLINE_DISTANCE = PolylineDistance(math.inf, None, -1, 0.0)


def meters_to_feet(meters: float) -> float:
    return meters * FEET_PER_METER


def distance_meters(a: GeoPoint, b: GeoPoint) -> float:
    """
    Calculate Haversine distance between two coordinates.

    Uses Haversine formula for great circle distance along the Earth's surface.

    Args:
        a: First coordinate position
        b: Second coordinate position

    Returns:
        Distance in meters
    """
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = (
        math.sin(dlat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    )
    # Rounding can push h a hair above 1 for antipodal points
    h = min(1.0, h)

    return 2 * EARTH_RADIUS_M * math.asin(math.sqrt(h))


def initial_bearing(a: GeoPoint, b: GeoPoint) -> float:
    """
    Calculate the initial bearing (forward azimuth) from a to b.

    Args:
        a: Start position
        b: End position

    Returns:
        Bearing in degrees, in the range [0, 360)
    """
    lat1, lat2 = math.radians(a.latitude), math.radians(b.latitude)
    dlon = math.radians(b.longitude - a.longitude)

    y = math.sin(dlon) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(
        dlon
    )
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    return 0.0 if bearing >= 360.0 else bearing


def create_transverse_mercator_projection(origin: GeoPoint) -> pyproj.Proj:
    """
    Create a custom transverse mercator projection centered on the given point.

    Args:
        origin: Center of the projection

    Returns:
        pyproj.Proj object for the custom projection
    """
    proj_string = (
        f"+proj=tmerc +lat_0={origin.latitude} +lon_0={origin.longitude} "
        f"+k=1 +x_0=0 +y_0=0 +datum=WGS84 +units=m +no_defs"
    )
    return pyproj.Proj(proj_string)


class LocalProjection:
    """A planar (meters) coordinate system centred on one geographic point."""

    def __init__(self, origin: GeoPoint):
        self.origin = origin
        self._proj = create_transverse_mercator_projection(origin)

    def to_plane(self, point: GeoPoint) -> Tuple[float, float]:
        x, y = self._proj(point.longitude, point.latitude)
        return float(x), float(y)

    def to_geo(self, x: float, y: float) -> GeoPoint:
        lon, lat = self._proj(x, y, inverse=True)
        return GeoPoint(latitude=float(lat), longitude=float(lon))


def project_to_plane(point: GeoPoint, origin: GeoPoint) -> Tuple[float, float]:
    """
    Map a geographic point to planar coordinates around origin.

    Args:
        point: Point to project
        origin: Center of the local projection

    Returns:
        (x, y) in meters, with origin at (0, 0)
    """
    return LocalProjection(origin).to_plane(point)


def closest_point_on_segment(
    point: GeoPoint,
    seg_start: GeoPoint,
    seg_end: GeoPoint,
    projection: Optional[LocalProjection] = None,
) -> SegmentProjection:
    """
    Find the point on a segment closest to the given point.

    The segment is projected onto a plane centred on ``point``. The projection
    scalar t is clamped to [0, 1], the planar foot is unprojected, and its
    great-circle distance to ``point`` is measured.

    Args:
        point: Point to measure from
        seg_start: Start of line segment
        seg_end: End of line segment
        projection: Projection to reuse; one centred on point is created if None

    Returns:
        SegmentProjection with the closest point, t, and distance in meters
    """
    if projection is None:
        projection = LocalProjection(point)

    px, py = projection.to_plane(point)
    ax, ay = projection.to_plane(seg_start)
    bx, by = projection.to_plane(seg_end)

    if math.hypot(bx - ax, by - ay) < DEGENERATE_SEGMENT_M:
        return SegmentProjection(seg_start, 0.0, distance_meters(point, seg_start))

    segment = LineString([(ax, ay), (bx, by)])
    # For a two-point line the normalized projection is the clamped scalar t
    t = min(1.0, max(0.0, segment.project(Point(px, py), normalized=True)))

    if t == 0.0:
        closest = seg_start
    elif t == 1.0:
        closest = seg_end
    else:
        foot = segment.interpolate(t, normalized=True)
        closest = projection.to_geo(foot.x, foot.y)

    return SegmentProjection(closest, t, distance_meters(point, closest))


def min_distance_to_polyline(
    point: GeoPoint,
    vertices: Sequence[GeoPoint],
    projection: Optional[LocalProjection] = None,
) -> PolylineDistance:
    """
    Find the minimum distance from a point to a polyline.

    Iterates over consecutive vertex pairs and keeps the closest segment.

    Args:
        point: Point to measure from
        vertices: Ordered polyline vertices
        projection: Projection centred on point to reuse across lines; one is
            created if None

    Returns:
        PolylineDistance; distance is infinite and point is None when fewer
        than two vertices are given or any coordinate is not finite
    """
    if len(vertices) < 2:
        return NO_POLYLINE_DISTANCE
    if not point.is_finite() or not all(v.is_finite() for v in vertices):
        return NO_POLYLINE_DISTANCE

    if projection is None:
        projection = LocalProjection(point)
    best = NO_POLYLINE_DISTANCE

    for i in range(len(vertices) - 1):
        candidate = closest_point_on_segment(
            point, vertices[i], vertices[i + 1], projection
        )
        if candidate.distance_meters < best.distance_meters:
            best = PolylineDistance(
                candidate.distance_meters, candidate.point, i, candidate.t
            )

    return best
