"""Helpers for building geometry at known distances in tests."""

import math

from utilitrack.geometry import EARTH_RADIUS_M, GeoPoint

METERS_PER_FOOT = 1 / 3.28084


def offset(point: GeoPoint, north_m: float = 0.0, east_m: float = 0.0) -> GeoPoint:
    """Move a point by small distances on the haversine sphere."""
    lat = point.latitude + math.degrees(north_m / EARTH_RADIUS_M)
    lon = point.longitude + math.degrees(
        east_m / (EARTH_RADIUS_M * math.cos(math.radians(point.latitude)))
    )
    return GeoPoint(lat, lon)


def feet(value: float) -> float:
    """Convert feet to meters."""
    return value * METERS_PER_FOOT


def north_south_line(center: GeoPoint, east_m: float, half_length_m: float = 100.0):
    """Two vertices of a north-south line passing east_m east of center."""
    mid = offset(center, east_m=east_m)
    return [offset(mid, north_m=-half_length_m), offset(mid, north_m=half_length_m)]


def gpx_document(points, times=None, hdops=None) -> str:
    """Build a single-track GPX 1.1 document."""
    rows = []
    for i, point in enumerate(points):
        children = ""
        if times is not None:
            children += f"<time>{times[i]}</time>"
        if hdops is not None:
            children += f"<hdop>{hdops[i]}</hdop>"
        rows.append(
            f'<trkpt lat="{point.latitude:.9f}" lon="{point.longitude:.9f}">'
            f"{children}</trkpt>"
        )
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<gpx version="1.1" creator="tests" xmlns="http://www.topografix.com/GPX/1/1">'
        "<trk><trkseg>" + "".join(rows) + "</trkseg></trk></gpx>"
    )


def seconds(count: int):
    """ISO timestamps one second apart."""
    return [f"2024-05-01T12:{i // 60:02d}:{i % 60:02d}Z" for i in range(count)]
