"""Great-circle helpers shared by the grid generator and competitor search."""

import math

from sitefinder.core.models import GeoPoint

EARTH_RADIUS_KM = 6371.0
KM_PER_DEGREE = EARTH_RADIUS_KM * math.pi / 180


def to_radians(degrees: float) -> float:
    return degrees * (math.pi / 180)


def to_degrees(radians: float) -> float:
    return radians * (180 / math.pi)


def distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance between two points in kilometres."""
    d_lat = to_radians(b.latitude - a.latitude)
    d_lng = to_radians(b.longitude - a.longitude)
    h = (
        math.sin(d_lat / 2) ** 2
        + math.cos(to_radians(a.latitude)) * math.cos(to_radians(b.latitude)) * math.sin(d_lng / 2) ** 2
    )
    h = min(1.0, h)
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))


def km_to_lat_degrees(km: float) -> float:
    return km / KM_PER_DEGREE


def km_to_lng_degrees(km: float, at_latitude: float) -> float:
    # cos(lat) collapses at the poles
    return km / (KM_PER_DEGREE * max(0.000001, math.cos(to_radians(at_latitude))))


def offset(point: GeoPoint, north_km: float, east_km: float) -> GeoPoint:
    """Shift a point by a local north/east displacement."""
    return GeoPoint(
        latitude=point.latitude + km_to_lat_degrees(north_km),
        longitude=point.longitude + km_to_lng_degrees(east_km, point.latitude),
    )
