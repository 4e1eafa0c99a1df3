"""Candidate point generation around a search center."""

import logging
import math
from typing import List

from sitefinder.core.config import GRID_STRATEGIES, ConfigurationError
from sitefinder.core.geo import distance_km, km_to_lat_degrees, km_to_lng_degrees
from sitefinder.core.models import GeoPoint

logger = logging.getLogger(__name__)

# absorbs rounding for points generated exactly on the disc boundary
_BOUNDARY_TOLERANCE_KM = 1e-9


def _within_disc(center: GeoPoint, radius_km: float, points: List[GeoPoint]) -> List[GeoPoint]:
    return [p for p in points if distance_km(center, p) <= radius_km + _BOUNDARY_TOLERANCE_KM]


def rectangular_points(center: GeoPoint, radius_km: float, density: int) -> List[GeoPoint]:
    """density x density lattice over the bounding box, clipped to the disc."""
    lat_range = km_to_lat_degrees(radius_km)
    lng_range = km_to_lng_degrees(radius_km, center.latitude)

    points = []
    for i in range(density):
        for j in range(density):
            lat = center.latitude + (i - density / 2 + 0.5) * 2 * lat_range / density
            lng = center.longitude + (j - density / 2 + 0.5) * 2 * lng_range / density
            points.append(GeoPoint(latitude=lat, longitude=lng))
    return _within_disc(center, radius_km, points)


def hexagonal_points(center: GeoPoint, radius_km: float, density: int) -> List[GeoPoint]:
    """Center plus ceil(density/2) rings of 6*ring points, clipped to the disc."""
    rings = math.ceil(density / 2)
    points = [center]
    for ring in range(1, rings + 1):
        ring_radius = radius_km / rings * ring
        points_in_ring = ring * 6
        for i in range(points_in_ring):
            angle = 2 * math.pi * i / points_in_ring
            points.append(
                GeoPoint(
                    latitude=center.latitude + km_to_lat_degrees(ring_radius * math.cos(angle)),
                    longitude=center.longitude + km_to_lng_degrees(ring_radius * math.sin(angle), center.latitude),
                )
            )
    return _within_disc(center, radius_km, points)


_STRATEGIES = {
    "rectangular": rectangular_points,
    "hexagonal": hexagonal_points,
}


def generate_grid(
    center: GeoPoint,
    radius_km: float,
    density: int,
    strategy: str = "rectangular",
) -> List[GeoPoint]:
    """Return candidate points inside the disc of ``radius_km`` around ``center``."""
    if isinstance(density, bool) or not isinstance(density, int) or density <= 0:
        raise ConfigurationError(f"grid density must be a positive integer, got {density!r}")
    if strategy not in _STRATEGIES:
        raise ConfigurationError(f"unknown grid strategy {strategy!r}; expected one of {', '.join(GRID_STRATEGIES)}")
    if radius_km <= 0:
        return [center]

    points = _STRATEGIES[strategy](center, radius_km, density)
    logger.debug("Generated %d %s grid points (radius=%.2fkm density=%d)", len(points), strategy, radius_km, density)
    return points
