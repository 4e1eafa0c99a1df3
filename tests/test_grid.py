import pytest

from sitefinder.core.config import ConfigurationError
from sitefinder.core.geo import distance_km
from sitefinder.core.models import GeoPoint
from sitefinder.search import grid

CENTERS = [GeoPoint(30.0444, 31.2357), GeoPoint(-33.8688, 151.2093), GeoPoint(64.1466, -21.9426)]


@pytest.mark.parametrize("strategy", ["rectangular", "hexagonal"])
@pytest.mark.parametrize("center", CENTERS)
@pytest.mark.parametrize("radius", [0.5, 3.0, 12.0])
@pytest.mark.parametrize("density", [1, 2, 5, 8])
def test_points_stay_inside_disc(strategy, center, radius, density):
    points = grid.generate_grid(center, radius, density, strategy)
    assert points
    for point in points:
        assert distance_km(center, point) <= radius + 1e-6


def test_rectangular_cardinality_is_bounded():
    points = grid.generate_grid(GeoPoint(30, 31), 5.0, 6)
    assert 0 < len(points) <= 36


def test_rectangular_density_one_is_center():
    center = GeoPoint(30, 31)
    assert grid.generate_grid(center, 5.0, 1) == [center]


def test_hexagonal_rings_include_center_first():
    center = GeoPoint(30, 31)
    points = grid.generate_grid(center, 5.0, 4, "hexagonal")
    assert points[0] == center
    # 2 rings -> at most 1 + 6 + 12 points
    assert len(points) <= 19


def test_generation_is_deterministic():
    center = GeoPoint(51.5, -0.12)
    assert grid.generate_grid(center, 4.0, 7) == grid.generate_grid(center, 4.0, 7)
    assert grid.generate_grid(center, 4.0, 7, "hexagonal") == grid.generate_grid(center, 4.0, 7, "hexagonal")


@pytest.mark.parametrize("radius", [0, -2.5])
def test_non_positive_radius_yields_center(radius):
    center = GeoPoint(10, 10)
    assert grid.generate_grid(center, radius, 5) == [center]


@pytest.mark.parametrize("density", [0, -3, 2.5, True])
def test_invalid_density_raises(density):
    with pytest.raises(ConfigurationError):
        grid.generate_grid(GeoPoint(0, 0), 5.0, density)


def test_unknown_strategy_raises():
    with pytest.raises(ConfigurationError):
        grid.generate_grid(GeoPoint(0, 0), 5.0, 5, "spiral")
