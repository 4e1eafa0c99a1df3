import sys
from pathlib import Path

import pytest

# Ensure the `sitefinder` package is importable when running pytest from the repo root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sitefinder.core.config import Settings  # noqa: E402
from sitefinder.core.models import GeoPoint, RawPlace  # noqa: E402
from sitefinder.vendors.places_directory import PlacesDirectory  # noqa: E402


def make_place(place_id, lat, lng, name=None, types=("pharmacy",), rating=None):
    return RawPlace(
        place_id=place_id,
        name=name or f"Place {place_id}",
        location=GeoPoint(latitude=lat, longitude=lng),
        types=tuple(types),
        rating=rating,
    )


class FakeDirectory(PlacesDirectory):
    """In-memory directory; values are lists of RawPlace, exceptions, or callables(point)."""

    def __init__(self, by_type=None, by_text=None):
        self.by_type = by_type or {}
        self.by_text = by_text or {}
        self.calls = []

    def _resolve(self, table, key, point):
        value = table.get(key, [])
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(point)
        return list(value)

    async def search_by_type(self, point, place_type, radius_km):
        self.calls.append(("type", place_type, radius_km, point))
        return self._resolve(self.by_type, place_type, point)

    async def search_by_text(self, point, query, radius_km):
        self.calls.append(("text", query, radius_km, point))
        return self._resolve(self.by_text, query, point)


@pytest.fixture
def settings():
    return Settings(
        google_api_key="test-key",
        query_timeout_seconds=1.0,
        batch_size=5,
        batch_delay_seconds=0,
    )
