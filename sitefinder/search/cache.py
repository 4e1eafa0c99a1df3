"""Time-bounded cache for competitor search results."""

import logging
import time
from typing import Callable, Dict, Optional, Tuple

from sitefinder.core.models import CompetitorSearchResult, GeoPoint

logger = logging.getLogger(__name__)

CacheKey = Tuple[float, float, str, float]

COORDINATE_PRECISION = 4
SWEEP_THRESHOLD = 50


def cache_key(point: GeoPoint, business_id: str, radius_km: float) -> CacheKey:
    return (
        round(point.latitude, COORDINATE_PRECISION),
        round(point.longitude, COORDINATE_PRECISION),
        business_id,
        float(radius_km),
    )


class CompetitorCache:
    """Entries older than ``ttl_seconds`` are treated as absent and dropped on access."""

    def __init__(self, ttl_seconds: float = 30 * 60, clock: Callable[[], float] = time.monotonic) -> None:
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[CacheKey, Tuple[CompetitorSearchResult, float]] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: CacheKey) -> Optional[CompetitorSearchResult]:
        entry = self._entries.get(key)
        if entry is None:
            return None
        result, stored_at = entry
        if self._clock() - stored_at < self.ttl_seconds:
            return result
        self._entries.pop(key, None)
        return None

    def set(self, key: CacheKey, result: CompetitorSearchResult) -> None:
        now = self._clock()
        if len(self._entries) > SWEEP_THRESHOLD:
            self._sweep(now)
        self._entries[key] = (result, now)

    def clear(self) -> None:
        self._entries.clear()

    def _sweep(self, now: float) -> None:
        expired = [k for k, (_, stored_at) in self._entries.items() if now - stored_at >= self.ttl_seconds]
        for key in expired:
            self._entries.pop(key, None)
        if expired:
            logger.debug("Evicted %d expired competitor cache entries", len(expired))
