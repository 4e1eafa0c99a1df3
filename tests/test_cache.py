from sitefinder.core.models import CompetitorSearchResult, GeoPoint
from sitefinder.search.cache import CompetitorCache, cache_key


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_cache_key_rounds_coordinates():
    a = cache_key(GeoPoint(30.000012, 31.000049), "pharmacy", 3)
    b = cache_key(GeoPoint(30.000004, 30.99996), "pharmacy", 3.0)
    assert a == b
    assert a != cache_key(GeoPoint(30.0002, 31.0), "pharmacy", 3)
    assert a != cache_key(GeoPoint(30.0, 31.0), "restaurant", 3)
    assert a != cache_key(GeoPoint(30.0, 31.0), "pharmacy", 5)


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = CompetitorCache(ttl_seconds=60, clock=clock)
    key = cache_key(GeoPoint(1.0, 2.0), "cafe", 3)
    result = CompetitorSearchResult.empty()

    cache.set(key, result)
    clock.now = 59.0
    assert cache.get(key) is result

    clock.now = 60.0
    assert cache.get(key) is None
    assert len(cache) == 0


def test_set_sweeps_expired_entries_once_large():
    clock = FakeClock()
    cache = CompetitorCache(ttl_seconds=10, clock=clock)
    for i in range(60):
        cache.set(cache_key(GeoPoint(float(i), 0.0), "cafe", 3), CompetitorSearchResult.empty())
    assert len(cache) == 60

    clock.now = 20.0
    cache.set(cache_key(GeoPoint(-1.0, 0.0), "cafe", 3), CompetitorSearchResult.empty())
    assert len(cache) == 1


def test_clear():
    cache = CompetitorCache()
    cache.set(cache_key(GeoPoint(1.0, 2.0), "cafe", 3), CompetitorSearchResult.empty())
    cache.clear()
    assert len(cache) == 0
