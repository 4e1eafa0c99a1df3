"""Multi-phase competitor discovery around a single query point.

Searches escalate from the profile's primary place types and search terms to
broader types and fallback keywords, and finally to a micro-grid of narrow text
searches, stopping as soon as enough unique competitors have been found. Every
raw hit is validated against the business profile before it is admitted, and
hits are deduplicated by place id (first discovery wins).
"""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Awaitable, Dict, Iterable, List, Optional, Tuple, Union

from sitefinder.core.config import Settings, get_settings
from sitefinder.core.geo import distance_km, offset
from sitefinder.core.models import CompetitorRecord, CompetitorSearchResult, GeoPoint, RawPlace, SearchStats
from sitefinder.core.profiles import BusinessProfile, get_profile
from sitefinder.search.cache import CompetitorCache, cache_key
from sitefinder.vendors.places_directory import PlacesDirectory, TransientDirectoryError

logger = logging.getLogger(__name__)

FALLBACK_THRESHOLD = 3
EXHAUSTIVE_THRESHOLD = 2
EXTENDED_RADIUS_FACTOR = 1.5
MAX_EXTENDED_RADIUS_KM = 15.0
MICRO_GRID_SIZE = 4
MICRO_GRID_PAUSE_SECONDS = 0.05

GRID_SEARCH_METHOD = "grid_search"
STRICT_METHOD_PREFIXES = ("extended_", "fallback:")
UNIVERSAL_EXCLUDES = frozenset({"atm", "bank", "school", "church", "cemetery"})


def _mentions(term: str, name: str, types: Iterable[str]) -> bool:
    return term in types or term.replace("_", " ") in name


def _has_keyword(keywords: Iterable[str], name: str, types: Iterable[str]) -> bool:
    types = list(types)
    return any(k in name or any(k in t for t in types) for k in keywords)


def _keywords(profile: BusinessProfile) -> Tuple[str, ...]:
    return profile.relevance_keywords or tuple(t.lower() for t in profile.search_terms)


def is_valid_competitor(place: RawPlace, method: str, profile: BusinessProfile) -> bool:
    """Decide whether a raw hit counts as a competitor for ``profile``.

    Multi-pass profiles reject anything matching their admission deny-list and accept
    anything matching their allow-list. Hits without a keyword match are only
    accepted when a primary strategy found them; broad and fallback strategies
    must prove relevance.
    """
    if not place.place_id or not place.name:
        return False

    name = place.name.lower()
    types = place.types

    if profile.requires_multi_pass_search:
        exclusions = set(profile.admission_exclusions) | set(profile.excluded_types)
        if any(_mentions(term, name, types) for term in exclusions):
            return False
        if _has_keyword(_keywords(profile), name, types):
            return True
        if method.startswith(STRICT_METHOD_PREFIXES):
            logger.debug("Rejecting %r from %s without a relevance keyword", place.name, method)
            return False
        return True

    if any(_mentions(term, name, types) for term in profile.excluded_types):
        return False
    if any(t in UNIVERSAL_EXCLUDES and t not in profile.primary_place_types for t in types):
        return False
    return True


def filter_relevant(places: List[RawPlace], profile: BusinessProfile) -> List[RawPlace]:
    """Keyword gate applied to broad and fallback results before merging."""
    if not profile.relevance_keywords:
        return places
    relevant = []
    for place in places:
        name = place.name.lower()
        if not _has_keyword(profile.relevance_keywords, name, place.types):
            continue
        if any(_mentions(term, name, place.types) for term in profile.strong_exclusions):
            continue
        relevant.append(place)
    return relevant


def search_quality(competitors: List[CompetitorRecord], total_found: int, stats: SearchStats) -> int:
    if total_found == 0:
        return 0

    score = 40
    if competitors:
        score += 20
    if len(competitors) > 2:
        score += 15
    if len(competitors) > 5:
        score += 10

    rated = sum(1 for c in competitors if c.rating and c.rating > 0)
    if rated:
        score += min(rated * 3, 15)

    methods = {c.discovery_method for c in competitors}
    if len(methods) > 1:
        score += 5
    if len(methods) > 2:
        score += 5

    fallback_ratio = stats.fallback_result_count / max(1, stats.primary_result_count + stats.fallback_result_count)
    if fallback_ratio > 0.7:
        score -= 10

    return min(max(score, 0), 100)


class CompetitorDirectory:
    """Cached, validated competitor lookups on top of a PlacesDirectory."""

    def __init__(
        self,
        directory: PlacesDirectory,
        *,
        cache: Optional[CompetitorCache] = None,
        settings: Optional[Settings] = None,
        query_timeout: Optional[float] = None,
        micro_grid_pause: float = MICRO_GRID_PAUSE_SECONDS,
    ) -> None:
        settings = settings or get_settings()
        self.directory = directory
        self.cache = cache if cache is not None else CompetitorCache(ttl_seconds=settings.cache_ttl_seconds)
        self.query_timeout = query_timeout if query_timeout is not None else settings.query_timeout_seconds
        self.micro_grid_pause = micro_grid_pause

    def clear_cache(self) -> None:
        self.cache.clear()

    async def find_competitors(
        self,
        point: GeoPoint,
        business: Union[str, BusinessProfile],
        radius_km: float,
    ) -> CompetitorSearchResult:
        result, _ = await self.lookup(point, business, radius_km)
        return result

    async def lookup(
        self,
        point: GeoPoint,
        business: Union[str, BusinessProfile],
        radius_km: float,
    ) -> Tuple[CompetitorSearchResult, bool]:
        """Return ``(result, cache_hit)`` for one query point."""
        profile = business if isinstance(business, BusinessProfile) else get_profile(business)
        key = cache_key(point, profile.id, radius_km)

        cached = self.cache.get(key)
        if cached is not None:
            return cached, True

        result = await self._search(point, profile, radius_km)
        self.cache.set(key, result)
        return result, False

    async def _search(self, point: GeoPoint, profile: BusinessProfile, radius_km: float) -> CompetitorSearchResult:
        logger.info(
            "Searching %s competitors near %.5f,%.5f within %skm",
            profile.id,
            point.latitude,
            point.longitude,
            radius_km,
        )
        merged: Dict[str, Tuple[RawPlace, str]] = {}
        stats = SearchStats()

        for place_type in profile.primary_place_types:
            method = f"place_type:{place_type}"
            hits = await self._query(self.directory.search_by_type(point, place_type, radius_km), method)
            self._merge(hits, method, merged, profile)
            self._record(stats, method, len(hits), primary=True)

        for term in profile.search_terms:
            method = f"text:{term}"
            hits = await self._text_query(point, term, radius_km, method)
            self._merge(hits, method, merged, profile)
            self._record(stats, method, len(hits), primary=True)

        primary_count = len(merged)
        logger.debug("Primary phase found %d unique results", primary_count)

        if profile.requires_multi_pass_search and len(merged) < FALLBACK_THRESHOLD:
            extended_radius = min(radius_km * EXTENDED_RADIUS_FACTOR, MAX_EXTENDED_RADIUS_KM)
            for place_type in profile.broad_place_types:
                method = f"extended_{place_type}"
                hits = await self._query(self.directory.search_by_type(point, place_type, extended_radius), method)
                relevant = filter_relevant(hits, profile)
                logger.debug("Extended search by %s: %d -> %d relevant", place_type, len(hits), len(relevant))
                self._merge(relevant, method, merged, profile)
                self._record(stats, method, len(relevant), primary=False)

            for term in profile.fallback_search_terms:
                method = f"fallback:{term}"
                hits = await self._text_query(point, term, radius_km, method)
                relevant = filter_relevant(hits, profile)
                logger.debug("Fallback search %r: %d -> %d relevant", term, len(hits), len(relevant))
                self._merge(relevant, method, merged, profile)
                self._record(stats, method, len(relevant), primary=False)

            if len(merged) < EXHAUSTIVE_THRESHOLD:
                hits = await self._micro_grid_search(point, profile, radius_km, stats)
                self._merge(hits, GRID_SEARCH_METHOD, merged, profile)
                stats.fallback_result_count += len(hits)
                stats.methods_used.add(GRID_SEARCH_METHOD)

        competitors = self._to_records(point, merged.values(), profile.max_radius_km)
        quality = search_quality(competitors, len(merged), stats)
        nearest = competitors[0].distance_km if competitors else float("inf")

        logger.info(
            "Found %d competitors (%d from fallbacks), nearest=%.2fkm quality=%d",
            len(competitors),
            len(merged) - primary_count,
            nearest,
            quality,
        )
        if competitors:
            breakdown = Counter(c.discovery_method for c in competitors)
            logger.debug("Discovery method breakdown: %s", dict(breakdown))

        return CompetitorSearchResult(
            competitors=competitors,
            nearest_distance_km=nearest,
            total_count=len(competitors),
            search_quality_score=quality,
            search_stats=stats,
        )

    async def _query(self, request: Awaitable[List[RawPlace]], method: str) -> List[RawPlace]:
        try:
            return await asyncio.wait_for(request, timeout=self.query_timeout)
        except TransientDirectoryError as exc:
            logger.warning("Directory query %s failed: %s", method, exc)
        except asyncio.TimeoutError:
            logger.warning("Directory query %s timed out after %ss", method, self.query_timeout)
        return []

    async def _text_query(self, point: GeoPoint, query: str, radius_km: float, method: str) -> List[RawPlace]:
        hits = await self._query(self.directory.search_by_text(point, query, radius_km), method)
        # text search only biases towards the location, so trim to the radius
        return [h for h in hits if distance_km(point, h.location) <= radius_km]

    async def _micro_grid_search(
        self,
        point: GeoPoint,
        profile: BusinessProfile,
        radius_km: float,
        stats: SearchStats,
    ) -> List[RawPlace]:
        term = profile.search_terms[0] if profile.search_terms else profile.id
        step_km = radius_km / MICRO_GRID_SIZE
        hits: List[RawPlace] = []
        for i in range(MICRO_GRID_SIZE):
            for j in range(MICRO_GRID_SIZE):
                sub_point = offset(
                    point,
                    north_km=(i - MICRO_GRID_SIZE / 2 + 0.5) * step_km,
                    east_km=(j - MICRO_GRID_SIZE / 2 + 0.5) * step_km,
                )
                hits.extend(await self._text_query(sub_point, term, step_km, GRID_SEARCH_METHOD))
                stats.total_searches_issued += 1
                if self.micro_grid_pause:
                    await asyncio.sleep(self.micro_grid_pause)
        logger.debug("Micro-grid search found %d raw results", len(hits))
        return hits

    @staticmethod
    def _record(stats: SearchStats, method: str, count: int, *, primary: bool) -> None:
        if primary:
            stats.primary_result_count += count
        else:
            stats.fallback_result_count += count
        stats.total_searches_issued += 1
        stats.methods_used.add(method)

    @staticmethod
    def _merge(
        hits: List[RawPlace],
        method: str,
        merged: Dict[str, Tuple[RawPlace, str]],
        profile: BusinessProfile,
    ) -> None:
        for hit in hits:
            if hit.place_id in merged:
                continue
            if is_valid_competitor(hit, method, profile):
                merged[hit.place_id] = (hit, method)

    @staticmethod
    def _to_records(
        point: GeoPoint,
        merged: Iterable[Tuple[RawPlace, str]],
        max_distance_km: float,
    ) -> List[CompetitorRecord]:
        records = []
        for place, method in merged:
            distance = distance_km(point, place.location)
            if distance > max_distance_km:
                continue
            records.append(
                CompetitorRecord(
                    external_id=place.place_id,
                    name=place.name,
                    coordinates=place.location,
                    distance_km=distance,
                    discovery_method=method,
                    rating=place.rating,
                    vicinity=place.vicinity,
                )
            )
        records.sort(key=lambda r: r.distance_km)
        return records
