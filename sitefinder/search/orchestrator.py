"""Grid search for the most promising sites around a center point."""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from typing import Callable, List, Optional, Sequence, Tuple

from sitefinder.core.config import ConfigurationError, Settings, get_settings
from sitefinder.core.models import CompetitorSearchResult, GeoPoint, RunStats, ScoredLocation, SearchRunResult
from sitefinder.core.profiles import BusinessProfile
from sitefinder.search.competitors import CompetitorDirectory
from sitefinder.search.grid import generate_grid
from sitefinder.search.recommendations import average, build_recommendations, finite_average
from sitefinder.search.scoring import round_half_up, score_location

logger = logging.getLogger(__name__)

TOP_LOCATIONS = 20
MIN_DIRECTORY_RADIUS_KM = 3.0
DISTANCE_TOLERANCE = 0.8

ProgressCallback = Callable[[int, int, int], None]
DiscoveryCallback = Callable[[ScoredLocation], None]


class RunFailure(RuntimeError):
    """Raised when a search run fails outside an individual directory query."""


class SearchState(str, enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


def admission_failure(result: CompetitorSearchResult, profile: BusinessProfile) -> Optional[str]:
    """Return why a point fails admission, or None when it passes."""
    min_distance = profile.min_radius_km * DISTANCE_TOLERANCE
    if result.nearest_distance_km < min_distance:
        return f"too close to competitors ({result.nearest_distance_km:.2f}km < {min_distance:.1f}km)"
    if result.search_quality_score < profile.min_quality_threshold:
        return f"low search quality ({result.search_quality_score}% < {profile.min_quality_threshold}%)"
    return None


class OptimalLocationSearch:
    """Runs one grid search at a time and reports discoveries as they happen.

    ``stop()`` may be called from any thread; it is honoured between points.
    """

    def __init__(
        self,
        competitors: CompetitorDirectory,
        *,
        on_progress: Optional[ProgressCallback] = None,
        on_location_found: Optional[DiscoveryCallback] = None,
        settings: Optional[Settings] = None,
        grid_strategy: Optional[str] = None,
        batch_size: Optional[int] = None,
        batch_delay: Optional[float] = None,
    ) -> None:
        settings = settings or get_settings()
        self.competitors = competitors
        self.on_progress = on_progress
        self.on_location_found = on_location_found
        self.grid_strategy = grid_strategy or settings.grid_strategy
        self.batch_size = batch_size if batch_size is not None else settings.batch_size
        self.batch_delay = batch_delay if batch_delay is not None else settings.batch_delay_seconds
        if self.batch_size < 1:
            raise ConfigurationError("batch size must be at least 1")
        self.state = SearchState.IDLE
        self._stop_requested = False

    def stop(self) -> None:
        if self.state is SearchState.RUNNING and not self._stop_requested:
            self._stop_requested = True
            logger.info("Optimal location search stop requested")

    async def start(
        self,
        center: GeoPoint,
        profile: BusinessProfile,
        analysis_radius_km: float,
        target_radius_km: float,
        density: int,
    ) -> SearchRunResult:
        if self.state is SearchState.RUNNING:
            raise RunFailure("a search is already running on this instance")

        self._stop_requested = False
        self.state = SearchState.RUNNING
        try:
            return await self._run(center, profile, analysis_radius_km, target_radius_km, density)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.exception("Optimal location search failed")
            raise RunFailure("optimal location search failed") from exc
        finally:
            # reset unless _run reached COMPLETED or CANCELLED
            if self.state is SearchState.RUNNING:
                self.state = SearchState.IDLE

    async def _run(
        self,
        center: GeoPoint,
        profile: BusinessProfile,
        analysis_radius_km: float,
        target_radius_km: float,
        density: int,
    ) -> SearchRunResult:
        started = time.monotonic()
        points = generate_grid(center, analysis_radius_km, density, self.grid_strategy)
        directory_radius = max(analysis_radius_km, MIN_DIRECTORY_RADIUS_KM)
        stats = RunStats(points_requested=len(points))
        pool: List[ScoredLocation] = []

        logger.info(
            "Starting optimal location search: business=%s points=%d analysis_radius=%skm target_radius=%skm",
            profile.id,
            len(points),
            analysis_radius_km,
            target_radius_km,
        )

        for batch_start in range(0, len(points), self.batch_size):
            if self._stop_requested:
                break
            batch = points[batch_start:batch_start + self.batch_size]
            lookups = await asyncio.gather(
                *(self.competitors.lookup(point, profile, directory_radius) for point in batch)
            )
            self._merge_batch(batch, lookups, profile, analysis_radius_km, stats, pool)

            if self._stop_requested:
                break
            if self.batch_delay and batch_start + self.batch_size < len(points):
                await asyncio.sleep(self.batch_delay)

        cancelled = self._stop_requested
        if cancelled:
            logger.info("Search stopped by user request after %d/%d points", stats.points_analyzed, len(points))

        result = self._finalize(pool, profile, analysis_radius_km, target_radius_km, stats, started, cancelled)
        self.state = SearchState.CANCELLED if cancelled else SearchState.COMPLETED
        return result

    def _merge_batch(
        self,
        batch: Sequence[GeoPoint],
        lookups: Sequence[Tuple[CompetitorSearchResult, bool]],
        profile: BusinessProfile,
        analysis_radius_km: float,
        stats: RunStats,
        pool: List[ScoredLocation],
    ) -> None:
        # every lookup in the batch ran, even if a stop discards its point below
        for _, cache_hit in lookups:
            if cache_hit:
                stats.cache_hit_count += 1
            else:
                stats.api_call_count += 1

        # gather() preserves submission order, so results line up with their points
        for point, (result, _) in zip(batch, lookups):
            if self._stop_requested:
                break
            stats.primary_result_count += result.search_stats.primary_result_count
            stats.fallback_result_count += result.search_stats.fallback_result_count

            accepted = self._evaluate(point, result, profile, analysis_radius_km)
            if accepted is not None:
                pool.append(accepted)
            stats.points_analyzed += 1

            if self.on_progress is not None:
                percent = round_half_up(stats.points_analyzed / stats.points_requested * 100)
                self.on_progress(percent, len(pool), stats.points_analyzed)
            if accepted is not None and self.on_location_found is not None:
                self.on_location_found(accepted)

    def _evaluate(
        self,
        point: GeoPoint,
        result: CompetitorSearchResult,
        profile: BusinessProfile,
        analysis_radius_km: float,
    ) -> Optional[ScoredLocation]:
        reason = admission_failure(result, profile)
        if reason is not None:
            logger.debug("Point %.5f,%.5f failed admission: %s", point.latitude, point.longitude, reason)
            return None

        location = score_location(point, result, analysis_radius_km, profile.expected_density_per_km2)
        if location.opportunity_score < profile.min_opportunity_threshold:
            logger.debug(
                "Point %.5f,%.5f below opportunity threshold: %d%% < %d%%",
                point.latitude,
                point.longitude,
                location.opportunity_score,
                profile.min_opportunity_threshold,
            )
            return None

        logger.info("Accepted location with %d%% opportunity score", location.opportunity_score)
        return location

    @staticmethod
    def _finalize(
        pool: List[ScoredLocation],
        profile: BusinessProfile,
        analysis_radius_km: float,
        target_radius_km: float,
        stats: RunStats,
        started: float,
        cancelled: bool,
    ) -> SearchRunResult:
        ranked = sorted(pool, key=lambda loc: loc.opportunity_score, reverse=True)[:TOP_LOCATIONS]

        stats.locations_found = len(pool)
        raw_total = stats.primary_result_count + stats.fallback_result_count
        stats.search_efficiency = round_half_up(stats.primary_result_count / raw_total * 100) if raw_total else 0
        stats.elapsed_ms = int((time.monotonic() - started) * 1000)

        logger.info(
            "Search %s: %d opportunities from %d/%d points (api=%d cache=%d) in %dms",
            "cancelled" if cancelled else "complete",
            len(pool),
            stats.points_analyzed,
            stats.points_requested,
            stats.api_call_count,
            stats.cache_hit_count,
            stats.elapsed_ms,
        )

        return SearchRunResult(
            ranked_locations=ranked,
            all_scored_points=list(pool),
            analysis_radius_km=analysis_radius_km,
            target_radius_km=target_radius_km,
            total_competitors_found=sum(loc.competitor_count_in_radius for loc in ranked),
            average_competitor_distance_km=(
                finite_average([loc.nearest_competitor_distance_km for loc in ranked]) if ranked else 0.0
            ),
            average_market_saturation=average([loc.market_saturation_score for loc in ranked]),
            recommendations=build_recommendations(ranked, pool, profile),
            run_stats=stats,
            status=SearchState.CANCELLED.value if cancelled else SearchState.COMPLETED.value,
        )
