"""Opportunity and success-probability scoring."""

import math
from dataclasses import dataclass

from sitefinder.core.models import CompetitorSearchResult, GeoPoint, ScoredLocation

DISTANCE_SATURATION_KM = 3.0
COVERAGE_DIVISOR = 1.5

DEMOGRAPHIC_PLACEHOLDER = 70
LOCATION_PLACEHOLDER = 80


def round_half_up(value: float) -> int:
    # epsilon keeps x.5 results of float weight products from rounding down
    return int(math.floor(value + 0.5 + 1e-9))


def clamp(value: float, low: float = 0.0, high: float = 100.0) -> float:
    return min(max(value, low), high)


@dataclass(frozen=True)
class OpportunityBreakdown:
    coverage: float
    market_saturation: float
    distance: float
    opportunity: int


def opportunity_breakdown(
    nearest_distance_km: float,
    competitors_in_radius: int,
    search_quality_score: float,
    analysis_radius_km: float,
    expected_density_per_km2: float,
) -> OpportunityBreakdown:
    """Blend distance, saturation, search quality and coverage into a 0-100 score.

    Weights are 0.4 distance, 0.3 saturation complement, 0.2 search quality and
    0.1 coverage. Sub-scores are kept unrounded here; callers round at output.
    """
    coverage = clamp(nearest_distance_km / (analysis_radius_km / COVERAGE_DIVISOR) * 100)

    expected_competitors = math.pi * analysis_radius_km**2 * expected_density_per_km2
    if expected_competitors > 0:
        saturation = clamp(competitors_in_radius / expected_competitors * 100)
    else:
        saturation = 100.0 if competitors_in_radius else 0.0

    distance = clamp(nearest_distance_km / DISTANCE_SATURATION_KM * 100)
    opportunity = round_half_up(
        0.4 * distance + 0.3 * (100 - saturation) + 0.2 * clamp(search_quality_score) + 0.1 * coverage
    )
    return OpportunityBreakdown(
        coverage=coverage,
        market_saturation=saturation,
        distance=distance,
        opportunity=int(clamp(opportunity)),
    )


def score_location(
    point: GeoPoint,
    result: CompetitorSearchResult,
    analysis_radius_km: float,
    expected_density_per_km2: float,
) -> ScoredLocation:
    breakdown = opportunity_breakdown(
        result.nearest_distance_km,
        result.total_count,
        result.search_quality_score,
        analysis_radius_km,
        expected_density_per_km2,
    )
    return ScoredLocation(
        point=point,
        nearest_competitor_distance_km=result.nearest_distance_km,
        coverage_score=round_half_up(breakdown.coverage),
        competitor_count_in_radius=result.total_count,
        market_saturation_score=round_half_up(breakdown.market_saturation),
        opportunity_score=breakdown.opportunity,
        competitors=result.competitors,
        search_quality_score=result.search_quality_score,
        search_stats=result.search_stats,
    )


def competition_score(nearest_distance_km: float, total_competitors: int) -> float:
    if total_competitors <= 0:
        return 100.0
    proximity_penalty = max(0.0, 50 - nearest_distance_km * 10)
    density_penalty = min(40, total_competitors * 8)
    return max(0.0, 100 - proximity_penalty - density_penalty)


def success_probability(
    competition: float,
    demographic: float = DEMOGRAPHIC_PLACEHOLDER,
    location: float = LOCATION_PLACEHOLDER,
) -> int:
    return round_half_up(0.5 * competition + 0.3 * demographic + 0.2 * location)
