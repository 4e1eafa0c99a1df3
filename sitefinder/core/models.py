"""Core data models shared by the competitor search and scoring pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Set, Tuple


@dataclass(frozen=True, slots=True)
class GeoPoint:
    latitude: float
    longitude: float


@dataclass(frozen=True, slots=True)
class RawPlace:
    """Validated hit returned by a places directory query."""

    place_id: str
    name: str
    location: GeoPoint
    types: Tuple[str, ...] = ()
    rating: Optional[float] = None
    vicinity: Optional[str] = None


@dataclass(slots=True)
class CompetitorRecord:
    external_id: str
    name: str
    coordinates: GeoPoint
    distance_km: float
    discovery_method: str
    rating: Optional[float] = None
    vicinity: Optional[str] = None


@dataclass(slots=True)
class SearchStats:
    primary_result_count: int = 0
    fallback_result_count: int = 0
    total_searches_issued: int = 0
    methods_used: Set[str] = field(default_factory=set)


@dataclass(slots=True)
class CompetitorSearchResult:
    """Deduplicated competitors around one query point, nearest first."""

    competitors: List[CompetitorRecord]
    nearest_distance_km: float
    total_count: int
    search_quality_score: int
    search_stats: SearchStats

    @classmethod
    def empty(cls) -> "CompetitorSearchResult":
        return cls(
            competitors=[],
            nearest_distance_km=math.inf,
            total_count=0,
            search_quality_score=0,
            search_stats=SearchStats(),
        )


@dataclass(slots=True)
class ScoredLocation:
    point: GeoPoint
    nearest_competitor_distance_km: float
    coverage_score: int
    competitor_count_in_radius: int
    market_saturation_score: int
    opportunity_score: int
    competitors: List[CompetitorRecord] = field(default_factory=list, repr=False)
    search_quality_score: int = 0
    search_stats: SearchStats = field(default_factory=SearchStats, repr=False)


@dataclass(slots=True)
class RunStats:
    points_requested: int = 0
    points_analyzed: int = 0
    api_call_count: int = 0
    cache_hit_count: int = 0
    elapsed_ms: int = 0
    locations_found: int = 0
    primary_result_count: int = 0
    fallback_result_count: int = 0
    search_efficiency: int = 0


@dataclass(frozen=True, slots=True)
class SearchRunResult:
    ranked_locations: List[ScoredLocation]
    all_scored_points: List[ScoredLocation]
    analysis_radius_km: float
    target_radius_km: float
    total_competitors_found: int
    average_competitor_distance_km: float
    average_market_saturation: float
    recommendations: List[str]
    run_stats: RunStats
    status: str = "completed"


@dataclass(frozen=True, slots=True)
class LocationAnalysis:
    """Outcome of the single-point success probability analysis."""

    success_probability: int
    competition_score: int
    demographic_score: int
    location_score: int
    total_competitors: int
    nearest_competitor_distance_km: float
    recommendations: List[str]
    risks: List[str]
    competitors: List[CompetitorRecord] = field(default_factory=list, repr=False)
