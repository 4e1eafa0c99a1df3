"""Utilities for transforming Google Places responses and search results."""

import logging
import math
from dataclasses import asdict
from typing import Any, Dict, Iterable, List, Optional

from sitefinder.core.models import (
    CompetitorRecord,
    GeoPoint,
    LocationAnalysis,
    RawPlace,
    ScoredLocation,
    SearchRunResult,
    SearchStats,
)

logger = logging.getLogger(__name__)


def _safe_float(value: Any) -> Optional[float]:
    try:
        if value is None:
            return None
        number = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(number):
        return None
    return number


def extract_coordinates(result: Dict[str, Any]) -> Optional[GeoPoint]:
    location = (result.get("geometry") or {}).get("location") or {}
    lat = _safe_float(location.get("lat"))
    lng = _safe_float(location.get("lng"))
    if lat is None or lng is None:
        return None
    return GeoPoint(latitude=lat, longitude=lng)


def to_raw_place(result: Dict[str, Any]) -> Optional[RawPlace]:
    """Normalize one Places result; returns None for partially-shaped records."""
    place_id = result.get("place_id")
    name = (result.get("name") or "").strip()
    if not place_id or not name:
        logger.debug("Skipping result without place_id/name: %s", result)
        return None

    coordinates = extract_coordinates(result)
    if coordinates is None:
        logger.debug("Skipping %s without usable coordinates", place_id)
        return None

    rating = _safe_float(result.get("rating"))
    return RawPlace(
        place_id=str(place_id),
        name=name,
        location=coordinates,
        types=tuple(str(t).lower() for t in result.get("types") or []),
        rating=rating,
        vicinity=result.get("vicinity") or result.get("formatted_address"),
    )


def to_raw_places(results: Iterable[Dict[str, Any]]) -> List[RawPlace]:
    places = []
    for result in results or []:
        if not isinstance(result, dict):
            continue
        place = to_raw_place(result)
        if place is not None:
            places.append(place)
    return places


def _finite_or_none(value: float) -> Optional[float]:
    return value if math.isfinite(value) else None


def _stats_to_dict(stats: SearchStats) -> Dict[str, Any]:
    return {
        "primary_result_count": stats.primary_result_count,
        "fallback_result_count": stats.fallback_result_count,
        "total_searches_issued": stats.total_searches_issued,
        "methods_used": sorted(stats.methods_used),
    }


def competitor_to_dict(record: CompetitorRecord) -> Dict[str, Any]:
    row = asdict(record)
    row["distance_km"] = round(record.distance_km, 3)
    return row


def location_to_dict(location: ScoredLocation, include_competitors: bool = True) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "latitude": location.point.latitude,
        "longitude": location.point.longitude,
        "nearest_competitor_distance_km": _finite_or_none(location.nearest_competitor_distance_km),
        "coverage_score": location.coverage_score,
        "competitor_count_in_radius": location.competitor_count_in_radius,
        "market_saturation_score": location.market_saturation_score,
        "opportunity_score": location.opportunity_score,
        "search_quality_score": location.search_quality_score,
        "search_stats": _stats_to_dict(location.search_stats),
    }
    if include_competitors:
        row["competitors"] = [competitor_to_dict(c) for c in location.competitors]
    return row


def to_run_payload(result: SearchRunResult, top: Optional[int] = None) -> Dict[str, Any]:
    """Convert a run result into a JSON-safe dictionary (infinite distances become null)."""
    ranked = result.ranked_locations if top is None else result.ranked_locations[:top]
    return {
        "status": result.status,
        "analysis_radius_km": result.analysis_radius_km,
        "target_radius_km": result.target_radius_km,
        "total_competitors_found": result.total_competitors_found,
        "average_competitor_distance_km": _finite_or_none(result.average_competitor_distance_km),
        "average_market_saturation": result.average_market_saturation,
        "recommendations": list(result.recommendations),
        "run_stats": asdict(result.run_stats),
        "ranked_locations": [location_to_dict(loc) for loc in ranked],
        "all_scored_points": [location_to_dict(loc, include_competitors=False) for loc in result.all_scored_points],
    }


def to_analysis_payload(analysis: LocationAnalysis) -> Dict[str, Any]:
    return {
        "success_probability": analysis.success_probability,
        "competition_score": analysis.competition_score,
        "demographic_score": analysis.demographic_score,
        "location_score": analysis.location_score,
        "total_competitors": analysis.total_competitors,
        "nearest_competitor_distance_km": _finite_or_none(analysis.nearest_competitor_distance_km),
        "recommendations": list(analysis.recommendations),
        "risks": list(analysis.risks),
        "competitors": [competitor_to_dict(c) for c in analysis.competitors],
    }
