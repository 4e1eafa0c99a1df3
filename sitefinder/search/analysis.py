"""Single-location success probability analysis."""

import logging
from typing import List, Union

from sitefinder.core.models import GeoPoint, LocationAnalysis
from sitefinder.core.profiles import BusinessProfile, get_profile
from sitefinder.search.competitors import CompetitorDirectory
from sitefinder.search.scoring import (
    DEMOGRAPHIC_PLACEHOLDER,
    LOCATION_PLACEHOLDER,
    competition_score,
    round_half_up,
    success_probability,
)

logger = logging.getLogger(__name__)


async def analyze_location(
    point: GeoPoint,
    business: Union[str, BusinessProfile],
    radius_km: float,
    competitors: CompetitorDirectory,
) -> LocationAnalysis:
    profile = business if isinstance(business, BusinessProfile) else get_profile(business)
    logger.info(
        "Analysing %s at %.5f,%.5f within %skm", profile.id, point.latitude, point.longitude, radius_km
    )

    result = await competitors.find_competitors(point, profile, radius_km)
    total = result.total_count
    nearest = result.nearest_distance_km if result.competitors else radius_km

    competition = competition_score(nearest, total)
    probability = success_probability(competition)

    recommendations: List[str] = []
    risks: List[str] = []

    if total == 0:
        recommendations.append("No direct competitors found in the area - great opportunity!")
    elif total <= 2:
        recommendations.append("Low competition environment - good market opportunity")
    else:
        risks.append(f"High competition: {total} similar businesses in the area")

    if nearest < 0.5:
        risks.append("Very close competitor - consider differentiation strategy")
    elif nearest > radius_km * 0.8:
        recommendations.append("Good distance from competitors - less direct competition")

    if probability >= 80:
        recommendations.append("High success probability - excellent location choice")
    elif probability < 50:
        risks.append("Low success probability - consider alternative locations")

    logger.info("Success probability %d%% (competition=%s, competitors=%d)", probability, competition, total)

    return LocationAnalysis(
        success_probability=probability,
        competition_score=round_half_up(competition),
        demographic_score=DEMOGRAPHIC_PLACEHOLDER,
        location_score=LOCATION_PLACEHOLDER,
        total_competitors=total,
        nearest_competitor_distance_km=nearest,
        recommendations=recommendations,
        risks=risks,
        competitors=result.competitors,
    )
