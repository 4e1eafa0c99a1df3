"""Human-readable guidance derived from a ranked search run."""

import math
from typing import List, Sequence

from sitefinder.core.profiles import BusinessProfile
from sitefinder.core.models import ScoredLocation

EXCELLENT_OPPORTUNITY = 70
GOOD_OPPORTUNITY = 50
HIGH_QUALITY_SEARCH = 80


def average(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def finite_average(values: Sequence[float]) -> float:
    """Mean of the finite values; inf when no value is finite."""
    finite = [v for v in values if math.isfinite(v)]
    return average(finite) if finite else math.inf


def _nearest_phrase(distance_km: float) -> str:
    if math.isinf(distance_km):
        return "no competitor in range"
    return f"nearest competitor {distance_km:.1f}km away"


def build_recommendations(
    ranked: List[ScoredLocation],
    pool: List[ScoredLocation],
    profile: BusinessProfile,
) -> List[str]:
    if not pool:
        return [
            f"No viable locations found for {profile.display_name}. "
            "Consider expanding search radius or exploring different areas.",
            "The search used multiple strategies but found insufficient opportunities in this region.",
        ]

    recommendations: List[str] = []
    best = ranked[0]
    avg_distance = finite_average([loc.nearest_competitor_distance_km for loc in ranked])
    avg_opportunity = average([loc.opportunity_score for loc in ranked])

    if avg_opportunity >= EXCELLENT_OPPORTUNITY:
        recommendations.append(
            f"Excellent market opportunities identified! Average opportunity score of "
            f"{avg_opportunity:.1f}% indicates strong potential."
        )
    elif avg_opportunity >= GOOD_OPPORTUNITY:
        recommendations.append(f"Good market potential found with {avg_opportunity:.1f}% average opportunity score.")
    else:
        recommendations.append(
            f"Market opportunities are limited ({avg_opportunity:.1f}% avg). "
            "Consider alternative locations or business strategies."
        )

    recommendations.append(
        f"Top opportunity: {best.opportunity_score}% score at coordinates "
        f"{best.point.latitude:.4f}, {best.point.longitude:.4f} with "
        f"{_nearest_phrase(best.nearest_competitor_distance_km)}."
    )

    if math.isinf(avg_distance):
        recommendations.append(
            "Excellent market spacing - no competitors found within range of the top locations."
        )
    elif avg_distance > 2.0:
        recommendations.append(
            f"Excellent market spacing - average competitor distance of {avg_distance:.1f}km "
            "suggests underserved market areas."
        )
    elif avg_distance > 1.0:
        recommendations.append(f"Good market spacing with {avg_distance:.1f}km average competitor distance.")
    else:
        recommendations.append(
            f"Tight market spacing ({avg_distance:.1f}km avg). "
            "Success will depend on differentiation and service quality."
        )

    if len(ranked) >= 15:
        recommendations.append(
            f"Abundant opportunities found ({len(pool)} total). Focus on top 5-8 locations for detailed site evaluation."
        )
    elif len(ranked) >= 8:
        recommendations.append(
            "Multiple viable options identified. Recommend visiting top 3-5 locations to assess foot traffic "
            "and accessibility."
        )
    elif len(ranked) >= 3:
        recommendations.append(
            f"Limited but viable options found. Thorough site visits recommended for all {len(ranked)} locations."
        )
    else:
        recommendations.append(
            f"Very few opportunities in this area ({len(ranked)}). "
            "Consider expanding search radius or exploring adjacent markets."
        )

    # sparse-market profiles rely on broad searches, so flag the data quality
    if profile.requires_multi_pass_search:
        if any(loc.search_quality_score >= HIGH_QUALITY_SEARCH for loc in ranked):
            recommendations.append(
                f"High-quality {profile.display_name.lower()} data found. Consider proximity to complementary "
                "facilities and residential density."
            )
        else:
            recommendations.append(
                f"{profile.display_name} search quality varied. Recommend ground-truth validation of competitor data."
            )
        if avg_distance < 1.5:
            recommendations.append(
                f"{profile.display_name} market appears competitive. Focus on specialized services, "
                "extended hours, or unique product offerings."
            )

    fallback_heavy = sum(
        1 for loc in ranked if loc.search_stats.fallback_result_count > loc.search_stats.primary_result_count
    )
    if fallback_heavy > len(ranked) * 0.3:
        recommendations.append(
            "Enhanced search methods were crucial for finding opportunities. "
            "This may indicate an underserved or emerging market."
        )

    return recommendations
