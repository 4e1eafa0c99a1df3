"""Static catalog of business profiles driving competitor search and scoring."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Tuple

from sitefinder.core.config import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_EXPECTED_DENSITY = 0.2


@dataclass(frozen=True, slots=True)
class BusinessProfile:
    id: str
    display_name: str
    search_terms: Tuple[str, ...]
    primary_place_types: Tuple[str, ...]
    broad_place_types: Tuple[str, ...] = ("establishment",)
    excluded_types: FrozenSet[str] = frozenset()
    fallback_search_terms: Tuple[str, ...] = ()
    min_radius_km: float = 0.5
    max_radius_km: float = 10.0
    requires_multi_pass_search: bool = False
    relevance_keywords: Tuple[str, ...] = ()
    strong_exclusions: Tuple[str, ...] = ()
    admission_exclusions: Tuple[str, ...] = ()
    expected_density_per_km2: float = DEFAULT_EXPECTED_DENSITY
    min_quality_threshold: int = 50
    min_opportunity_threshold: int = 40
    default_radius_km: float = 2.0
    description: str = ""


_PHARMACY_KEYWORDS = (
    "pharmacy",
    "drugstore",
    "صيدلية",
    "دواء",
    "medicine",
    "medical",
    "health",
    "drug",
    "pharmaceutical",
    "chemist",
    "apothecary",
)

_PROFILES: Tuple[BusinessProfile, ...] = (
    BusinessProfile(
        id="pharmacy",
        display_name="Pharmacy",
        search_terms=(
            "pharmacy", "drugstore", "cvs", "walgreens", "rite aid", "صيدلية", "دواء", "صيدلة",
            "pharmacie", "apotheke", "farmacia", "chemist", "apothecary", "medical store",
            "pharmacy store", "drug shop", "medicine store", "medical pharmacy",
        ),
        primary_place_types=("pharmacy", "drugstore"),
        broad_place_types=("health", "store", "establishment"),
        excluded_types=frozenset({"hospital", "clinic", "doctor", "dental", "veterinary_care"}),
        fallback_search_terms=(
            "medicine", "medical", "health store", "prescription", "pharmaceutical",
            "صحة", "طب", "علاج", "دوائية", "طبية",
        ),
        min_radius_km=0.3,
        max_radius_km=10.0,
        requires_multi_pass_search=True,
        relevance_keywords=_PHARMACY_KEYWORDS,
        strong_exclusions=(
            "hospital", "clinic", "doctor", "dental", "veterinary_care", "bank",
            "restaurant", "hotel", "school", "church", "mosque", "gas_station",
        ),
        admission_exclusions=(
            "hospital", "clinic", "doctor", "dental", "veterinary_care", "bank",
            "restaurant", "hotel", "school", "church", "mosque",
        ),
        expected_density_per_km2=0.15,
        min_quality_threshold=30,
        min_opportunity_threshold=30,
        default_radius_km=1.5,
        description="Healthcare and medication retail",
    ),
    BusinessProfile(
        id="restaurant",
        display_name="Restaurant",
        search_terms=("restaurant", "dining", "mcdonalds", "burger king"),
        primary_place_types=("restaurant", "food", "meal_takeaway"),
        excluded_types=frozenset({"grocery_or_supermarket", "gas_station", "bar"}),
        fallback_search_terms=("food", "eating", "cuisine"),
        min_radius_km=0.1,
        max_radius_km=3.0,
        expected_density_per_km2=0.5,
        default_radius_km=1.0,
        description="Sit-down and take-away dining",
    ),
    BusinessProfile(
        id="coffee_shop",
        display_name="Coffee Shop",
        search_terms=("coffee shop", "cafe", "starbucks", "dunkin"),
        primary_place_types=("cafe", "bakery"),
        excluded_types=frozenset({"restaurant", "bar", "night_club"}),
        fallback_search_terms=("coffee", "espresso", "cappuccino"),
        min_radius_km=0.2,
        max_radius_km=2.0,
        expected_density_per_km2=0.3,
        default_radius_km=1.0,
        description="Coffee and light bites",
    ),
    BusinessProfile(
        id="gas_station",
        display_name="Gas Station",
        search_terms=("gas station", "shell", "bp", "exxon"),
        primary_place_types=("gas_station",),
        excluded_types=frozenset({"car_repair", "car_dealer"}),
        fallback_search_terms=("fuel", "petrol", "gasoline"),
        min_radius_km=1.0,
        max_radius_km=8.0,
        expected_density_per_km2=0.08,
        default_radius_km=3.0,
        description="Fuel and convenience",
    ),
    BusinessProfile(
        id="grocery_store",
        display_name="Grocery Store",
        search_terms=("grocery store", "supermarket", "walmart", "kroger"),
        primary_place_types=("grocery_or_supermarket", "supermarket"),
        excluded_types=frozenset({"restaurant", "pharmacy", "gas_station"}),
        fallback_search_terms=("groceries", "food store", "market"),
        min_radius_km=0.8,
        max_radius_km=10.0,
        expected_density_per_km2=0.1,
        default_radius_km=2.0,
        description="Food and household essentials retail",
    ),
    BusinessProfile(
        id="supermarket",
        display_name="Supermarket/Grocery Store",
        search_terms=("supermarket", "grocery store", "food store", "market", "convenience store"),
        primary_place_types=("grocery_or_supermarket",),
        broad_place_types=("food", "store"),
        fallback_search_terms=("groceries",),
        expected_density_per_km2=0.1,
        default_radius_km=2.0,
        description="Food and household essentials retail",
    ),
    BusinessProfile(
        id="laundry",
        display_name="Laundry/Dry Cleaning",
        search_terms=("laundry", "dry cleaning", "laundromat", "wash and fold"),
        primary_place_types=("laundry",),
        fallback_search_terms=("laundry service",),
        default_radius_km=1.0,
        description="Clothing cleaning and care services",
    ),
    BusinessProfile(
        id="cafe",
        display_name="Café/Restaurant",
        search_terms=("cafe", "coffee shop", "restaurant", "coffee", "café"),
        primary_place_types=("cafe", "restaurant"),
        broad_place_types=("food", "establishment"),
        fallback_search_terms=("espresso",),
        expected_density_per_km2=0.3,
        default_radius_km=1.0,
        description="Food and beverage service",
    ),
    BusinessProfile(
        id="clothing",
        display_name="Clothing Store",
        search_terms=("clothing store", "fashion store", "apparel", "clothes", "boutique"),
        primary_place_types=("clothing_store",),
        broad_place_types=("store", "establishment"),
        fallback_search_terms=("fashion",),
        default_radius_km=3.0,
        description="Fashion and apparel retail",
    ),
    BusinessProfile(
        id="hardware",
        display_name="Hardware Store",
        search_terms=("hardware store", "home improvement", "tools", "hardware"),
        primary_place_types=("hardware_store",),
        broad_place_types=("store", "establishment"),
        fallback_search_terms=("diy store",),
        default_radius_km=5.0,
        description="Tools and home improvement supplies",
    ),
    BusinessProfile(
        id="beauty",
        display_name="Beauty Salon",
        search_terms=("beauty salon", "hair salon", "spa", "beauty", "salon"),
        primary_place_types=("beauty_salon",),
        broad_place_types=("health", "establishment"),
        fallback_search_terms=("hairdresser",),
        default_radius_km=2.0,
        description="Personal care and beauty services",
    ),
    BusinessProfile(
        id="bank",
        display_name="Bank/Financial Services",
        search_terms=("bank", "credit union", "financial services", "banking"),
        primary_place_types=("bank",),
        broad_place_types=("finance", "establishment"),
        fallback_search_terms=("savings bank",),
        default_radius_km=3.0,
        description="Financial and banking services",
    ),
)

PROFILES: Dict[str, BusinessProfile] = {profile.id: profile for profile in _PROFILES}


def generic_profile(business_id: str) -> BusinessProfile:
    """Single-term profile used for business types missing from the catalog."""
    term = business_id.strip()
    return BusinessProfile(
        id=term,
        display_name=term.replace("_", " ").title(),
        search_terms=(term,),
        primary_place_types=("establishment",),
        broad_place_types=("establishment",),
        fallback_search_terms=(term,),
        min_radius_km=0.5,
        max_radius_km=5.0,
    )


def get_profile(business_id: str) -> BusinessProfile:
    if not business_id or not business_id.strip():
        raise ConfigurationError("business type must be a non-empty string")
    profile = PROFILES.get(business_id.strip())
    if profile is None:
        logger.info("Unknown business type %r; using generic search profile", business_id)
        return generic_profile(business_id)
    return profile
