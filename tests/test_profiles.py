import pytest

from sitefinder.core.config import ConfigurationError
from sitefinder.core import profiles


def test_known_profile_is_returned():
    pharmacy = profiles.get_profile("pharmacy")
    assert pharmacy.requires_multi_pass_search is True
    assert pharmacy.min_radius_km == 0.3
    assert pharmacy.expected_density_per_km2 == 0.15
    assert pharmacy.min_quality_threshold == 30
    assert pharmacy.min_opportunity_threshold == 30


def test_dense_market_profiles_use_default_thresholds():
    restaurant = profiles.get_profile("restaurant")
    assert restaurant.requires_multi_pass_search is False
    assert restaurant.min_quality_threshold == 50
    assert restaurant.min_opportunity_threshold == 40


def test_unknown_profile_falls_back_to_generic():
    profile = profiles.get_profile("bike_repair")
    assert profile.id == "bike_repair"
    assert profile.search_terms == ("bike_repair",)
    assert profile.primary_place_types == ("establishment",)
    assert profile.min_radius_km == 0.5
    assert profile.max_radius_km == 5.0
    assert profile.requires_multi_pass_search is False


def test_blank_business_type_is_rejected():
    with pytest.raises(ConfigurationError):
        profiles.get_profile("  ")


def test_catalog_is_consistent():
    for business_id, profile in profiles.PROFILES.items():
        assert profile.id == business_id
        assert profile.search_terms
        assert profile.primary_place_types
        assert 0 < profile.min_radius_km < profile.max_radius_km
        assert profile.expected_density_per_km2 > 0
