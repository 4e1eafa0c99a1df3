"""Client utilities for the Google Places API."""

import logging
from typing import Any, Dict, List, Optional

import requests

logger = logging.getLogger(__name__)
_SESSION = requests.Session()
_BASE_URL = "https://maps.googleapis.com/maps/api/place"
MAX_RADIUS_M = 50_000


class GooglePlacesError(RuntimeError):
    """Raised when the Places API returns a non-successful response."""


def _location_param(lat: float, lng: float) -> str:
    return f"{lat},{lng}"


def _clamp_radius(radius_m: float) -> int:
    return int(min(max(radius_m, 1), MAX_RADIUS_M))


def _get(path: str, params: Dict[str, Any], timeout: float) -> List[Dict[str, Any]]:
    response = _SESSION.get(f"{_BASE_URL}/{path}", params=params, timeout=timeout)
    response.raise_for_status()
    payload = response.json()
    status = payload.get("status")
    if status not in {"OK", "ZERO_RESULTS"}:
        logger.error("%s failed: status=%s, error_message=%s", path, status, payload.get("error_message"))
        raise GooglePlacesError(payload.get("error_message") or status)
    return payload.get("results", [])


def nearby_search(
    lat: float,
    lng: float,
    radius_m: float,
    place_type: str,
    api_key: str,
    timeout: float = 10,
) -> List[Dict[str, Any]]:
    params = {
        "location": _location_param(lat, lng),
        "radius": _clamp_radius(radius_m),
        "type": place_type,
        "key": api_key,
    }
    return _get("nearbysearch/json", params, timeout)


def text_search(
    query: str,
    api_key: str,
    lat: Optional[float] = None,
    lng: Optional[float] = None,
    radius_m: Optional[float] = None,
    timeout: float = 10,
) -> List[Dict[str, Any]]:
    params: Dict[str, Any] = {"query": query, "key": api_key}
    if lat is not None and lng is not None:
        params["location"] = _location_param(lat, lng)
    if radius_m is not None:
        params["radius"] = _clamp_radius(radius_m)
    return _get("textsearch/json", params, timeout)
