"""Async places directory interface used by the competitor search."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from sitefinder.core.config import Settings, get_settings
from sitefinder.core.models import GeoPoint, RawPlace
from sitefinder.etl.transform import to_raw_places
from sitefinder.vendors import google_places

logger = logging.getLogger(__name__)


class TransientDirectoryError(RuntimeError):
    """A single directory query failed; callers treat it as zero hits."""


class PlacesDirectory(ABC):
    """Opaque places search collaborator: type-based and keyword-based lookups."""

    @abstractmethod
    async def search_by_type(self, point: GeoPoint, place_type: str, radius_km: float) -> List[RawPlace]:
        ...

    @abstractmethod
    async def search_by_text(self, point: GeoPoint, query: str, radius_km: float) -> List[RawPlace]:
        ...


class GooglePlacesDirectory(PlacesDirectory):
    """PlacesDirectory backed by the Google Places web service.

    The blocking ``requests`` calls run on a worker thread so a search run can
    keep several lookups in flight.
    """

    def __init__(self, api_key: Optional[str] = None, *, settings: Optional[Settings] = None) -> None:
        settings = settings or get_settings()
        self.api_key = api_key or settings.google_api_key
        self.timeout = settings.places_http_timeout
        if not self.api_key:
            logger.warning("GooglePlacesDirectory created without an API key; every query will fail.")

    async def search_by_type(self, point: GeoPoint, place_type: str, radius_km: float) -> List[RawPlace]:
        try:
            results = await asyncio.to_thread(
                google_places.nearby_search,
                point.latitude,
                point.longitude,
                radius_km * 1000,
                place_type,
                self.api_key,
                self.timeout,
            )
        except (requests.RequestException, google_places.GooglePlacesError) as exc:
            raise TransientDirectoryError(f"nearby search for type={place_type} failed: {exc}") from exc
        return to_raw_places(results)

    async def search_by_text(self, point: GeoPoint, query: str, radius_km: float) -> List[RawPlace]:
        try:
            results = await asyncio.to_thread(
                google_places.text_search,
                query,
                self.api_key,
                point.latitude,
                point.longitude,
                radius_km * 1000,
                self.timeout,
            )
        except (requests.RequestException, google_places.GooglePlacesError) as exc:
            raise TransientDirectoryError(f"text search for query={query!r} failed: {exc}") from exc
        return to_raw_places(results)
