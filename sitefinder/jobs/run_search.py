"""CLI job to search for the best sites for a business around a center point."""

import argparse
import asyncio
import json
import logging
from typing import Any, Dict, Optional

from sitefinder.core.config import GRID_STRATEGIES, ConfigurationError, get_settings
from sitefinder.core.models import GeoPoint, ScoredLocation
from sitefinder.core.profiles import PROFILES, get_profile
from sitefinder.etl.transform import to_analysis_payload, to_run_payload
from sitefinder.search.analysis import analyze_location
from sitefinder.search.competitors import CompetitorDirectory
from sitefinder.search.orchestrator import OptimalLocationSearch, RunFailure
from sitefinder.vendors.places_directory import GooglePlacesDirectory

logger = logging.getLogger(__name__)


def _log_progress(percent: int, found: int, processed: int) -> None:
    logger.info("Progress %d%%: %d locations accepted after %d points", percent, found, processed)


def _log_discovery(location: ScoredLocation) -> None:
    logger.info(
        "Found candidate %.5f,%.5f opportunity=%d%% nearest=%.2fkm",
        location.point.latitude,
        location.point.longitude,
        location.opportunity_score,
        location.nearest_competitor_distance_km,
    )


def run_search_job(
    *,
    lat: float,
    lng: float,
    business: str,
    analysis_radius: float,
    target_radius: Optional[float],
    density: int,
    strategy: Optional[str] = None,
    top: Optional[int] = None,
) -> Dict[str, Any]:
    settings = get_settings()
    if not settings.google_api_key:
        raise RuntimeError("GOOGLE_API_KEY is required")

    profile = get_profile(business)
    competitors = CompetitorDirectory(GooglePlacesDirectory(settings=settings), settings=settings)
    search = OptimalLocationSearch(
        competitors,
        on_progress=_log_progress,
        on_location_found=_log_discovery,
        settings=settings,
        grid_strategy=strategy,
    )

    result = asyncio.run(
        search.start(
            GeoPoint(latitude=lat, longitude=lng),
            profile,
            analysis_radius,
            target_radius if target_radius is not None else profile.default_radius_km,
            density,
        )
    )
    for line in result.recommendations:
        logger.info("Recommendation: %s", line)
    return to_run_payload(result, top=top)


def run_analysis_job(*, lat: float, lng: float, business: str, radius: float) -> Dict[str, Any]:
    settings = get_settings()
    if not settings.google_api_key:
        raise RuntimeError("GOOGLE_API_KEY is required")

    competitors = CompetitorDirectory(GooglePlacesDirectory(settings=settings), settings=settings)
    analysis = asyncio.run(analyze_location(GeoPoint(latitude=lat, longitude=lng), business, radius, competitors))
    return to_analysis_payload(analysis)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Find the best sites for a new business")
    parser.add_argument("--lat", dest="lat", type=float, required=True, help="Search center latitude")
    parser.add_argument("--lng", dest="lng", type=float, required=True, help="Search center longitude")
    parser.add_argument(
        "--business",
        dest="business",
        required=True,
        help=f"Business type, e.g. {', '.join(sorted(PROFILES))}",
    )
    parser.add_argument("--analysis-radius", dest="analysis_radius", type=float, default=5.0, help="Radius in km to scan")
    parser.add_argument("--target-radius", dest="target_radius", type=float, help="Catchment radius in km")
    parser.add_argument(
        "--density",
        dest="density",
        type=int,
        help="Grid density (points per side / ring count driver); defaults to GRID_DENSITY",
    )
    parser.add_argument("--strategy", dest="strategy", choices=GRID_STRATEGIES, help="Grid sampling strategy")
    parser.add_argument("--top", dest="top", type=int, help="Only print the top N ranked locations")
    parser.add_argument(
        "--analyze",
        dest="analyze",
        action="store_true",
        help="Analyse only the given point instead of running a grid search",
    )
    return parser


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s - %(message)s")
    parser = build_parser()
    args = parser.parse_args()

    try:
        if args.analyze:
            payload = run_analysis_job(
                lat=args.lat,
                lng=args.lng,
                business=args.business,
                radius=args.target_radius or args.analysis_radius,
            )
        else:
            payload = run_search_job(
                lat=args.lat,
                lng=args.lng,
                business=args.business,
                analysis_radius=args.analysis_radius,
                target_radius=args.target_radius,
                density=args.density if args.density is not None else get_settings().grid_density,
                strategy=args.strategy,
                top=args.top,
            )
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        raise SystemExit(2) from exc
    except RunFailure as exc:
        logger.error("Search failed: %s", exc, exc_info=True)
        raise SystemExit(1) from exc

    print(json.dumps(payload, ensure_ascii=False, indent=2))


if __name__ == "__main__":
    main()
