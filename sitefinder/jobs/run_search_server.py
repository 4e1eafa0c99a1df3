"""HTTP entrypoint that runs optimal location searches (Cloud Run friendly)."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from flask import Flask, jsonify, request

from sitefinder.core.config import GRID_STRATEGIES, ConfigurationError, get_settings
from sitefinder.core.models import GeoPoint
from sitefinder.core.profiles import BusinessProfile, get_profile
from sitefinder.etl.transform import location_to_dict, to_analysis_payload, to_run_payload
from sitefinder.search.analysis import analyze_location
from sitefinder.search.competitors import CompetitorDirectory
from sitefinder.search.orchestrator import OptimalLocationSearch, RunFailure
from sitefinder.vendors.places_directory import GooglePlacesDirectory

# ---------- Logging ----------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s - %(message)s",
)
logger = logging.getLogger(__name__)

# ---------- App & executor ----------
app = Flask(__name__)
_executor = ThreadPoolExecutor(max_workers=4)
_runs: Dict[str, "SearchRun"] = {}
_runs_lock = threading.Lock()
MAX_DENSITY = 12
MAX_FINISHED_RUNS = 100
FINISHED_STATUSES = frozenset({"completed", "cancelled", "failed"})


@dataclass
class SearchRun:
    run_id: str
    params: Dict[str, Any]
    status: str = "queued"
    progress: int = 0
    points_processed: int = 0
    discoveries: list = field(default_factory=list)
    result: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    search: Optional[OptimalLocationSearch] = None
    stop_requested: bool = False

    def snapshot(self) -> Dict[str, Any]:
        return {
            "run_id": self.run_id,
            "status": self.status,
            "progress": self.progress,
            "points_processed": self.points_processed,
            "locations_found": len(self.discoveries),
            "discoveries": list(self.discoveries),
            "params": self.params,
            "result": self.result,
            "error": self.error,
        }


def _build_competitors() -> CompetitorDirectory:
    settings = get_settings()
    return CompetitorDirectory(GooglePlacesDirectory(settings=settings), settings=settings)


def _count_runs(status: str) -> int:
    with _runs_lock:
        return sum(1 for run in _runs.values() if run.status == status)


def _prune_finished_runs() -> None:
    """Keep at most MAX_FINISHED_RUNS finished runs, dropping the oldest first."""
    with _runs_lock:
        finished = [run_id for run_id, run in _runs.items() if run.status in FINISHED_STATUSES]
        for run_id in finished[: max(0, len(finished) - MAX_FINISHED_RUNS)]:
            del _runs[run_id]
    if len(finished) > MAX_FINISHED_RUNS:
        logger.info("Evicted %d finished runs from the registry", len(finished) - MAX_FINISHED_RUNS)


# ---------- Routes ----------


@app.get("/")
def root() -> Any:
    """Simple root to avoid 404 on GET /"""
    return "ok", 200


@app.get("/healthz")
def healthcheck() -> Any:
    """Lightweight health endpoint; only reads env-based settings."""
    settings = get_settings()
    return (
        jsonify(
            {
                "status": "ok",
                "worker_port_config": getattr(settings, "worker_port", None),
                "active_runs": _count_runs("running"),
                "revision": os.getenv("K_REVISION", "unknown"),
            }
        ),
        200,
    )


def _parse_point(payload: Dict[str, Any]) -> Tuple[Optional[GeoPoint], Optional[str]]:
    try:
        lat = float(payload["lat"])
        lng = float(payload["lng"])
    except KeyError:
        return None, "lat and lng are required"
    except (TypeError, ValueError):
        return None, "lat and lng must be numeric"
    if not -90 <= lat <= 90 or not -180 <= lng <= 180:
        return None, "lat/lng out of range"
    return GeoPoint(latitude=lat, longitude=lng), None


def _parse_positive(payload: Dict[str, Any], name: str, default: Optional[float]) -> Tuple[Optional[float], Optional[str]]:
    raw = payload.get(name)
    if raw is None:
        return default, None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None, f"{name} must be numeric"
    if value <= 0:
        return None, f"{name} must be positive"
    return value, None


@app.post("/search")
def enqueue_search() -> Any:
    """
    Enqueue an optimal location search.
    Required JSON fields: lat, lng, business
    Optional: analysis_radius_km (float), target_radius_km (float), density (int), strategy (str)
    """
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    center, error = _parse_point(payload)
    if error:
        return jsonify({"error": error}), 400

    business = str(payload.get("business") or "").strip()
    if not business:
        return jsonify({"error": "business is required"}), 400
    profile = get_profile(business)

    analysis_radius, error = _parse_positive(payload, "analysis_radius_km", 5.0)
    if error:
        return jsonify({"error": error}), 400
    target_radius, error = _parse_positive(payload, "target_radius_km", profile.default_radius_km)
    if error:
        return jsonify({"error": error}), 400

    density_raw = payload.get("density", get_settings().grid_density)
    try:
        density = int(density_raw)
    except (TypeError, ValueError):
        return jsonify({"error": "density must be an integer"}), 400
    if not 1 <= density <= MAX_DENSITY:
        return jsonify({"error": f"density must be between 1 and {MAX_DENSITY}"}), 400

    strategy = payload.get("strategy")
    if strategy is not None and strategy not in GRID_STRATEGIES:
        return jsonify({"error": f"strategy must be one of {', '.join(GRID_STRATEGIES)}"}), 400

    run = SearchRun(
        run_id=uuid.uuid4().hex,
        params={
            "lat": center.latitude,
            "lng": center.longitude,
            "business": profile.id,
            "analysis_radius_km": analysis_radius,
            "target_radius_km": target_radius,
            "density": density,
            "strategy": strategy,
        },
    )
    with _runs_lock:
        _runs[run.run_id] = run
    _prune_finished_runs()

    logger.info("Queueing optimal location search %s: %s", run.run_id, run.params)
    _executor.submit(_run_search_safe, run.run_id)

    return jsonify({"data": {"run_id": run.run_id, "status": run.status}}), 202


@app.get("/search/<run_id>")
def search_status(run_id: str) -> Any:
    run = _runs.get(run_id)
    if run is None:
        return jsonify({"error": "unknown run"}), 404
    return jsonify({"data": run.snapshot()}), 200


@app.post("/search/<run_id>/stop")
def stop_search(run_id: str) -> Any:
    run = _runs.get(run_id)
    if run is None:
        return jsonify({"error": "unknown run"}), 404
    run.stop_requested = True
    if run.search is not None:
        run.search.stop()
    logger.info("Stop requested for run %s (status=%s)", run_id, run.status)
    return jsonify({"data": {"run_id": run_id, "status": run.status}}), 202


@app.post("/analyze")
def analyze_point() -> Any:
    """Synchronous single-location success probability analysis."""
    payload: Dict[str, Any] = request.get_json(silent=True) or {}

    point, error = _parse_point(payload)
    if error:
        return jsonify({"error": error}), 400
    business = str(payload.get("business") or "").strip()
    if not business:
        return jsonify({"error": "business is required"}), 400
    profile = get_profile(business)
    radius, error = _parse_positive(payload, "radius_km", profile.default_radius_km)
    if error:
        return jsonify({"error": error}), 400

    try:
        analysis = asyncio.run(analyze_location(point, profile, radius, _build_competitors()))
    except Exception as exc:  # noqa: BLE001
        logger.exception("Analysis failed for %s: %s", payload, exc)
        return jsonify({"error": "analysis failed"}), 500

    return jsonify({"data": to_analysis_payload(analysis)}), 200


# ---------- Internals ----------


def _run_search(run: SearchRun, profile: BusinessProfile) -> None:
    if run.stop_requested:
        logger.info("Search %s stopped before it started", run.run_id)
        run.status = "cancelled"
        return

    def on_progress(percent: int, found: int, processed: int) -> None:
        run.progress = percent
        run.points_processed = processed
        # a stop that raced the start is picked up here
        if run.stop_requested and run.search is not None:
            run.search.stop()

    def on_location_found(location) -> None:
        run.discoveries.append(location_to_dict(location, include_competitors=False))

    settings = get_settings()
    search = OptimalLocationSearch(
        _build_competitors(),
        on_progress=on_progress,
        on_location_found=on_location_found,
        settings=settings,
        grid_strategy=run.params.get("strategy"),
    )
    run.search = search
    run.status = "running"
    params = run.params
    result = asyncio.run(
        search.start(
            GeoPoint(latitude=params["lat"], longitude=params["lng"]),
            profile,
            params["analysis_radius_km"],
            params["target_radius_km"],
            params["density"],
        )
    )
    run.result = to_run_payload(result)
    run.status = result.status


def _run_search_safe(run_id: str) -> None:
    run = _runs[run_id]
    try:
        _run_search(run, get_profile(run.params["business"]))
    except (ConfigurationError, RunFailure) as exc:
        logger.error("Search %s failed: %s", run_id, exc)
        run.status = "failed"
        run.error = "search failed"
    except Exception as exc:  # noqa: BLE001
        logger.exception("Search job %s failed: %s", run_id, exc)
        run.status = "failed"
        run.error = "search failed"
    finally:
        _prune_finished_runs()


def main() -> None:
    """Cloud Run injects PORT (usually 8080); fall back to WORKER_PORT locally."""
    env_port = os.getenv("PORT")
    logger.info("[BOOT] ENV PORT=%s", env_port)

    port = int(env_port or get_settings().worker_port)
    logger.info("[BOOT] Binding on 0.0.0.0:%d", port)

    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
