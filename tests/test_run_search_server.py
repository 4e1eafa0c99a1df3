import pytest

from conftest import FakeDirectory, make_place
from sitefinder.core.config import Settings
from sitefinder.core.models import LocationAnalysis
from sitefinder.jobs import run_search_server
from sitefinder.search.competitors import CompetitorDirectory


@pytest.fixture(autouse=True)
def reset_executor(monkeypatch):
    submitted = {}

    class DummyExecutor:
        def submit(self, fn, *args):
            submitted["called"] = True
            submitted["fn"] = fn
            submitted["args"] = args

    settings = Settings(google_api_key="test-key", batch_delay_seconds=0)
    monkeypatch.setattr(run_search_server, "_executor", DummyExecutor())
    monkeypatch.setattr(run_search_server, "_runs", {})
    monkeypatch.setattr(run_search_server, "get_settings", lambda: settings)
    yield submitted


@pytest.fixture
def client():
    return run_search_server.app.test_client()


def test_health_endpoint(client):
    response = client.get("/healthz")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "ok"
    assert body["active_runs"] == 0


@pytest.mark.parametrize(
    "payload",
    [
        {},
        {"lat": 30, "business": "pharmacy"},
        {"lat": "north", "lng": 31, "business": "pharmacy"},
        {"lat": 95, "lng": 31, "business": "pharmacy"},
        {"lat": 30, "lng": 31},
        {"lat": 30, "lng": 31, "business": "  "},
        {"lat": 30, "lng": 31, "business": "pharmacy", "analysis_radius_km": -1},
        {"lat": 30, "lng": 31, "business": "pharmacy", "target_radius_km": "far"},
        {"lat": 30, "lng": 31, "business": "pharmacy", "density": "dense"},
        {"lat": 30, "lng": 31, "business": "pharmacy", "density": 0},
        {"lat": 30, "lng": 31, "business": "pharmacy", "density": 50},
        {"lat": 30, "lng": 31, "business": "pharmacy", "strategy": "spiral"},
    ],
)
def test_enqueue_search_validates_payload(client, reset_executor, payload):
    assert client.post("/search", json=payload).status_code == 400
    assert "called" not in reset_executor


def test_enqueue_search_registers_run(client, reset_executor):
    payload = {"lat": 30.0444, "lng": 31.2357, "business": "pharmacy", "density": 4, "strategy": "hexagonal"}
    response = client.post("/search", json=payload)

    assert response.status_code == 202
    run_id = response.get_json()["data"]["run_id"]
    assert reset_executor["called"] is True
    assert reset_executor["fn"] is run_search_server._run_search_safe
    assert reset_executor["args"] == (run_id,)

    params = run_search_server._runs[run_id].params
    assert params["analysis_radius_km"] == 5.0
    assert params["target_radius_km"] == 1.5
    assert params["density"] == 4
    assert params["strategy"] == "hexagonal"

    status = client.get(f"/search/{run_id}")
    assert status.status_code == 200
    assert status.get_json()["data"]["status"] == "queued"


def test_unknown_run_is_404(client):
    assert client.get("/search/missing").status_code == 404
    assert client.post("/search/missing/stop").status_code == 404


def test_queued_search_runs_to_completion(client, reset_executor, monkeypatch):
    directory = FakeDirectory(
        by_type={"restaurant": [make_place("r1", 30.0, 31.0, name="Nile Grill", types=("restaurant",))]}
    )
    monkeypatch.setattr(
        run_search_server,
        "_build_competitors",
        lambda: CompetitorDirectory(directory, settings=run_search_server.get_settings(), micro_grid_pause=0),
    )
    response = client.post(
        "/search", json={"lat": 30.0, "lng": 31.0, "business": "restaurant", "analysis_radius_km": 1, "density": 2}
    )
    run_id = response.get_json()["data"]["run_id"]

    reset_executor["fn"](*reset_executor["args"])

    data = client.get(f"/search/{run_id}").get_json()["data"]
    assert data["status"] == "completed"
    assert data["progress"] == 100
    assert data["points_processed"] == 4
    assert data["result"]["run_stats"]["points_analyzed"] == 4
    assert data["locations_found"] == len(data["result"]["all_scored_points"])
    assert len(data["discoveries"]) == data["locations_found"]
    assert data["locations_found"] > 0
    for discovery in data["discoveries"]:
        assert "opportunity_score" in discovery
        assert "competitors" not in discovery


def test_failed_search_is_reported(client, reset_executor, monkeypatch):
    class Broken:
        async def lookup(self, point, profile, radius_km):
            raise ValueError("boom")

    monkeypatch.setattr(run_search_server, "_build_competitors", Broken)
    response = client.post("/search", json={"lat": 30.0, "lng": 31.0, "business": "cafe", "density": 2})
    run_id = response.get_json()["data"]["run_id"]

    reset_executor["fn"](*reset_executor["args"])

    data = client.get(f"/search/{run_id}").get_json()["data"]
    assert data["status"] == "failed"
    assert data["error"] == "search failed"
    assert data["result"] is None


def test_stop_before_start_cancels_the_run(client, reset_executor):
    response = client.post("/search", json={"lat": 30.0, "lng": 31.0, "business": "cafe"})
    run_id = response.get_json()["data"]["run_id"]

    stop = client.post(f"/search/{run_id}/stop")
    assert stop.status_code == 202
    assert stop.get_json()["data"]["status"] == "queued"

    reset_executor["fn"](*reset_executor["args"])
    assert client.get(f"/search/{run_id}").get_json()["data"]["status"] == "cancelled"


def test_analyze_endpoint(client, monkeypatch):
    seen = {}

    async def fake_analyze(point, profile, radius, competitors):
        seen.update(point=point, business=profile.id, radius=radius)
        return LocationAnalysis(
            success_probability=62,
            competition_score=49,
            demographic_score=70,
            location_score=80,
            total_competitors=2,
            nearest_competitor_distance_km=1.5,
            recommendations=["Low competition environment - good market opportunity"],
            risks=[],
        )

    monkeypatch.setattr(run_search_server, "analyze_location", fake_analyze)
    monkeypatch.setattr(run_search_server, "_build_competitors", lambda: None)

    response = client.post("/analyze", json={"lat": 24.7, "lng": 46.6, "business": "pharmacy", "radius_km": 3})

    assert response.status_code == 200
    assert response.get_json()["data"]["success_probability"] == 62
    assert seen["business"] == "pharmacy"
    assert seen["radius"] == 3.0


def test_analyze_endpoint_validates_and_reports_failures(client, monkeypatch):
    assert client.post("/analyze", json={"lat": 24.7, "lng": 46.6}).status_code == 400

    async def broken(point, profile, radius, competitors):
        raise RuntimeError("directory down")

    monkeypatch.setattr(run_search_server, "analyze_location", broken)
    monkeypatch.setattr(run_search_server, "_build_competitors", lambda: None)
    response = client.post("/analyze", json={"lat": 24.7, "lng": 46.6, "business": "pharmacy"})
    assert response.status_code == 500


def test_registry_keeps_a_bounded_number_of_finished_runs(client, monkeypatch):
    class InlineExecutor:
        def submit(self, fn, *args):
            fn(*args)

    monkeypatch.setattr(run_search_server, "_executor", InlineExecutor())
    monkeypatch.setattr(run_search_server, "MAX_FINISHED_RUNS", 3)
    monkeypatch.setattr(
        run_search_server,
        "_build_competitors",
        lambda: CompetitorDirectory(FakeDirectory(), settings=run_search_server.get_settings(), micro_grid_pause=0),
    )

    run_ids = []
    for _ in range(6):
        response = client.post("/search", json={"lat": 30.0, "lng": 31.0, "business": "cafe", "density": 1})
        run_ids.append(response.get_json()["data"]["run_id"])

    assert len(run_search_server._runs) == 3
    assert list(run_search_server._runs) == run_ids[-3:]
    assert client.get(f"/search/{run_ids[0]}").status_code == 404
    assert client.get(f"/search/{run_ids[-1]}").get_json()["data"]["status"] == "completed"


def test_unfinished_runs_are_never_evicted(monkeypatch):
    monkeypatch.setattr(run_search_server, "MAX_FINISHED_RUNS", 1)
    runs = {
        "a": run_search_server.SearchRun(run_id="a", params={}, status="running"),
        "b": run_search_server.SearchRun(run_id="b", params={}, status="completed"),
        "c": run_search_server.SearchRun(run_id="c", params={}, status="queued"),
        "d": run_search_server.SearchRun(run_id="d", params={}, status="failed"),
    }
    monkeypatch.setattr(run_search_server, "_runs", runs)

    run_search_server._prune_finished_runs()

    assert list(runs) == ["a", "c", "d"]
