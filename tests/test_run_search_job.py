import argparse
import json

import pytest

from conftest import FakeDirectory, make_place
from sitefinder.core.config import ConfigurationError, Settings
from sitefinder.jobs import run_search
from sitefinder.search.orchestrator import RunFailure


def _settings(api_key="test-key", **overrides):
    return Settings(google_api_key=api_key, batch_delay_seconds=0, **overrides)


def test_run_search_job_requires_api_key(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings(api_key=""))

    with pytest.raises(RuntimeError):
        run_search.run_search_job(
            lat=30.0,
            lng=31.0,
            business="pharmacy",
            analysis_radius=2.0,
            target_radius=None,
            density=3,
        )


def test_run_search_job_returns_payload(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings())
    directory = FakeDirectory(
        by_type={"restaurant": [make_place("r1", 30.0, 31.0, name="Nile Grill", types=("restaurant",))]}
    )
    monkeypatch.setattr(run_search, "GooglePlacesDirectory", lambda settings=None: directory)

    payload = run_search.run_search_job(
        lat=30.0,
        lng=31.0,
        business="restaurant",
        analysis_radius=1.0,
        target_radius=None,
        density=2,
        top=1,
    )

    assert payload["status"] == "completed"
    assert payload["target_radius_km"] == 1.0
    assert payload["run_stats"]["points_requested"] == 4
    assert payload["run_stats"]["points_analyzed"] == 4
    assert len(payload["ranked_locations"]) <= 1
    assert payload["recommendations"]
    json.dumps(payload)
    assert directory.calls


def test_run_analysis_job(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings())
    monkeypatch.setattr(run_search, "GooglePlacesDirectory", lambda settings=None: FakeDirectory())

    payload = run_search.run_analysis_job(lat=30.0, lng=31.0, business="coffee_shop", radius=2.0)

    assert payload["success_probability"] == 87
    assert payload["total_competitors"] == 0
    assert payload["nearest_competitor_distance_km"] == 2.0


def test_build_parser_defaults():
    parser = run_search.build_parser()
    args = parser.parse_args(["--lat", "30.1", "--lng", "31.2", "--business", "pharmacy"])

    assert isinstance(parser, argparse.ArgumentParser)
    assert args.business == "pharmacy"
    assert args.density is None
    assert args.analysis_radius == 5.0
    assert args.target_radius is None
    assert args.strategy is None
    assert args.analyze is False


def test_build_parser_rejects_unknown_strategy(monkeypatch):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings())
    with pytest.raises(SystemExit):
        run_search.build_parser().parse_args(
            ["--lat", "1", "--lng", "2", "--business", "cafe", "--strategy", "spiral"]
        )


@pytest.mark.parametrize("error, code", [(ConfigurationError("bad density"), 2), (RunFailure("boom"), 1)])
def test_main_exit_codes(monkeypatch, error, code):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings())

    def fail(**kwargs):
        raise error

    monkeypatch.setattr(run_search, "run_search_job", fail)
    monkeypatch.setattr("sys.argv", ["run_search", "--lat", "1", "--lng", "2", "--business", "cafe"])

    with pytest.raises(SystemExit) as excinfo:
        run_search.main()
    assert excinfo.value.code == code


def test_main_prints_json(monkeypatch, capsys):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings())
    seen = {}

    def fake_analysis(**kwargs):
        seen.update(kwargs)
        return {"success_probability": 55}

    monkeypatch.setattr(run_search, "run_analysis_job", fake_analysis)
    monkeypatch.setattr(
        "sys.argv",
        ["run_search", "--lat", "1", "--lng", "2", "--business", "cafe", "--analyze", "--target-radius", "1.5"],
    )
    run_search.main()

    assert json.loads(capsys.readouterr().out) == {"success_probability": 55}
    assert seen == {"lat": 1.0, "lng": 2.0, "business": "cafe", "radius": 1.5}


def test_main_uses_configured_density(monkeypatch, capsys):
    monkeypatch.setattr(run_search, "get_settings", lambda: _settings(grid_density=7))
    seen = {}

    def fake_search(**kwargs):
        seen.update(kwargs)
        return {"status": "completed"}

    monkeypatch.setattr(run_search, "run_search_job", fake_search)
    monkeypatch.setattr("sys.argv", ["run_search", "--lat", "1", "--lng", "2", "--business", "cafe"])
    run_search.main()

    assert seen["density"] == 7
    assert json.loads(capsys.readouterr().out) == {"status": "completed"}


def test_main_reports_malformed_settings_as_configuration_error(monkeypatch):
    def broken_settings():
        raise ConfigurationError("GRID_DENSITY must be numeric, got 'lots'")

    monkeypatch.setattr(run_search, "get_settings", broken_settings)
    monkeypatch.setattr("sys.argv", ["run_search", "--lat", "1", "--lng", "2", "--business", "cafe"])

    with pytest.raises(SystemExit) as excinfo:
        run_search.main()
    assert excinfo.value.code == 2
