from pathlib import Path

from stopplan.config import Settings


def test_defaults(monkeypatch) -> None:
    for key in ("STOPPLAN_GOOGLE_MAPS_API_KEY", "STOPPLAN_GOOGLE_PLACES_API_KEY", "STOPPLAN_OVERPASS_API_URLS"):
        monkeypatch.delenv(key, raising=False)

    config = Settings(_env_file=None)

    assert config.api_prefix == "/api"
    assert config.route_buffer_km == 8.0
    assert config.places_corridor_km == 12.0
    assert config.fuel_corridor_km == 10.0
    assert config.fuel_candidate_limit == 20
    assert config.places_api_key is None
    assert config.overpass_api_urls[0] == "https://overpass.kumi.systems/api/interpreter"


def test_places_key_falls_back_to_maps_key(monkeypatch) -> None:
    monkeypatch.setenv("STOPPLAN_GOOGLE_MAPS_API_KEY", "maps-key")
    monkeypatch.delenv("STOPPLAN_GOOGLE_PLACES_API_KEY", raising=False)

    assert Settings(_env_file=None).places_api_key == "maps-key"

    monkeypatch.setenv("STOPPLAN_GOOGLE_PLACES_API_KEY", "places-key")
    assert Settings(_env_file=None).places_api_key == "places-key"


def test_tuple_settings_accept_json_and_comma_lists(monkeypatch) -> None:
    monkeypatch.setenv("STOPPLAN_OVERPASS_API_URLS", "https://a.example/api, https://b.example/api")
    monkeypatch.setenv("STOPPLAN_FRONTEND_ALLOWED_ORIGINS", '["https://planner.example.jp"]')

    config = Settings(_env_file=None)

    assert config.overpass_api_urls == ("https://a.example/api", "https://b.example/api")
    assert config.frontend_allowed_origins == ("https://planner.example.jp",)


def test_seed_paths_are_resolved(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("STOPPLAN_STATION_SEED_FILES", f"{tmp_path}/a.json,{tmp_path}/b.json")
    monkeypatch.setenv("STOPPLAN_REST_SEED_FILE", str(tmp_path / "rest.json"))

    config = Settings(_env_file=None)

    assert config.station_seed_files == ((tmp_path / "a.json").resolve(), (tmp_path / "b.json").resolve())
    assert config.rest_seed_file == (tmp_path / "rest.json").resolve()
