import asyncio
import json

import httpx
import pytest

from stopplan import messages
from stopplan.errors import ConfigurationError, UpstreamFailure, UpstreamTimeout
from stopplan.models.domain import (
    CandidateKind,
    CandidateSource,
    FacilityEquipmentFilter,
    FacilityTypeFilter,
    FuelBrand,
    FuelStation,
)
from stopplan.services.candidates import fuel as fuel_module
from stopplan.services.candidates.base import CandidateProvider, ProviderContext
from stopplan.services.candidates.cascade import run_rest_cascade
from stopplan.services.candidates.fuel import MasterFuelProvider, PlacesFuelProvider, collect_fuel_candidates
from stopplan.services.candidates.overpass import OverpassRestProvider, order_endpoints
from stopplan.services.candidates.places import PlacesRestProvider
from stopplan.services.candidates.seed import SeedRestProvider, load_rest_seed

from .conftest import DEPART_AT, make_candidate, make_route


class StaticProvider(CandidateProvider):
    def __init__(self, name, candidates=(), error=None, corridor_km=12.0, delay=0.0, timeout=None,
                 substitution_message=None, failure_message="{error}"):
        self.name = name
        self.source = CandidateSource.OPEN_DATA
        self.corridor_km = corridor_km
        self.substitution_message = substitution_message
        self.failure_message = failure_message
        self._candidates = list(candidates)
        self._error = error
        self._delay = delay
        self.calls = 0
        if timeout is not None:
            self.timeout = timeout

    async def fetch_candidates(self, ctx):
        self.calls += 1
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return list(self._candidates)


@pytest.fixture
def ctx():
    return ProviderContext(route=make_route(), depart_at=DEPART_AT)


def test_cascade_substitutes_after_failure_and_empty_result(ctx) -> None:
    failing = StaticProvider("overpass", error=UpstreamTimeout("Overpass API", 8), failure_message="rest failed: {error}")
    empty = StaticProvider("places", substitution_message="places filled in")
    seed = StaticProvider(
        "seed",
        [make_candidate("a"), make_candidate("b", lat=35.5), make_candidate("c", lat=34.9)],
        substitution_message="seed filled in",
    )

    result = asyncio.run(run_rest_cascade([failing, empty, seed], ctx))

    assert [c.id for c in result.candidates] == ["a", "b", "c"]
    assert result.provider == "seed"
    assert result.warnings == ["rest failed: Overpass API timeout (8000ms)", "seed filled in"]


def test_cascade_stops_at_first_provider_with_candidates(ctx) -> None:
    first = StaticProvider("overpass", [make_candidate("a")])
    second = StaticProvider("places", [make_candidate("b")], substitution_message="places filled in")

    result = asyncio.run(run_rest_cascade([first, second], ctx))

    assert [c.id for c in result.candidates] == ["a"]
    assert result.warnings == []
    assert second.calls == 0


def test_cascade_treats_out_of_corridor_results_as_empty(ctx) -> None:
    far = StaticProvider("overpass", [make_candidate("far", route_km=20.0)], corridor_km=8.0)
    seed = StaticProvider("seed", [make_candidate("near", route_km=2.0)], substitution_message="seed filled in")

    result = asyncio.run(run_rest_cascade([far, seed], ctx))

    assert [c.id for c in result.candidates] == ["near"]
    assert result.warnings == ["seed filled in"]


def test_cascade_exhausted_returns_empty(ctx) -> None:
    result = asyncio.run(run_rest_cascade([StaticProvider("a"), StaticProvider("b")], ctx))

    assert result.candidates == []
    assert result.provider is None


def _fuel(id, source, **kwargs):
    return make_candidate(id, kind=CandidateKind.FUEL, source=source, brand=FuelBrand.USAMI, **kwargs)


def test_fuel_collection_merges_and_reports_failures(ctx) -> None:
    master = StaticProvider("fuel-master", [_fuel("m1", CandidateSource.LOCAL_MASTER, name="宇佐美 1号沼津")])
    live = StaticProvider(
        "fuel-places",
        [
            _fuel("p1", CandidateSource.COMMERCIAL, name="宇佐美 1号沼津"),
            _fuel("p2", CandidateSource.COMMERCIAL, name="宇佐美 1号豊橋", lat=34.78),
        ],
    )
    broken = StaticProvider("broken", error=UpstreamFailure("HTTP 500"), failure_message="fuel failed: {error}")

    result = asyncio.run(collect_fuel_candidates([live, master, broken], ctx, 100.0, False))

    assert sorted(c.id for c in result.candidates) == ["m1", "p2"]
    assert result.warnings == ["fuel failed: HTTP 500"]


def test_fuel_collection_times_out_slow_provider(ctx) -> None:
    slow = StaticProvider("slow", [_fuel("s", CandidateSource.COMMERCIAL)], delay=1.0, timeout=0.05)
    fast = StaticProvider("fast", [_fuel("f", CandidateSource.LOCAL_MASTER, lat=35.3)])

    result = asyncio.run(collect_fuel_candidates([slow, fast], ctx, 100.0, False))

    assert [c.id for c in result.candidates] == ["f"]
    assert len(result.warnings) == 1
    assert "timeout (50ms)" in result.warnings[0]


def test_fuel_collection_keeps_configuration_errors_fatal(ctx) -> None:
    missing_store = StaticProvider("fuel-master", error=ConfigurationError("Station store is not configured"))

    with pytest.raises(ConfigurationError):
        asyncio.run(collect_fuel_candidates([missing_store], ctx, 100.0, False))


def test_master_fuel_provider_positions_stations(monkeypatch, ctx) -> None:
    station = FuelStation(
        source_id="usami-numazu",
        brand=FuelBrand.USAMI,
        name="宇佐美 1号沼津",
        address="静岡県沼津市東椎路20-1",
        lat=35.1158,
        lng=138.8319,
        is_highway=False,
        service_24h=True,
        shower=True,
    )
    seen_brands = []

    def fake_get_stations(brands):
        seen_brands.append(tuple(brands))
        return (station,)

    monkeypatch.setattr(fuel_module.station_repository, "get_stations", fake_get_stations)
    ctx.fuel_brand = FuelBrand.USAMI

    candidates = asyncio.run(MasterFuelProvider().fetch_candidates(ctx))

    assert seen_brands == [(FuelBrand.USAMI,)]
    assert len(candidates) == 1
    candidate = candidates[0]
    assert candidate.id == "usami-numazu"
    assert candidate.source is CandidateSource.LOCAL_MASTER
    assert candidate.equipment.open24h and candidate.equipment.shower
    assert candidate.eta >= DEPART_AT
    assert 0 <= candidate.distance_from_start_km <= ctx.route.total_distance_km


def test_order_endpoints_prefers_known_hosts() -> None:
    ordered = order_endpoints(
        [
            "not a url",
            "https://overpass.example.org/api/interpreter",
            "https://overpass-api.de/api/interpreter",
            "https://overpass.kumi.systems/api/interpreter",
        ]
    )

    assert ordered == [
        "https://overpass.kumi.systems/api/interpreter",
        "https://overpass-api.de/api/interpreter",
        "https://overpass.example.org/api/interpreter",
        "not a url",
    ]


def _overpass_body(route):
    point = route.points[10]
    return {
        "elements": [
            {
                "type": "node",
                "id": 1,
                "lat": point.lat + 0.01,
                "lon": point.lng,
                "tags": {"highway": "services", "name": "足柄SA", "hgv": "yes"},
            },
            {
                "type": "node",
                "id": 1,
                "lat": point.lat + 0.01,
                "lon": point.lng,
                "tags": {"highway": "services", "name": "足柄SA"},
            },
            {
                "type": "way",
                "id": 2,
                "center": {"lat": point.lat - 0.01, "lon": point.lng},
                "tags": {"name": "道の駅 富士川楽座"},
            },
        ]
    }


def test_overpass_falls_through_to_next_endpoint(ctx) -> None:
    hits = []

    def handler(request: httpx.Request) -> httpx.Response:
        hits.append(request.url.host)
        if request.url.host == "overpass.kumi.systems":
            return httpx.Response(504)
        return httpx.Response(200, json=_overpass_body(ctx.route))

    provider = OverpassRestProvider(
        endpoints=["https://overpass-api.de/api/interpreter", "https://overpass.kumi.systems/api/interpreter"],
        transport=httpx.MockTransport(handler),
    )

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    assert hits == ["overpass.kumi.systems", "overpass-api.de"]
    assert [c.id for c in candidates] == ["node-1", "way-2"] or [c.id for c in candidates] == ["way-2", "node-1"]
    by_id = {c.id: c for c in candidates}
    assert by_id["node-1"].is_highway and by_id["node-1"].equipment.large_parking
    assert by_id["way-2"].tags == ["道の駅"]
    assert all(c.source is CandidateSource.OPEN_DATA for c in candidates)


def test_overpass_applies_type_and_equipment_filters(ctx) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, json=_overpass_body(ctx.route)))
    provider = OverpassRestProvider(endpoints=["https://overpass-api.de/api/interpreter"], transport=transport)

    ctx.facility_types = FacilityTypeFilter(michi_no_eki=True)
    assert [c.id for c in asyncio.run(provider.fetch_candidates(ctx))] == ["way-2"]

    ctx.facility_types = FacilityTypeFilter()
    ctx.equipment = FacilityEquipmentFilter(large_parking=True)
    assert [c.id for c in asyncio.run(provider.fetch_candidates(ctx))] == ["node-1"]


def test_overpass_raises_when_all_endpoints_fail(ctx) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "overpass-api.de":
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(429)

    provider = OverpassRestProvider(
        endpoints=["https://overpass-api.de/api/interpreter", "https://overpass.kumi.systems/api/interpreter"],
        timeout=1.0,
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(UpstreamTimeout, match="overpass-api.de"):
        asyncio.run(provider.fetch_candidates(ctx))


def test_places_rest_provider_without_key_returns_nothing(ctx) -> None:
    assert asyncio.run(PlacesRestProvider(api_key="").fetch_candidates(ctx)) == []


def test_places_rest_provider_builds_candidates(ctx) -> None:
    point = ctx.route.points[5]
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if request.url.path.endswith("/nearbysearch/json"):
            return httpx.Response(
                200,
                json={
                    "status": "OK",
                    "results": [
                        {
                            "place_id": "sa-1",
                            "name": "海老名SA（下り）",
                            "vicinity": "神奈川県海老名市",
                            "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
                            "types": ["point_of_interest"],
                        },
                        {
                            "place_id": "closed",
                            "name": "旧 休憩所",
                            "business_status": "CLOSED_PERMANENTLY",
                            "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
                        },
                    ],
                },
            )
        return httpx.Response(404)

    provider = PlacesRestProvider(api_key="test-key", transport=httpx.MockTransport(handler))
    ctx.facility_types = FacilityTypeFilter(sa_pa=True)

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    assert [c.id for c in candidates] == ["sa-1"]
    assert candidates[0].source is CandidateSource.COMMERCIAL
    assert candidates[0].tags == ["SA/PA"]
    assert all("/details/" not in r.url.path for r in requests)
    assert requests[0].url.params["keyword"] == "サービスエリア"


def test_places_fuel_provider_keeps_only_accepted_brands(ctx) -> None:
    point = ctx.route.points[8]

    def handler(request: httpx.Request) -> httpx.Response:
        keyword = request.url.params["keyword"]
        results = [
            {
                "place_id": f"{keyword}-1",
                "name": f"{keyword} 足柄SA(下り)",
                "vicinity": "静岡県",
                "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
            },
            {
                "place_id": f"{keyword}-other",
                "name": "コスモ石油",
                "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
            },
        ]
        return httpx.Response(200, json={"status": "OK", "results": results})

    provider = PlacesFuelProvider(api_key="test-key", transport=httpx.MockTransport(handler))
    ctx.fuel_brand = FuelBrand.EW

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    assert [c.id for c in candidates] == ["ENEOSウイング-1"]
    assert candidates[0].brand is FuelBrand.EW
    assert candidates[0].is_highway
    assert candidates[0].tags == ["高速道路内SS"]


def test_seed_provider_filters_by_type(tmp_path, ctx) -> None:
    point = ctx.route.points[12]
    seed_file = tmp_path / "rest-seed.json"
    seed_file.write_text(
        json.dumps(
            [
                {
                    "id": "seed-sa",
                    "name": "牧之原SA",
                    "lat": point.lat,
                    "lng": point.lng,
                    "isHighway": True,
                    "tags": ["SA/PA"],
                    "equipment": {"largeParking": True},
                },
                {
                    "id": "seed-eki",
                    "name": "道の駅 藤川宿",
                    "lat": point.lat + 0.02,
                    "lng": point.lng,
                    "tags": ["道の駅"],
                },
                {"id": "broken", "name": "missing coords"},
            ]
        ),
        encoding="utf-8",
    )
    load_rest_seed.cache_clear()
    ctx.facility_types = FacilityTypeFilter(michi_no_eki=True)

    candidates = asyncio.run(SeedRestProvider(source=seed_file).fetch_candidates(ctx))

    assert [c.id for c in candidates] == ["seed-eki"]
    assert candidates[0].source is CandidateSource.LOCAL_MASTER
    load_rest_seed.cache_clear()


def test_seed_provider_missing_file_fails(tmp_path, ctx) -> None:
    load_rest_seed.cache_clear()
    with pytest.raises(FileNotFoundError):
        asyncio.run(SeedRestProvider(source=tmp_path / "missing.json").fetch_candidates(ctx))


def test_rest_failure_messages_are_localized() -> None:
    assert OverpassRestProvider.failure_message == messages.REST_OVERPASS_FAILED
    assert SeedRestProvider.substitution_message == messages.REST_SEED_SUBSTITUTED


def _eneos_place(place_id, point):
    return {
        "place_id": place_id,
        "name": "ENEOSウイング 足柄SA(下り)",
        "vicinity": "静岡県",
        "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
    }


def test_places_fuel_budget_lets_in_flight_query_finish(ctx) -> None:
    point = ctx.route.points[8]
    read_timeouts = []

    async def handler(request: httpx.Request) -> httpx.Response:
        read_timeouts.append(request.extensions["timeout"]["read"])
        await asyncio.sleep(0.2)
        place = _eneos_place(f"eneos-{len(read_timeouts)}", point)
        return httpx.Response(200, json={"status": "OK", "results": [place]})

    provider = PlacesFuelProvider(
        api_key="test-key", nearby_timeout=4.5, total_budget=0.05, transport=httpx.MockTransport(handler)
    )
    ctx.fuel_brand = FuelBrand.EW

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    # The first query outlives the budget but still completes; no further query is issued.
    assert read_timeouts == [4.5]
    assert [c.id for c in candidates] == ["eneos-1"]


def test_places_fuel_timeout_keeps_collected_candidates(ctx) -> None:
    point = ctx.route.points[8]
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        if len(calls) > 1:
            raise httpx.ReadTimeout("slow", request=request)
        return httpx.Response(200, json={"status": "OK", "results": [_eneos_place("eneos-1", point)]})

    provider = PlacesFuelProvider(api_key="test-key", transport=httpx.MockTransport(handler))
    ctx.fuel_brand = FuelBrand.EW

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    assert len(calls) == 2
    assert [c.id for c in candidates] == ["eneos-1"]


def test_places_rest_budget_stops_new_queries(ctx) -> None:
    point = ctx.route.points[5]
    calls = []

    async def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.params["keyword"])
        await asyncio.sleep(0.2)
        place = {
            "place_id": f"sa-{len(calls)}",
            "name": "足柄サービスエリア",
            "geometry": {"location": {"lat": point.lat, "lng": point.lng}},
        }
        return httpx.Response(200, json={"status": "OK", "results": [place]})

    provider = PlacesRestProvider(api_key="test-key", total_budget=0.05, transport=httpx.MockTransport(handler))

    candidates = asyncio.run(provider.fetch_candidates(ctx))

    assert calls == ["サービスエリア"]
    assert [c.id for c in candidates] == ["sa-1"]


def test_places_invalid_body_is_an_upstream_failure(ctx) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="<html>maintenance</html>"))
    provider = PlacesRestProvider(api_key="test-key", transport=transport)

    with pytest.raises(UpstreamFailure, match="invalid body"):
        asyncio.run(provider.fetch_candidates(ctx))
