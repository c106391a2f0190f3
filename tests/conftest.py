from __future__ import annotations

from datetime import datetime, timezone

import pytest

from stopplan.models.domain import (
    CandidateKind,
    CandidateSource,
    Equipment,
    FuelBrand,
    RouteSummary,
    StopCandidate,
)
from stopplan.services.geospatial import build_route_points, encode_polyline
from stopplan.services.timing import add_minutes

DEPART_AT = datetime(2026, 4, 1, 0, 0, tzinfo=timezone.utc)

# Tokyo Station to Shin-Osaka, straight enough for offset arithmetic.
TOKYO = (35.6812, 139.7671)
SHIN_OSAKA = (34.7334, 135.5002)


def straight_coords(start: tuple[float, float], end: tuple[float, float], count: int = 41) -> list[tuple[float, float]]:
    return [
        (
            round(start[0] + (end[0] - start[0]) * i / (count - 1), 5),
            round(start[1] + (end[1] - start[1]) * i / (count - 1), 5),
        )
        for i in range(count)
    ]


def make_route(total_km: float = 500.0, total_min: float = 500.0, count: int = 41) -> RouteSummary:
    polyline = encode_polyline(straight_coords(TOKYO, SHIN_OSAKA, count))
    return RouteSummary(
        origin="東京駅",
        destination="新大阪駅",
        waypoints=[],
        total_distance_km=total_km,
        total_duration_min=total_min,
        polyline=polyline,
        points=build_route_points(polyline, total_km, total_min),
    )


def make_candidate(
    id: str,
    *,
    name: str | None = None,
    kind: CandidateKind = CandidateKind.REST,
    source: CandidateSource = CandidateSource.OPEN_DATA,
    lat: float = 35.0,
    lng: float = 137.0,
    is_highway: bool = False,
    route_km: float = 1.0,
    start_km: float = 100.0,
    start_min: float = 100.0,
    brand: FuelBrand | None = None,
) -> StopCandidate:
    return StopCandidate(
        id=id,
        kind=kind,
        name=name or f"Facility {id}",
        address="",
        lat=lat,
        lng=lng,
        source=source,
        is_highway=is_highway,
        distance_from_route_km=route_km,
        distance_from_start_km=start_km,
        duration_from_start_min=start_min,
        eta=add_minutes(DEPART_AT, start_min),
        equipment=Equipment(),
        tags=[],
        brand=brand,
    )


@pytest.fixture
def route() -> RouteSummary:
    return make_route()
