"""Fuel station candidates: station master and live places lookup, merged in parallel."""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass, field
from typing import Sequence

import httpx

from ... import messages
from ...config import settings
from ...data import station_repository
from ...errors import ConfigurationError, UpstreamTimeout, describe_error
from ...models.domain import CandidateKind, CandidateSource, Equipment, FuelStation, StopCandidate
from ..geospatial import sample_route_points
from ..timing import Deadline
from .aggregate import filter_corridor, merge_candidates
from .base import CandidateProvider, ProviderContext, build_candidate
from .classify import BRAND_KEYWORDS, classify_fuel_place, classify_place, station_tags
from .places import PlacesClient, result_location
from .ranking import rank_fuel_candidates

logger = logging.getLogger(__name__)

MAX_FUEL_SAMPLES = 4
MIN_FUEL_SAMPLE_STEP_KM = 60.0
MAX_LIVE_FUEL_CANDIDATES = 30


def station_to_candidate(ctx: ProviderContext, station: FuelStation) -> StopCandidate:
    return build_candidate(
        ctx,
        id=station.source_id,
        kind=CandidateKind.FUEL,
        name=station.name,
        address=station.address,
        lat=station.lat,
        lng=station.lng,
        source=CandidateSource.LOCAL_MASTER,
        is_highway=station.is_highway,
        equipment=Equipment(
            shower=station.shower,
            open24h=station.service_24h,
            convenience=station.convenience,
            large_parking=station.large_parking,
        ),
        tags=station_tags(station.is_highway),
        brand=station.brand,
    )


class MasterFuelProvider(CandidateProvider):
    name = "fuel-master"
    source = CandidateSource.LOCAL_MASTER
    failure_message = messages.FUEL_MASTER_FAILED

    def __init__(self, timeout: float | None = None, corridor_km: float | None = None) -> None:
        self.timeout = timeout or settings.fuel_master_timeout_seconds
        self.corridor_km = corridor_km or settings.fuel_corridor_km

    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        stations = await asyncio.to_thread(station_repository.get_stations, ctx.fuel_brand.accepted())
        return [station_to_candidate(ctx, station) for station in stations]


class PlacesFuelProvider(CandidateProvider):
    """Live gas-station search per accepted brand around points sampled along the route."""

    name = "fuel-places"
    source = CandidateSource.COMMERCIAL
    failure_message = messages.FUEL_LIVE_FAILED

    def __init__(
        self,
        api_key: str | None = None,
        nearby_timeout: float | None = None,
        total_budget: float | None = None,
        corridor_km: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.places_api_key
        self.nearby_timeout = nearby_timeout or settings.places_nearby_timeout_seconds
        self.total_budget = total_budget or settings.fuel_phase_budget_seconds
        self.corridor_km = corridor_km or settings.fuel_corridor_km
        self._transport = transport

    @property
    def timeout(self) -> float:
        # In-flight queries may finish after the budget stops new ones.
        return self.total_budget + self.nearby_timeout

    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        if not self.api_key:
            logger.info("Places API key not configured; skipping live fuel lookup")
            return []

        step_km = max(MIN_FUEL_SAMPLE_STEP_KM, math.ceil(ctx.route.total_distance_km / MAX_FUEL_SAMPLES))
        samples = sample_route_points(ctx.route.points, step_km, MAX_FUEL_SAMPLES)
        accepted = set(ctx.fuel_brand.accepted())
        deadline = Deadline(self.total_budget)

        seen: set[str] = set()
        candidates: list[StopCandidate] = []
        async with PlacesClient(self.api_key, transport=self._transport) as places:
            for lat, lng in samples:
                for brand in ctx.fuel_brand.accepted():
                    if deadline.expired or len(candidates) >= MAX_LIVE_FUEL_CANDIDATES:
                        break
                    try:
                        results = await places.nearby_search(
                            lat,
                            lng,
                            BRAND_KEYWORDS[brand],
                            self.nearby_timeout,
                            place_type="gas_station",
                        )
                    except UpstreamTimeout as exc:
                        logger.warning(f"Live fuel lookup stopped early, keeping {len(candidates)} candidates: {exc}")
                        return candidates
                    for result in results:
                        location = result_location(result)
                        place_id = result.get("place_id")
                        if location is None or not place_id or place_id in seen:
                            continue
                        if result.get("business_status") == "CLOSED_PERMANENTLY":
                            continue
                        name = result.get("name", "")
                        detected_brand, is_highway = classify_fuel_place(name)
                        if detected_brand not in accepted:
                            continue
                        seen.add(place_id)
                        candidates.append(
                            build_candidate(
                                ctx,
                                id=place_id,
                                kind=CandidateKind.FUEL,
                                name=name,
                                address=result.get("vicinity", ""),
                                lat=location[0],
                                lng=location[1],
                                source=self.source,
                                is_highway=is_highway,
                                equipment=classify_place(name, result.get("types") or []).equipment,
                                tags=station_tags(is_highway),
                                brand=detected_brand,
                            )
                        )

        logger.info(f"Places returned {len(candidates)} live fuel candidates")
        return candidates


@dataclass(slots=True)
class FuelResult:
    candidates: list[StopCandidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


async def _guarded_fetch(provider: CandidateProvider, ctx: ProviderContext, timeout: float) -> list[StopCandidate]:
    try:
        return await asyncio.wait_for(provider.fetch_candidates(ctx), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise UpstreamTimeout(f"{provider.name} lookup", timeout) from exc


async def collect_fuel_candidates(
    providers: Sequence[CandidateProvider],
    ctx: ProviderContext,
    fuel_range_km: float,
    prioritize_highway: bool,
    limit: int | None = None,
) -> FuelResult:
    """Query all fuel providers concurrently and merge whatever succeeds.

    Each provider is bounded by its own ``timeout``; failures become warnings.
    The merged list is corridor-filtered, ranked and capped.
    """
    outcomes = await asyncio.gather(
        *(
            _guarded_fetch(provider, ctx, getattr(provider, "timeout", settings.fuel_phase_budget_seconds))
            for provider in providers
        ),
        return_exceptions=True,
    )

    result = FuelResult()
    lists: list[list[StopCandidate]] = []
    corridor_km = min((provider.corridor_km for provider in providers), default=settings.fuel_corridor_km)
    for provider, outcome in zip(providers, outcomes):
        if isinstance(outcome, (asyncio.CancelledError, ConfigurationError)):
            raise outcome
        if isinstance(outcome, BaseException):
            logger.warning(f"Fuel provider '{provider.name}' failed: {outcome}")
            result.warnings.append(provider.failure_message.format(error=describe_error(outcome)))
            continue
        lists.append(outcome)

    merged = filter_corridor(merge_candidates(*lists), corridor_km)
    result.candidates = rank_fuel_candidates(
        merged,
        fuel_range_km,
        prioritize_highway,
        limit=limit or settings.fuel_candidate_limit,
    )
    return result
