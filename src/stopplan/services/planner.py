"""Plan orchestration: route resolution, rest and fuel candidates, rest windows."""

from __future__ import annotations

import logging
from typing import Optional, Sequence

import httpx

from .. import messages
from ..config import settings
from ..data.bootstrap import FuelMasterBootstrap
from ..errors import ConfigurationError, LinkResolutionError, UpstreamFailure, describe_error
from ..models.domain import RouteInput, RouteSummary
from ..schemas.plan import (
    ExtractedRouteInputModel,
    PlanRequest,
    PlanResponse,
    RestWindowModel,
    RouteSummaryModel,
    StopCandidateModel,
)
from .candidates.base import CandidateProvider, ProviderContext
from .candidates.cascade import run_rest_cascade
from .candidates.fuel import MasterFuelProvider, PlacesFuelProvider, collect_fuel_candidates
from .candidates.overpass import OverpassRestProvider
from .candidates.places import PlacesRestProvider
from .candidates.seed import SeedRestProvider
from .routing.directions_client import DirectionsClient
from .routing.link_resolver import build_coordinate_fallback, resolve_route_input
from .scheduling.rest_windows import build_rest_windows

logger = logging.getLogger(__name__)


def default_rest_providers(transport: Optional[httpx.AsyncBaseTransport] = None) -> list[CandidateProvider]:
    """Rest sources in fallback order: open geodata, commercial places, local catalog."""
    return [
        OverpassRestProvider(transport=transport),
        PlacesRestProvider(transport=transport),
        SeedRestProvider(),
    ]


def default_fuel_providers(transport: Optional[httpx.AsyncBaseTransport] = None) -> list[CandidateProvider]:
    return [
        MasterFuelProvider(),
        PlacesFuelProvider(transport=transport),
    ]


async def _fetch_route(
    directions: DirectionsClient,
    route_input: RouteInput,
    extra_waypoints: Sequence[str],
    warnings: list[str],
) -> tuple[RouteInput, RouteSummary]:
    """Fetch the route, retrying once from embedded coordinates on a not-found lookup."""
    try:
        route = await directions.fetch_route(route_input.origin, route_input.destination, route_input.waypoints)
        return route_input, route
    except UpstreamFailure as exc:
        if not exc.is_not_found or route_input.from_coordinates:
            raise
        fallback = build_coordinate_fallback(route_input.expanded_url, extra_waypoints)
        if fallback is None:
            raise LinkResolutionError(messages.ENDPOINTS_UNEXTRACTABLE) from exc
        logger.warning(f"Route lookup failed ({exc.status}); retrying from embedded coordinates")

    route = await directions.fetch_route(fallback.origin, fallback.destination, fallback.waypoints)
    warnings.append(messages.COORDINATE_FALLBACK)
    return fallback, route


async def plan_stops(
    payload: PlanRequest,
    bootstrap: FuelMasterBootstrap,
    *,
    directions: Optional[DirectionsClient] = None,
    rest_providers: Optional[Sequence[CandidateProvider]] = None,
    fuel_providers: Optional[Sequence[CandidateProvider]] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> PlanResponse:
    """Build a stop plan for one request.

    Only a missing configuration or an unusable route aborts the plan.
    Every degraded provider, substitution and empty result is reported in
    ``warnings`` and flips ``status`` to ``fallback``.
    """
    warnings: list[str] = []

    try:
        warnings.extend(await bootstrap.ensure_ready())
    except ConfigurationError:
        raise
    except Exception as exc:
        logger.warning(f"Fuel master bootstrap failed: {exc}")
        warnings.append(messages.BOOTSTRAP_FAILED.format(error=describe_error(exc)))

    directions = directions or DirectionsClient(transport=transport)

    route_input = await resolve_route_input(payload.map_url, payload.extra_waypoints, transport=transport)
    if route_input.from_coordinates:
        warnings.append(messages.COORDINATE_FALLBACK)
    route_input, route = await _fetch_route(directions, route_input, payload.extra_waypoints, warnings)
    if not route.points:
        raise UpstreamFailure("Directions API returned no route geometry (ZERO_RESULTS)", status="ZERO_RESULTS")

    ctx = ProviderContext(
        route=route,
        depart_at=payload.depart_at_iso,
        facility_types=payload.facility_types.to_domain(),
        equipment=payload.equipment.to_domain(),
        fuel_brand=payload.fuel_brand,
    )

    rest = await run_rest_cascade(
        rest_providers if rest_providers is not None else default_rest_providers(transport), ctx
    )
    warnings.extend(rest.warnings)

    fuel_range_km = payload.resolved_fuel_range_km(settings.default_fuel_range_km)
    fuel = await collect_fuel_candidates(
        fuel_providers if fuel_providers is not None else default_fuel_providers(transport),
        ctx,
        fuel_range_km,
        payload.prioritize_highway_stations,
    )
    warnings.extend(fuel.warnings)

    windows = build_rest_windows(
        total_duration_min=route.total_duration_min,
        depart_at=payload.depart_at_iso,
        allow_extended_drive=payload.allow_extended_drive,
        rest_style=payload.rest_style,
        rest_candidates=rest.candidates,
    )

    if not rest.candidates:
        warnings.append(messages.REST_EMPTY)
    if not fuel.candidates:
        warnings.append(messages.FUEL_EMPTY)

    logger.info(
        f"Planned {route.total_distance_km:.1f} km trip: {len(windows)} windows, "
        f"{len(rest.candidates)} rest ({rest.provider or 'none'}), {len(fuel.candidates)} fuel, "
        f"{len(warnings)} warnings"
    )

    return PlanResponse(
        status="fallback" if warnings else "ok",
        warnings=warnings,
        extracted_route_input=ExtractedRouteInputModel.from_domain(route_input),
        route=RouteSummaryModel.from_domain(route, payload.include_route_details),
        rest_windows=[RestWindowModel.from_domain(window) for window in windows],
        fuel_candidates=[StopCandidateModel.from_domain(candidate) for candidate in fuel.candidates],
    )


def error_hint(exc: BaseException) -> str:
    """Pick an actionable hint for a failed plan from the error text."""
    message = describe_error(exc)
    if "GOOGLE_MAPS_API_KEY" in message:
        return messages.HINT_MISSING_KEY
    if "REQUEST_DENIED" in message or "API key is expired" in message:
        return messages.HINT_KEY_DENIED
    if "NOT_FOUND" in message or "ZERO_RESULTS" in message:
        return messages.HINT_NOT_FOUND
    if "SUPABASE" in message or settings.station_table in message:
        return messages.HINT_STATION_STORE
    return messages.HINT_DEFAULT
