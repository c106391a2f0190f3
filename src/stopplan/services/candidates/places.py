"""Rest candidates from the Google Places API (nearby search + details)."""

from __future__ import annotations

import logging
import math
from typing import Optional

import httpx

from ... import messages
from ...config import settings
from ...errors import UpstreamFailure, UpstreamTimeout
from ...models.domain import CandidateKind, CandidateSource, FacilityTypeFilter, StopCandidate
from ..geospatial import sample_route_points
from ..timing import Deadline
from .base import CandidateProvider, ProviderContext, build_candidate
from .classify import classify_place, matches_type_filter

logger = logging.getLogger(__name__)

NEARBY_RADIUS_M = 12000
RESULTS_PER_QUERY = 6
MAX_REST_CANDIDATES = 20
MIN_DETAILS_BUDGET_SECONDS = 0.5


class PlacesClient:
    """Thin async wrapper over the nearby-search and place-details endpoints."""

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = (base_url or settings.places_base_url).rstrip("/")
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "PlacesClient":
        self._client = httpx.AsyncClient(transport=self._transport)
        return self

    async def __aexit__(self, *exc_info) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def nearby_search(
        self,
        lat: float,
        lng: float,
        keyword: str,
        timeout: float,
        place_type: str | None = None,
        radius_m: int = NEARBY_RADIUS_M,
    ) -> list[dict]:
        """Return raw nearby results.

        A timeout or an unreadable body raises; an error status yields an empty list.
        """
        params = {
            "location": f"{lat},{lng}",
            "radius": str(radius_m),
            "language": settings.maps_language,
            "keyword": keyword,
            "key": self.api_key,
        }
        if place_type:
            params["type"] = place_type
        try:
            response = await self._client.get(
                f"{self.base_url}/nearbysearch/json", params=params, timeout=httpx.Timeout(timeout)
            )
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout("Places NearbySearch", timeout) from exc
        if response.status_code >= 400:
            logger.warning(f"Places NearbySearch returned HTTP {response.status_code} for {keyword!r}")
            return []
        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamFailure("Places NearbySearch returned an invalid body") from exc
        status = body.get("status")
        if status not in {"OK", "ZERO_RESULTS"}:
            logger.warning(f"Places NearbySearch status {status} for {keyword!r}: {body.get('error_message', '')}")
            return []
        return body.get("results") or []

    async def place_details(self, place_id: str, timeout: float) -> Optional[dict]:
        params = {
            "place_id": place_id,
            "language": settings.maps_language,
            "fields": "name,formatted_address,types,opening_hours",
            "key": self.api_key,
        }
        try:
            response = await self._client.get(
                f"{self.base_url}/details/json", params=params, timeout=httpx.Timeout(timeout)
            )
            if response.status_code >= 400:
                return None
            body = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.debug(f"Place details lookup failed for {place_id}: {exc}")
            return None
        if body.get("status") != "OK":
            return None
        return body.get("result")


def search_keywords(type_filter: FacilityTypeFilter) -> list[str]:
    keywords: list[str] = []
    if type_filter.sa_pa or type_filter.expressway_rest:
        keywords.append("サービスエリア")
    if type_filter.michi_no_eki:
        keywords.append("道の駅")
    return keywords or ["サービスエリア", "道の駅"]


def result_location(result: dict) -> tuple[float, float] | None:
    location = (result.get("geometry") or {}).get("location") or {}
    lat, lng = location.get("lat"), location.get("lng")
    if lat is None or lng is None:
        return None
    return float(lat), float(lng)


class PlacesRestProvider(CandidateProvider):
    name = "places"
    source = CandidateSource.COMMERCIAL
    substitution_message = messages.REST_PLACES_SUBSTITUTED
    failure_message = messages.REST_PLACES_FAILED

    def __init__(
        self,
        api_key: str | None = None,
        nearby_timeout: float | None = None,
        details_timeout: float | None = None,
        total_budget: float | None = None,
        corridor_km: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.places_api_key
        self.nearby_timeout = nearby_timeout or settings.places_nearby_timeout_seconds
        self.details_timeout = details_timeout or settings.places_details_timeout_seconds
        self.total_budget = total_budget or settings.places_total_budget_seconds
        self.corridor_km = corridor_km or settings.places_corridor_km
        self._transport = transport

    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        if not self.api_key:
            logger.info("Places API key not configured; skipping places rest lookup")
            return []

        step_km = max(90.0, math.ceil(ctx.route.total_distance_km / 3))
        samples = sample_route_points(ctx.route.points, step_km, 3)
        keywords = search_keywords(ctx.facility_types)
        deadline = Deadline(self.total_budget)
        needs_details = ctx.equipment.active

        seen: set[str] = set()
        candidates: list[StopCandidate] = []
        async with PlacesClient(self.api_key, transport=self._transport) as places:
            for lat, lng in samples:
                for keyword in keywords:
                    if deadline.expired:
                        break
                    # The budget only gates new sub-queries; one already issued gets its full timeout.
                    results = await places.nearby_search(lat, lng, keyword, self.nearby_timeout)
                    for result in results[:RESULTS_PER_QUERY]:
                        if len(candidates) >= MAX_REST_CANDIDATES:
                            break
                        location = result_location(result)
                        place_id = result.get("place_id")
                        if location is None or not place_id or place_id in seen:
                            continue
                        if result.get("business_status") == "CLOSED_PERMANENTLY":
                            continue
                        name = result.get("name", "")
                        if not matches_type_filter(classify_place(name), ctx.facility_types):
                            continue

                        details = None
                        if needs_details and deadline.remaining() > MIN_DETAILS_BUDGET_SECONDS:
                            details = await places.place_details(place_id, self.details_timeout)
                        facility = classify_place(name, result.get("types") or [], details)
                        if not ctx.equipment.accepts(facility.equipment):
                            continue

                        seen.add(place_id)
                        candidates.append(
                            build_candidate(
                                ctx,
                                id=place_id,
                                kind=CandidateKind.REST,
                                name=(details or {}).get("name") or name,
                                address=(details or {}).get("formatted_address") or result.get("vicinity", ""),
                                lat=location[0],
                                lng=location[1],
                                source=self.source,
                                is_highway=facility.is_highway,
                                equipment=facility.equipment,
                                tags=facility.tags,
                            )
                        )

        logger.info(f"Places returned {len(candidates)} rest candidates")
        return sorted(candidates, key=lambda candidate: candidate.distance_from_start_km)
