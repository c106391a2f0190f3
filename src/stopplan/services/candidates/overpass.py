"""Rest candidates from OpenStreetMap via the Overpass API."""

from __future__ import annotations

import logging
from typing import Iterable, Sequence
from urllib.parse import urlparse

import httpx

from ... import messages
from ...config import settings
from ...errors import UpstreamFailure, UpstreamTimeout
from ...models.domain import CandidateKind, CandidateSource, RouteSummary, StopCandidate
from ..geospatial import sample_route_points
from .base import CandidateProvider, ProviderContext, build_candidate
from .classify import classify_osm_tags, matches_type_filter

logger = logging.getLogger(__name__)

PRIORITY_HOSTS = ("overpass.kumi.systems", "overpass-api.de", "lz4.overpass-api.de", "z.overpass-api.de")
SAMPLE_STEP_KM = 35.0
MAX_SAMPLES = 25
UNKNOWN_NAME = "名称不明施設"


def _host_priority(endpoint: str) -> int:
    host = urlparse(endpoint).hostname
    if not host:
        return len(PRIORITY_HOSTS) + 2
    for index, preferred in enumerate(PRIORITY_HOSTS):
        if preferred in host:
            return index
    return len(PRIORITY_HOSTS) + 1


def order_endpoints(endpoints: Iterable[str]) -> list[str]:
    """Known-reliable hosts first, then unknown hosts, then unparsable URLs (stable)."""
    cleaned = [endpoint.strip() for endpoint in endpoints if endpoint and endpoint.strip()]
    return sorted(cleaned, key=_host_priority)


def build_query(route: RouteSummary, radius_m: int) -> str:
    clauses = []
    for lat, lng in sample_route_points(route.points, SAMPLE_STEP_KM, MAX_SAMPLES):
        around = f"around:{radius_m},{lat},{lng}"
        clauses.append(
            f'node({around})["highway"~"services|rest_area"];'
            f'way({around})["highway"~"services|rest_area"];'
            f'node({around})["name"~"道の駅"];'
            f'way({around})["name"~"道の駅"];'
        )
    body = "\n".join(clauses)
    return f"[out:json][timeout:40];(\n{body}\n);out center tags;"


class OverpassRestProvider(CandidateProvider):
    name = "overpass"
    source = CandidateSource.OPEN_DATA
    failure_message = messages.REST_OVERPASS_FAILED

    def __init__(
        self,
        endpoints: Sequence[str] | None = None,
        timeout: float | None = None,
        radius_km: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.endpoints = order_endpoints(endpoints if endpoints is not None else settings.overpass_api_urls)
        self.timeout = timeout if timeout is not None else settings.overpass_timeout_seconds
        self.corridor_km = radius_km if radius_km is not None else settings.route_buffer_km
        self._transport = transport

    async def _post_query(self, query: str) -> dict:
        last_error: Exception | None = None
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport) as client:
            for endpoint in self.endpoints:
                try:
                    response = await client.post(
                        endpoint,
                        content=query.encode("utf-8"),
                        headers={"Content-Type": "text/plain;charset=UTF-8"},
                    )
                except httpx.TimeoutException:
                    last_error = UpstreamTimeout(f"Overpass API ({endpoint})", self.timeout)
                    logger.warning(str(last_error))
                    continue
                except httpx.HTTPError as exc:
                    last_error = UpstreamFailure(f"Overpass API ({endpoint}): {exc}")
                    logger.warning(str(last_error))
                    continue
                if response.status_code >= 400:
                    last_error = UpstreamFailure(f"Overpass API ({endpoint}): {response.status_code}")
                    logger.warning(str(last_error))
                    continue
                return response.json()

        if last_error is None:
            raise UpstreamFailure("Overpass API: no endpoints configured")
        raise last_error

    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        query = build_query(ctx.route, int(round(self.corridor_km * 1000)))
        body = await self._post_query(query)

        seen: set[str] = set()
        candidates: list[StopCandidate] = []
        for element in body.get("elements", []):
            center = element.get("center") or {}
            lat = element.get("lat", center.get("lat"))
            lng = element.get("lon", center.get("lon"))
            if lat is None or lng is None:
                continue

            key = f"{element.get('type')}-{element.get('id')}"
            if key in seen:
                continue
            seen.add(key)

            tags = element.get("tags") or {}
            facility = classify_osm_tags(tags)
            if not matches_type_filter(facility, ctx.facility_types):
                continue
            if not ctx.equipment.accepts(facility.equipment):
                continue

            address = " ".join(
                part for part in (tags.get("addr:full"), tags.get("addr:city"), tags.get("addr:street")) if part
            )
            candidates.append(
                build_candidate(
                    ctx,
                    id=key,
                    kind=CandidateKind.REST,
                    name=tags.get("name") or UNKNOWN_NAME,
                    address=address,
                    lat=float(lat),
                    lng=float(lng),
                    source=self.source,
                    is_highway=facility.is_highway,
                    equipment=facility.equipment,
                    tags=facility.tags,
                )
            )

        logger.info(f"Overpass returned {len(candidates)} rest candidates")
        return sorted(candidates, key=lambda candidate: candidate.distance_from_start_km)
