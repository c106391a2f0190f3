"""HTTP client for the Google Directions API."""

from __future__ import annotations

import logging
from typing import Sequence

import httpx

from ...config import settings
from ...errors import ConfigurationError, UpstreamFailure, UpstreamTimeout
from ...models.domain import RouteSummary
from ..geospatial import build_route_points

logger = logging.getLogger(__name__)


class DirectionsClient:
    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_maps_api_key
        if not self.api_key:
            raise ConfigurationError("STOPPLAN_GOOGLE_MAPS_API_KEY is not configured.")
        self.base_url = base_url or settings.directions_base_url
        self.timeout = timeout if timeout is not None else settings.directions_timeout_seconds
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self.timeout), transport=self._transport)

    async def fetch_route(self, origin: str, destination: str, waypoints: Sequence[str] = ()) -> RouteSummary:
        """Fetch a driving route and spread its totals over the overview polyline.

        Raises:
            UpstreamTimeout: the request exceeded the configured timeout.
            UpstreamFailure: non-2xx response or a status other than ``OK``;
                ``NOT_FOUND``/``ZERO_RESULTS`` are flagged via ``is_not_found``.
        """
        params = {
            "origin": origin,
            "destination": destination,
            "language": settings.maps_language,
            "region": settings.maps_region,
            "key": self.api_key,
        }
        if waypoints:
            params["waypoints"] = "|".join(waypoints)

        async with self._client() as client:
            try:
                response = await client.get(self.base_url, params=params)
            except httpx.TimeoutException as exc:
                raise UpstreamTimeout("Directions API", self.timeout) from exc
            except httpx.HTTPError as exc:
                raise UpstreamFailure(f"Directions API request failed: {exc}") from exc

        if response.status_code >= 400:
            raise UpstreamFailure(f"Directions API request failed: {response.status_code}")

        try:
            body = response.json()
        except ValueError as exc:
            raise UpstreamFailure("Directions API returned an invalid body") from exc
        status = body.get("status")
        routes = body.get("routes") or []
        if status != "OK" or not routes:
            message = body.get("error_message") or f"Route lookup failed: {status}"
            if status and status not in message:
                message = f"{message} ({status})"
            raise UpstreamFailure(message, status=status)

        route = routes[0]
        legs = route.get("legs") or []
        total_distance_km = sum(leg["distance"]["value"] for leg in legs) / 1000.0
        total_duration_min = sum(leg["duration"]["value"] for leg in legs) / 60.0
        polyline = route.get("overview_polyline", {}).get("points", "")
        points = build_route_points(polyline, total_distance_km, total_duration_min)
        logger.info(
            f"Resolved route {origin!r} -> {destination!r}: {total_distance_km:.1f} km, "
            f"{total_duration_min:.1f} min, {len(points)} points"
        )

        return RouteSummary(
            origin=origin,
            destination=destination,
            waypoints=list(waypoints),
            total_distance_km=total_distance_km,
            total_duration_min=total_duration_min,
            polyline=polyline,
            points=points,
        )


async def check_health(api_key: str | None = None) -> bool:
    """Return True when a key is configured and the Directions endpoint answers."""
    key = api_key or settings.google_maps_api_key
    if not key:
        return False
    try:
        async with httpx.AsyncClient(timeout=5.0) as client:
            response = await client.get(
                settings.directions_base_url,
                params={"origin": "東京駅", "destination": "品川駅", "key": key},
            )
        response.raise_for_status()
        return response.json().get("status") == "OK"
    except httpx.HTTPError:
        return False
