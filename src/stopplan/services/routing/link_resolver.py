"""Resolve a map-sharing link into origin, destination and waypoints."""

from __future__ import annotations

import logging
import re
from typing import Sequence
from urllib.parse import parse_qs, unquote, unquote_plus, urlparse

import httpx

from ... import messages
from ...config import settings
from ...errors import LinkResolutionError, UpstreamFailure, UpstreamTimeout
from ...models.domain import RouteInput

logger = logging.getLogger(__name__)

ALLOWED_MAP_HOSTS = frozenset(
    {
        "maps.app.goo.gl",
        "goo.gl",
        "www.google.com",
        "google.com",
        "maps.google.com",
        "www.google.co.jp",
        "google.co.jp",
    }
)
ROUTE_MARKER = "dir"
ORIGIN_PARAMS = ("origin", "saddr", "source")
DESTINATION_PARAMS = ("destination", "daddr", "dest")

_VIEW_STATE_PATTERN = re.compile(r"^(@|data=|am=)|^\d+(\.\d+)?[zm]$")
_COORD_PATTERN = re.compile(
    r"!1d(?P<lng1>-?\d+(?:\.\d+)?)!2d(?P<lat1>-?\d+(?:\.\d+)?)"
    r"|!3d(?P<lat2>-?\d+(?:\.\d+)?)!4d(?P<lng2>-?\d+(?:\.\d+)?)"
)


def is_supported_map_url(url: str) -> bool:
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in {"http", "https"} and (parsed.hostname or "") in ALLOWED_MAP_HOSTS


async def expand_map_url(
    url: str,
    timeout: float | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> str:
    """Follow redirects of a shortened link and return the final URL."""
    if not is_supported_map_url(url):
        raise LinkResolutionError(messages.UNSUPPORTED_LINK)

    timeout = timeout if timeout is not None else settings.link_expand_timeout_seconds
    async with httpx.AsyncClient(
        timeout=httpx.Timeout(timeout), follow_redirects=True, transport=transport
    ) as client:
        try:
            response = await client.get(url)
        except httpx.TimeoutException as exc:
            raise UpstreamTimeout("Map link expansion", timeout) from exc
        except httpx.HTTPError as exc:
            raise UpstreamFailure(f"Map link expansion failed: {exc}") from exc

    expanded = str(response.url)
    if not is_supported_map_url(expanded):
        raise LinkResolutionError(messages.UNSUPPORTED_LINK)
    logger.debug(f"Expanded map link {url} -> {expanded}")
    return expanded


def _sanitize_segment(segment: str) -> str:
    return unquote_plus(segment).strip()


def parse_from_path(path: str) -> tuple[str | None, str | None, list[str]]:
    segments = [segment for segment in path.split("/") if segment]
    if ROUTE_MARKER not in segments:
        return None, None, []

    route_segments: list[str] = []
    for raw in segments[segments.index(ROUTE_MARKER) + 1 :]:
        segment = _sanitize_segment(raw)
        if _VIEW_STATE_PATTERN.search(segment):
            break
        if segment:
            route_segments.append(segment)

    if len(route_segments) < 2:
        return None, None, []
    return route_segments[0], route_segments[-1], route_segments[1:-1]


def parse_from_query(query: str) -> tuple[str | None, str | None, list[str]]:
    params = parse_qs(query)

    def first(names: Sequence[str]) -> str | None:
        for name in names:
            values = [value.strip() for value in params.get(name, []) if value.strip()]
            if values:
                return values[0]
        return None

    raw_waypoints = first(("waypoints",)) or ""
    waypoints = [item.strip() for item in raw_waypoints.split("|") if item.strip()]
    return first(ORIGIN_PARAMS), first(DESTINATION_PARAMS), waypoints


def extract_coordinate_pairs(url: str) -> list[tuple[float, float]]:
    """Return (lat, lng) pairs embedded in the link's data blob, in order of appearance."""
    pairs: list[tuple[float, float]] = []
    for match in _COORD_PATTERN.finditer(unquote(url)):
        if match.group("lat1") is not None:
            lat, lng = float(match.group("lat1")), float(match.group("lng1"))
        else:
            lat, lng = float(match.group("lat2")), float(match.group("lng2"))
        if -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0:
            pairs.append((lat, lng))
    return pairs


def build_coordinate_fallback(expanded_url: str, waypoints: Sequence[str] = ()) -> RouteInput | None:
    pairs = extract_coordinate_pairs(expanded_url)
    if len(pairs) < 2:
        return None
    (origin_lat, origin_lng), (dest_lat, dest_lng) = pairs[0], pairs[-1]
    return RouteInput(
        expanded_url=expanded_url,
        origin=f"{origin_lat:.6f},{origin_lng:.6f}",
        destination=f"{dest_lat:.6f},{dest_lng:.6f}",
        waypoints=[item.strip() for item in waypoints if item.strip()],
        from_coordinates=True,
    )


def extract_route_input(expanded_url: str, extra_waypoints: Sequence[str] = ()) -> RouteInput:
    """Extract route endpoints from an already expanded URL.

    Query parameters win over path segments. When neither yields both
    endpoints the embedded coordinates are used instead; the result is then
    marked ``from_coordinates``.
    """
    parsed = urlparse(expanded_url)
    path_origin, path_destination, path_waypoints = parse_from_path(parsed.path)
    query_origin, query_destination, query_waypoints = parse_from_query(parsed.query)

    origin = query_origin or path_origin
    destination = query_destination or path_destination
    extras = [item.strip() for item in extra_waypoints if item.strip()]

    if not origin or not destination:
        fallback = build_coordinate_fallback(expanded_url, extras)
        if fallback is None:
            raise LinkResolutionError(messages.ENDPOINTS_UNEXTRACTABLE)
        logger.warning(f"No named endpoints in {expanded_url}; using embedded coordinates")
        return fallback

    waypoints = [
        item.strip()
        for item in [*(query_waypoints or path_waypoints), *extras]
        if item.strip()
    ]
    return RouteInput(expanded_url=expanded_url, origin=origin, destination=destination, waypoints=waypoints)


async def resolve_route_input(
    raw_url: str,
    extra_waypoints: Sequence[str] = (),
    transport: httpx.AsyncBaseTransport | None = None,
) -> RouteInput:
    expanded = await expand_map_url(raw_url, transport=transport)
    return extract_route_input(expanded, extra_waypoints)
