"""Geospatial helper functions."""

from __future__ import annotations

import math
from typing import Iterable, Sequence

from ..models.domain import RoutePoint

EARTH_RADIUS_KM = 6371.0
POLYLINE_PRECISION = 1e5


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute distance between two coordinates using the Haversine formula."""

    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def _decode_value(polyline: str, index: int) -> tuple[int, int] | None:
    shift = 0
    result = 0
    while True:
        if index >= len(polyline):
            return None
        b = ord(polyline[index]) - 63
        index += 1
        result |= (b & 0x1F) << shift
        shift += 5
        if b < 0x20:
            break
    value = ~(result >> 1) if (result & 1) else (result >> 1)
    return value, index


def decode_polyline(polyline: str) -> list[tuple[float, float]]:
    """Decode an encoded polyline string to a list of (lat, lng) coordinates.

    A truncated trailing value (input ending mid-group or with a latitude but
    no longitude) is dropped rather than raising.
    """
    coordinates: list[tuple[float, float]] = []
    index = 0
    lat = 0
    lng = 0

    while index < len(polyline):
        decoded_lat = _decode_value(polyline, index)
        if decoded_lat is None:
            break
        dlat, index = decoded_lat
        decoded_lng = _decode_value(polyline, index)
        if decoded_lng is None:
            break
        dlng, index = decoded_lng

        lat += dlat
        lng += dlng
        coordinates.append((lat / POLYLINE_PRECISION, lng / POLYLINE_PRECISION))

    return coordinates


def _encode_value(value: int) -> str:
    value = ~(value << 1) if value < 0 else value << 1
    chunks = []
    while value >= 0x20:
        chunks.append(chr((0x20 | (value & 0x1F)) + 63))
        value >>= 5
    chunks.append(chr(value + 63))
    return "".join(chunks)


def encode_polyline(coordinates: Iterable[tuple[float, float]]) -> str:
    """Encode (lat, lng) pairs with the same 1e-5 precision used by decode_polyline."""
    output = []
    prev_lat = 0
    prev_lng = 0
    for lat, lng in coordinates:
        lat_i = int(round(lat * POLYLINE_PRECISION))
        lng_i = int(round(lng * POLYLINE_PRECISION))
        output.append(_encode_value(lat_i - prev_lat))
        output.append(_encode_value(lng_i - prev_lng))
        prev_lat, prev_lng = lat_i, lng_i
    return "".join(output)


def build_route_points(
    polyline: str,
    total_distance_km: float,
    total_duration_min: float,
) -> list[RoutePoint]:
    """Spread route totals over the decoded points.

    Cumulative distance and duration are apportioned by the great-circle
    length travelled along the polyline so far, so dense stretches of points
    do not skew the ETA. Values stay unrounded.
    """
    decoded = decode_polyline(polyline)
    if not decoded:
        return []

    segment_lengths = [
        haversine_km(prev[0], prev[1], curr[0], curr[1])
        for prev, curr in zip(decoded, decoded[1:])
    ]
    polyline_length = sum(segment_lengths)

    points = [RoutePoint(lat=decoded[0][0], lng=decoded[0][1], cumulative_distance_km=0.0, cumulative_duration_min=0.0)]
    travelled = 0.0
    for (lat, lng), segment in zip(decoded[1:], segment_lengths):
        travelled += segment
        ratio = travelled / polyline_length if polyline_length > 0 else 0.0
        # Guard the last point against float drift past the totals.
        ratio = min(ratio, 1.0)
        points.append(
            RoutePoint(
                lat=lat,
                lng=lng,
                cumulative_distance_km=total_distance_km * ratio,
                cumulative_duration_min=total_duration_min * ratio,
            )
        )
    return points


def sample_route_points(
    points: Sequence[RoutePoint],
    step_km: float,
    limit: int,
) -> list[tuple[float, float]]:
    """Pick one point every ``step_km`` of cumulative distance, at most ``limit``."""
    sampled: list[tuple[float, float]] = []
    next_target = 0.0
    for point in points:
        if point.cumulative_distance_km >= next_target:
            sampled.append((point.lat, point.lng))
            next_target += step_km
    if not sampled and points:
        sampled.append((points[0].lat, points[0].lng))
    return sampled[:limit]
