"""Projection of arbitrary coordinates onto a decoded route."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Sequence

from ...models.domain import RoutePoint, RouteSummary
from ..geospatial import haversine_km


@dataclass(slots=True)
class RoutePosition:
    index: int
    distance_from_route_km: float
    distance_from_start_km: float
    duration_from_start_min: float


def nearest_point(lat: float, lng: float, points: Sequence[RoutePoint]) -> tuple[int, float]:
    """Return (index, distance_km) of the route point closest to the target."""
    if not points:
        raise ValueError("Route has no points to locate against.")

    best_index = 0
    best_distance = math.inf
    for index, point in enumerate(points):
        distance = haversine_km(lat, lng, point.lat, point.lng)
        if distance < best_distance:
            best_distance = distance
            best_index = index
    return best_index, best_distance


def locate_on_route(route: RouteSummary, lat: float, lng: float) -> RoutePosition:
    index, distance = nearest_point(lat, lng, route.points)
    point = route.points[index]
    return RoutePosition(
        index=index,
        distance_from_route_km=distance,
        distance_from_start_km=point.cumulative_distance_km,
        duration_from_start_min=point.cumulative_duration_min,
    )
