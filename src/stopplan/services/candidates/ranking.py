"""Scoring of fuel station candidates."""

from __future__ import annotations

from typing import Sequence

from ...models.domain import StopCandidate

DEFAULT_FUEL_LIMIT = 20


def fuel_score(candidate: StopCandidate, fuel_range_km: float, prioritize_highway: bool) -> float:
    """Favour preferred infrastructure close to the route and just inside the usable range."""
    score = 0.0
    if prioritize_highway and candidate.is_highway:
        score += 1000
    if candidate.distance_from_start_km <= fuel_range_km:
        score += 500
    score += max(0.0, 200 - candidate.distance_from_route_km * 20)
    score += max(0.0, 120 - abs(candidate.distance_from_start_km - fuel_range_km) * 1.2)
    return score


def rank_fuel_candidates(
    candidates: Sequence[StopCandidate],
    fuel_range_km: float,
    prioritize_highway: bool,
    limit: int = DEFAULT_FUEL_LIMIT,
) -> list[StopCandidate]:
    ranked = sorted(
        candidates,
        key=lambda candidate: (
            -fuel_score(candidate, fuel_range_km, prioritize_highway),
            candidate.distance_from_route_km,
        ),
    )
    return ranked[:limit]
