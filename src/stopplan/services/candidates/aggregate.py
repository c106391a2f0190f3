"""Merging and corridor filtering of candidate lists."""

from __future__ import annotations

from typing import Iterable, Sequence

from ...models.domain import CandidateSource, StopCandidate

NO_BRAND = "-"


def normalize_name(name: str) -> str:
    return " ".join(name.lower().split())


def candidate_key(candidate: StopCandidate) -> tuple[str, str, float, float]:
    """Identity of the physical facility: brand, name and ~100 m grid cell."""
    brand = candidate.brand.value if candidate.brand is not None else NO_BRAND
    return (
        brand,
        normalize_name(candidate.name),
        round(candidate.lat, 3),
        round(candidate.lng, 3),
    )


def merge_candidates(*candidate_lists: Iterable[StopCandidate]) -> list[StopCandidate]:
    """Collapse duplicates across lists, keeping first-appearance order.

    On a key collision a record from the local master replaces a live-lookup
    record; otherwise the first one seen is kept.
    """
    merged: dict[tuple[str, str, float, float], StopCandidate] = {}
    for candidates in candidate_lists:
        for candidate in candidates:
            key = candidate_key(candidate)
            existing = merged.get(key)
            if existing is None:
                merged[key] = candidate
            elif (
                candidate.source is CandidateSource.LOCAL_MASTER
                and existing.source is not CandidateSource.LOCAL_MASTER
            ):
                merged[key] = candidate
    return list(merged.values())


def filter_corridor(candidates: Sequence[StopCandidate], max_offset_km: float) -> list[StopCandidate]:
    return [candidate for candidate in candidates if candidate.distance_from_route_km <= max_offset_km]
