"""Rest candidates from the bundled local catalog."""

from __future__ import annotations

import functools
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ... import messages
from ...config import settings
from ...models.domain import CandidateKind, CandidateSource, Equipment, StopCandidate
from .base import CandidateProvider, ProviderContext, build_candidate
from .classify import classify_seed_tags, matches_type_filter

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class SeedRestArea:
    id: str
    name: str
    address: str
    lat: float
    lng: float
    is_highway: bool
    tags: tuple[str, ...]
    equipment: Equipment


def _parse_equipment(raw: Optional[dict]) -> Equipment:
    raw = raw or {}
    return Equipment(
        shower=bool(raw.get("shower", False)),
        open24h=bool(raw.get("open24h", False)),
        convenience=bool(raw.get("convenience", False)),
        large_parking=bool(raw.get("largeParking", raw.get("large_parking", False))),
    )


@functools.lru_cache(maxsize=4)
def load_rest_seed(source: Optional[Path] = None) -> tuple[SeedRestArea, ...]:
    """Load the local rest catalog from JSON."""

    seed_path = source or settings.rest_seed_file
    if not seed_path.exists():
        raise FileNotFoundError(f"Rest seed file not found: {seed_path}")

    with seed_path.open("r", encoding="utf-8") as handle:
        rows = json.load(handle)

    areas: list[SeedRestArea] = []
    for row in rows:
        try:
            areas.append(
                SeedRestArea(
                    id=str(row["id"]),
                    name=str(row["name"]).strip(),
                    address=str(row.get("address", "")).strip(),
                    lat=float(row["lat"]),
                    lng=float(row["lng"]),
                    is_highway=bool(row.get("isHighway", False)),
                    tags=tuple(row.get("tags") or ()),
                    equipment=_parse_equipment(row.get("equipment")),
                )
            )
        except (KeyError, ValueError, TypeError) as exc:
            logger.warning(f"Skipping invalid rest seed row: {exc}")
            continue
    return tuple(areas)


class SeedRestProvider(CandidateProvider):
    name = "seed"
    source = CandidateSource.LOCAL_MASTER
    substitution_message = messages.REST_SEED_SUBSTITUTED
    failure_message = messages.REST_SEED_FAILED

    def __init__(self, source: Path | None = None, corridor_km: float | None = None) -> None:
        self.seed_path = source
        self.corridor_km = corridor_km or settings.seed_corridor_km

    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        candidates: list[StopCandidate] = []
        for area in load_rest_seed(self.seed_path):
            facility = classify_seed_tags(area.tags, area.equipment)
            if not matches_type_filter(facility, ctx.facility_types):
                continue
            if not ctx.equipment.accepts(area.equipment):
                continue
            candidates.append(
                build_candidate(
                    ctx,
                    id=area.id,
                    kind=CandidateKind.REST,
                    name=area.name,
                    address=area.address,
                    lat=area.lat,
                    lng=area.lng,
                    source=self.source,
                    is_highway=area.is_highway,
                    equipment=area.equipment,
                    tags=area.tags,
                )
            )
        return sorted(candidates, key=lambda candidate: candidate.distance_from_start_km)
