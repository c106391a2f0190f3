"""Base classes for candidate provider implementations."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Sequence

from ...models.domain import (
    CandidateKind,
    CandidateSource,
    Equipment,
    FacilityEquipmentFilter,
    FacilityTypeFilter,
    FuelBrand,
    RouteSummary,
    StopCandidate,
)
from ..routing.locator import locate_on_route
from ..timing import add_minutes


@dataclass(slots=True)
class ProviderContext:
    """Everything a provider needs to search along one route."""

    route: RouteSummary
    depart_at: datetime
    facility_types: FacilityTypeFilter = field(default_factory=FacilityTypeFilter)
    equipment: FacilityEquipmentFilter = field(default_factory=FacilityEquipmentFilter)
    fuel_brand: FuelBrand = FuelBrand.BOTH


class CandidateProvider(ABC):
    """Contract for rest/fuel candidate sources.

    ``fetch_candidates`` returns candidates already positioned on the route
    but not yet corridor-filtered, or raises when the source is unavailable.
    """

    name: str = "provider"
    source: CandidateSource
    corridor_km: float
    substitution_message: Optional[str] = None
    failure_message: str = "{error}"

    @abstractmethod
    async def fetch_candidates(self, ctx: ProviderContext) -> list[StopCandidate]:
        raise NotImplementedError


def build_candidate(
    ctx: ProviderContext,
    *,
    id: str,
    kind: CandidateKind,
    name: str,
    address: str,
    lat: float,
    lng: float,
    source: CandidateSource,
    is_highway: bool,
    equipment: Equipment,
    tags: Sequence[str] = (),
    brand: FuelBrand | None = None,
) -> StopCandidate:
    """Create a candidate with route offsets computed against ``ctx.route``."""
    position = locate_on_route(ctx.route, lat, lng)
    return StopCandidate(
        id=id,
        kind=kind,
        name=name,
        address=address,
        lat=lat,
        lng=lng,
        source=source,
        is_highway=is_highway,
        distance_from_route_km=position.distance_from_route_km,
        distance_from_start_km=position.distance_from_start_km,
        duration_from_start_min=position.duration_from_start_min,
        eta=add_minutes(ctx.depart_at, position.duration_from_start_min),
        equipment=equipment,
        tags=list(tags),
        brand=brand,
    )
