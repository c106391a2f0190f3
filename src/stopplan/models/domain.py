"""Domain models for routes, stop candidates and rest windows."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional


class CandidateKind(str, Enum):
    REST = "REST"
    FUEL = "FUEL"


class CandidateSource(str, Enum):
    OPEN_DATA = "OPEN_DATA"
    COMMERCIAL = "COMMERCIAL"
    LOCAL_MASTER = "LOCAL_MASTER"


class FuelBrand(str, Enum):
    EW = "EW"
    USAMI = "USAMI"
    BOTH = "BOTH"

    def accepted(self) -> tuple["FuelBrand", ...]:
        if self is FuelBrand.BOTH:
            return (FuelBrand.EW, FuelBrand.USAMI)
        return (self,)


class RestStyle(str, Enum):
    SINGLE_30 = "SINGLE_30"
    MULTI_10 = "MULTI_10"


@dataclass(slots=True)
class RoutePoint:
    lat: float
    lng: float
    cumulative_distance_km: float
    cumulative_duration_min: float


@dataclass(slots=True)
class RouteSummary:
    """Route resolved for one planning request."""

    origin: str
    destination: str
    waypoints: List[str]
    total_distance_km: float
    total_duration_min: float
    polyline: str
    points: List[RoutePoint]


@dataclass(slots=True)
class RouteInput:
    """Origin/destination extracted from an expanded map link."""

    expanded_url: str
    origin: str
    destination: str
    waypoints: List[str]
    from_coordinates: bool = False


@dataclass(slots=True)
class Equipment:
    shower: bool = False
    open24h: bool = False
    convenience: bool = False
    large_parking: bool = False


@dataclass(slots=True)
class FacilityTypeFilter:
    sa_pa: bool = False
    expressway_rest: bool = False
    michi_no_eki: bool = False

    @property
    def active(self) -> bool:
        return self.sa_pa or self.expressway_rest or self.michi_no_eki


@dataclass(slots=True)
class FacilityEquipmentFilter:
    shower: bool = False
    open24h: bool = False
    convenience: bool = False
    large_parking: bool = False

    @property
    def active(self) -> bool:
        return self.shower or self.open24h or self.convenience or self.large_parking

    def accepts(self, equipment: Equipment) -> bool:
        if self.shower and not equipment.shower:
            return False
        if self.open24h and not equipment.open24h:
            return False
        if self.convenience and not equipment.convenience:
            return False
        if self.large_parking and not equipment.large_parking:
            return False
        return True


@dataclass(slots=True)
class StopCandidate:
    """A rest or fuel facility positioned relative to the current route."""

    id: str
    kind: CandidateKind
    name: str
    address: str
    lat: float
    lng: float
    source: CandidateSource
    is_highway: bool
    distance_from_route_km: float
    distance_from_start_km: float
    duration_from_start_min: float
    eta: datetime
    equipment: Equipment
    tags: List[str] = field(default_factory=list)
    brand: Optional[FuelBrand] = None


@dataclass(slots=True)
class RestWindow:
    window_id: int
    target_drive_limit_min: int
    start_after_min: float
    end_by_min: float
    target_break_min: int
    break_segments_min: List[int]
    eta: datetime
    primary_candidates: List[StopCandidate]
    backup_candidates: List[StopCandidate]


@dataclass(slots=True)
class FuelStation:
    """Row of the persisted fuel station master."""

    source_id: str
    brand: FuelBrand
    name: str
    address: str
    lat: float
    lng: float
    is_highway: bool = False
    service_24h: bool = False
    shower: bool = False
    convenience: bool = False
    large_parking: bool = False
