"""Stop planning request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional
from urllib.parse import urlparse

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..models.domain import (
    CandidateKind,
    CandidateSource,
    FacilityEquipmentFilter,
    FacilityTypeFilter,
    FuelBrand,
    RestStyle,
    RestWindow,
    RouteInput,
    RouteSummary,
    StopCandidate,
)
from ..services.timing import format_iso


class CamelModel(BaseModel):
    """Snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class FacilityTypesModel(CamelModel):
    sa_pa: bool = False
    expressway_rest: bool = False
    michi_no_eki: bool = False

    def to_domain(self) -> FacilityTypeFilter:
        return FacilityTypeFilter(
            sa_pa=self.sa_pa,
            expressway_rest=self.expressway_rest,
            michi_no_eki=self.michi_no_eki,
        )


class EquipmentModel(CamelModel):
    shower: bool = False
    open24h: bool = False
    convenience: bool = False
    large_parking: bool = False

    def to_domain(self) -> FacilityEquipmentFilter:
        return FacilityEquipmentFilter(
            shower=self.shower,
            open24h=self.open24h,
            convenience=self.convenience,
            large_parking=self.large_parking,
        )


class PlanRequest(CamelModel):
    map_url: str = Field(..., description="Map sharing link (short or expanded).")
    depart_at_iso: datetime = Field(..., description="Departure time; naive values are read as UTC.")
    extra_waypoints: List[str] = Field(default_factory=list)
    include_route_details: bool = Field(default=False, description="Return the polyline and sampled points.")
    allow_extended_drive: bool
    rest_style: RestStyle
    facility_types: FacilityTypesModel
    equipment: EquipmentModel
    fuel_brand: FuelBrand
    prioritize_highway_stations: bool
    fuel_range_km: Optional[float] = Field(default=None, gt=0)
    fuel_range_preset: Optional[Literal[50, 100, 150, 200]] = None

    @field_validator("map_url")
    @classmethod
    def _validate_map_url(cls, value: str) -> str:
        value = value.strip()
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError("must be an absolute http(s) URL")
        return value

    @field_validator("extra_waypoints")
    @classmethod
    def _strip_waypoints(cls, value: List[str]) -> List[str]:
        return [item.strip() for item in value if item.strip()]

    def resolved_fuel_range_km(self, default: float) -> float:
        if self.fuel_range_km is not None:
            return self.fuel_range_km
        if self.fuel_range_preset is not None:
            return float(self.fuel_range_preset)
        return default


class CandidateEquipmentModel(CamelModel):
    shower: bool
    open24h: bool
    convenience: bool
    large_parking: bool


class StopCandidateModel(CamelModel):
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
    eta_iso: str
    equipment: CandidateEquipmentModel
    tags: List[str]
    brand: Optional[FuelBrand] = None

    @classmethod
    def from_domain(cls, candidate: StopCandidate) -> "StopCandidateModel":
        return cls(
            id=candidate.id,
            kind=candidate.kind,
            name=candidate.name,
            address=candidate.address,
            lat=candidate.lat,
            lng=candidate.lng,
            source=candidate.source,
            is_highway=candidate.is_highway,
            distance_from_route_km=round(candidate.distance_from_route_km, 2),
            distance_from_start_km=round(candidate.distance_from_start_km, 2),
            duration_from_start_min=round(candidate.duration_from_start_min, 1),
            eta_iso=format_iso(candidate.eta),
            equipment=CandidateEquipmentModel(
                shower=candidate.equipment.shower,
                open24h=candidate.equipment.open24h,
                convenience=candidate.equipment.convenience,
                large_parking=candidate.equipment.large_parking,
            ),
            tags=list(candidate.tags),
            brand=candidate.brand,
        )


class RestWindowModel(CamelModel):
    window_id: int
    target_drive_limit_min: int
    start_after_min: float
    end_by_min: float
    target_break_min: int
    break_segments_min: List[int]
    eta_iso: str
    primary_candidates: List[StopCandidateModel]
    backup_candidates: List[StopCandidateModel]

    @classmethod
    def from_domain(cls, window: RestWindow) -> "RestWindowModel":
        return cls(
            window_id=window.window_id,
            target_drive_limit_min=window.target_drive_limit_min,
            start_after_min=window.start_after_min,
            end_by_min=window.end_by_min,
            target_break_min=window.target_break_min,
            break_segments_min=list(window.break_segments_min),
            eta_iso=format_iso(window.eta),
            primary_candidates=[StopCandidateModel.from_domain(item) for item in window.primary_candidates],
            backup_candidates=[StopCandidateModel.from_domain(item) for item in window.backup_candidates],
        )


class RoutePointModel(CamelModel):
    lat: float
    lng: float
    cumulative_distance_km: float
    cumulative_duration_min: float


class RouteSummaryModel(CamelModel):
    origin: str
    destination: str
    waypoints: List[str]
    total_distance_km: float
    total_duration_min: float
    polyline: str
    points: List[RoutePointModel]

    @classmethod
    def from_domain(cls, route: RouteSummary, include_details: bool) -> "RouteSummaryModel":
        points = (
            [
                RoutePointModel(
                    lat=point.lat,
                    lng=point.lng,
                    cumulative_distance_km=round(point.cumulative_distance_km, 2),
                    cumulative_duration_min=round(point.cumulative_duration_min, 1),
                )
                for point in route.points
            ]
            if include_details
            else []
        )
        return cls(
            origin=route.origin,
            destination=route.destination,
            waypoints=list(route.waypoints),
            total_distance_km=round(route.total_distance_km, 2),
            total_duration_min=round(route.total_duration_min, 1),
            polyline=route.polyline if include_details else "",
            points=points,
        )


class ExtractedRouteInputModel(CamelModel):
    final_expanded_url: str
    origin: str
    destination: str
    waypoints: List[str]

    @classmethod
    def from_domain(cls, route_input: RouteInput) -> "ExtractedRouteInputModel":
        return cls(
            final_expanded_url=route_input.expanded_url,
            origin=route_input.origin,
            destination=route_input.destination,
            waypoints=list(route_input.waypoints),
        )


class PlanResponse(CamelModel):
    status: Literal["ok", "fallback"]
    warnings: List[str]
    extracted_route_input: ExtractedRouteInputModel
    route: RouteSummaryModel
    rest_windows: List[RestWindowModel]
    fuel_candidates: List[StopCandidateModel]


class ErrorResponse(BaseModel):
    error: str
    hint: str


class FieldErrorModel(BaseModel):
    field: str
    message: str


class ValidationErrorResponse(BaseModel):
    error: Literal["validation_error"] = "validation_error"
    fields: List[FieldErrorModel]
