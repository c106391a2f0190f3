"""Facility type and equipment heuristics, one pure function per source.

Names in the Japanese road network carry most of the signal: ``SA``/``PA``
suffixes, ``道の駅`` (roadside station), ``休憩`` (rest) and so on.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Mapping, Optional

from ...models.domain import Equipment, FacilityTypeFilter, FuelBrand

TAG_SA_PA = "SA/PA"
TAG_EXPRESSWAY_REST = "高速休憩所"
TAG_MICHI_NO_EKI = "道の駅"
TAG_HIGHWAY_STATION = "高速道路内SS"
TAG_LOCAL_STATION = "一般道SS"

_SA_PA = re.compile(r"(?<![A-Za-z])(SA|PA)(?![A-Za-z])|サービスエリア|パーキングエリア", re.IGNORECASE)
_MICHI_NO_EKI = re.compile(r"道の駅")
_SHOWER = re.compile(r"シャワー")
_CONVENIENCE = re.compile(r"コンビニ")
_LARGE_PARKING = re.compile(r"大型|トラック")
_OPEN_24H_TEXT = re.compile(r"24\s*時間営業|24 hours", re.IGNORECASE)

_BRAND_PATTERNS: dict[FuelBrand, re.Pattern[str]] = {
    FuelBrand.EW: re.compile(r"ENEOS\s*ウ[イィ]ング|エネオスウ[イィ]ング|EneJet", re.IGNORECASE),
    FuelBrand.USAMI: re.compile(r"宇佐美|USAMI", re.IGNORECASE),
}
BRAND_KEYWORDS: dict[FuelBrand, str] = {
    FuelBrand.EW: "ENEOSウイング",
    FuelBrand.USAMI: "宇佐美",
}


@dataclass(slots=True)
class FacilityClass:
    is_sa_pa: bool = False
    is_expressway_rest: bool = False
    is_michi_no_eki: bool = False
    equipment: Equipment = field(default_factory=Equipment)

    @property
    def is_highway(self) -> bool:
        return self.is_sa_pa or self.is_expressway_rest

    @property
    def tags(self) -> list[str]:
        labels = []
        if self.is_sa_pa:
            labels.append(TAG_SA_PA)
        if self.is_expressway_rest:
            labels.append(TAG_EXPRESSWAY_REST)
        if self.is_michi_no_eki:
            labels.append(TAG_MICHI_NO_EKI)
        return labels


def matches_type_filter(facility: FacilityClass, type_filter: FacilityTypeFilter) -> bool:
    """An inactive filter accepts everything; otherwise any selected type must match."""
    if not type_filter.active:
        return True
    return (
        (type_filter.sa_pa and facility.is_sa_pa)
        or (type_filter.expressway_rest and facility.is_expressway_rest)
        or (type_filter.michi_no_eki and facility.is_michi_no_eki)
    )


def classify_osm_tags(tags: Optional[Mapping[str, str]]) -> FacilityClass:
    tags = tags or {}
    raw_name = tags.get("name", "")
    name = raw_name.lower()
    highway = tags.get("highway", "").lower()

    return FacilityClass(
        is_sa_pa=highway == "services" or bool(_SA_PA.search(raw_name)),
        is_expressway_rest=highway == "rest_area" or "休憩" in name,
        is_michi_no_eki=bool(_MICHI_NO_EKI.search(raw_name)),
        equipment=Equipment(
            shower=tags.get("shower") == "yes" or bool(_SHOWER.search(name)),
            open24h=tags.get("opening_hours") == "24/7" or tags.get("service_times") == "24h",
            convenience=(
                tags.get("shop") == "convenience"
                or tags.get("convenience") == "yes"
                or bool(_CONVENIENCE.search(name))
            ),
            large_parking=(
                tags.get("hgv") == "yes"
                or tags.get("parking:lane") == "truck"
                or bool(_LARGE_PARKING.search(name))
            ),
        ),
    )


def classify_place(
    name: str,
    types: Iterable[str] = (),
    details: Optional[Mapping] = None,
) -> FacilityClass:
    """Classify a places-search result, optionally enriched with place details."""
    details = details or {}
    full_name = f"{name} {details.get('name', '')}"
    type_set = set(types) | set(details.get("types") or [])
    weekday_text = (details.get("opening_hours") or {}).get("weekday_text") or []

    return FacilityClass(
        is_sa_pa=bool(_SA_PA.search(name)),
        is_expressway_rest=bool(re.search(r"ハイウェイオアシス|休憩", name)),
        is_michi_no_eki=bool(_MICHI_NO_EKI.search(name)),
        equipment=Equipment(
            shower=bool(_SHOWER.search(full_name)),
            open24h=bool(weekday_text) and bool(_OPEN_24H_TEXT.search(" ".join(weekday_text))),
            convenience="convenience_store" in type_set or bool(_CONVENIENCE.search(full_name)),
            large_parking="parking" in type_set or bool(_LARGE_PARKING.search(full_name)),
        ),
    )


def classify_seed_tags(tags: Iterable[str], equipment: Equipment) -> FacilityClass:
    labels = set(tags)
    return FacilityClass(
        is_sa_pa=TAG_SA_PA in labels,
        is_expressway_rest=TAG_EXPRESSWAY_REST in labels,
        is_michi_no_eki=TAG_MICHI_NO_EKI in labels,
        equipment=equipment,
    )


def classify_fuel_place(name: str) -> tuple[Optional[FuelBrand], bool]:
    """Return (brand, is_highway) for a gas station name; brand is None when unrecognised."""
    brand = next((brand for brand, pattern in _BRAND_PATTERNS.items() if pattern.search(name)), None)
    return brand, bool(_SA_PA.search(name))


def station_tags(is_highway: bool) -> list[str]:
    return [TAG_HIGHWAY_STATION if is_highway else TAG_LOCAL_STATION]
