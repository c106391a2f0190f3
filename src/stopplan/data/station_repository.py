"""Fuel station master with database-first reads, falling back to seed files."""

from __future__ import annotations

import json
import logging
import math
import re
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence

from ..config import settings
from ..db.supabase import get_supabase_client
from ..errors import ConfigurationError, UpstreamFailure
from ..models.domain import FuelBrand, FuelStation

logger = logging.getLogger(__name__)

_SLUG_STRIP = re.compile(r"[^a-z0-9一-鿿぀-ゟ゠-ヿ]+")


def slugify(value: str) -> str:
    return _SLUG_STRIP.sub("-", value.lower()).strip("-")[:80]


def make_source_id(brand: FuelBrand, name: str, lat: float, lng: float) -> str:
    return f"{brand.value.lower()}-{slugify(name)}-{lat:.3f}-{lng:.3f}"


def normalize_station(row: dict[str, Any]) -> Optional[FuelStation]:
    """Build a station from a seed/database row; rows without name, address or coordinates are dropped."""
    name = str(row.get("name") or "").strip()
    address = str(row.get("address") or "").strip()
    try:
        brand = FuelBrand(str(row.get("brand")))
        lat = float(row["lat"])
        lng = float(row["lng"])
    except (KeyError, ValueError, TypeError):
        return None
    if brand is FuelBrand.BOTH or not name or not address or not (math.isfinite(lat) and math.isfinite(lng)):
        return None

    def flag(*keys: str) -> bool:
        return any(bool(row.get(key)) for key in keys)

    return FuelStation(
        source_id=str(row.get("source_id") or row.get("sourceId") or "") or make_source_id(brand, name, lat, lng),
        brand=brand,
        name=name,
        address=address,
        lat=lat,
        lng=lng,
        is_highway=flag("is_highway", "isHighway"),
        service_24h=flag("service_24h", "service24h"),
        shower=flag("shower"),
        convenience=flag("convenience"),
        large_parking=flag("large_parking", "largeParking"),
    )


def dedupe_stations(stations: Iterable[FuelStation]) -> list[FuelStation]:
    """Collapse stations sharing brand, name slug and ~100 m cell; the last one wins."""
    unique: dict[str, FuelStation] = {}
    for station in stations:
        key = f"{station.brand.value}:{slugify(station.name)}:{station.lat:.3f}:{station.lng:.3f}"
        unique[key] = station
    return list(unique.values())


def station_to_row(station: FuelStation) -> dict[str, Any]:
    return {
        "source_id": station.source_id,
        "brand": station.brand.value,
        "name": station.name,
        "address": station.address,
        "lat": station.lat,
        "lng": station.lng,
        "is_highway": station.is_highway,
        "service_24h": station.service_24h,
        "shower": station.shower,
        "convenience": station.convenience,
        "large_parking": station.large_parking,
    }


def load_stations_from_file(sources: Sequence[Path] | None = None) -> tuple[FuelStation, ...]:
    """Load and dedupe the seed files; missing or unreadable files contribute nothing."""
    stations: list[FuelStation] = []
    for path in sources if sources is not None else settings.station_seed_files:
        path = Path(path)
        if not path.exists():
            logger.debug(f"Station seed file not found: {path}")
            continue
        try:
            with path.open("r", encoding="utf-8") as handle:
                rows = json.load(handle)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Skipping unreadable station seed file {path}: {e}")
            continue
        for row in rows:
            station = normalize_station(row)
            if station is None:
                logger.warning(f"Skipping invalid station seed row in {path}: {row.get('name', '?')}")
                continue
            stations.append(station)
    return tuple(dedupe_stations(stations))


def _load_stations_from_database(brands: Sequence[FuelBrand]) -> tuple[FuelStation, ...] | None:
    """Read stations of the given brands. Returns None when the database is not configured."""
    supabase = get_supabase_client()
    if not supabase:
        return None

    try:
        response = (
            supabase.table(settings.station_table)
            .select("*")
            .in_("brand", [brand.value for brand in brands])
            .neq("lat", 0)
            .neq("lng", 0)
            .execute()
        )
    except Exception as e:
        raise UpstreamFailure(f"{settings.station_table} query failed: {e}") from e

    stations: list[FuelStation] = []
    for row in response.data or []:
        station = normalize_station(row)
        if station is None:
            logger.warning(f"Skipping invalid station row: {row.get('source_id', '?')}")
            continue
        stations.append(station)
    return tuple(stations)


def count_stations() -> int | None:
    """Number of rows in the station master, or None when the database is not configured."""
    supabase = get_supabase_client()
    if not supabase:
        return None
    try:
        response = supabase.table(settings.station_table).select("source_id", count="exact").limit(1).execute()
    except Exception as e:
        raise UpstreamFailure(f"{settings.station_table} count failed: {e}") from e
    return response.count or 0


def upsert_stations(stations: Sequence[FuelStation]) -> int:
    """Insert or update stations keyed by ``source_id``."""
    supabase = get_supabase_client()
    if not supabase:
        raise ConfigurationError("Station store is not configured (STOPPLAN_SUPABASE_URL / STOPPLAN_SUPABASE_KEY).")
    if not stations:
        return 0
    rows = [station_to_row(station) for station in stations]
    try:
        supabase.table(settings.station_table).upsert(rows, on_conflict="source_id").execute()
    except Exception as e:
        raise UpstreamFailure(f"{settings.station_table} upsert failed: {e}") from e
    return len(rows)


def get_stations(brands: Sequence[FuelBrand]) -> tuple[FuelStation, ...]:
    """Get stations from the database first, falling back to the seed files.

    Raises:
        ConfigurationError: the store is required but not configured.
        UpstreamFailure: the database is configured but the query failed.
    """
    db_stations = _load_stations_from_database(brands)
    if db_stations is not None:
        return db_stations

    if settings.station_store_required:
        raise ConfigurationError("Station store is not configured (STOPPLAN_SUPABASE_URL / STOPPLAN_SUPABASE_KEY).")

    wanted = set(brands)
    return tuple(
        station
        for station in load_stations_from_file()
        if station.brand in wanted and station.lat != 0 and station.lng != 0
    )
