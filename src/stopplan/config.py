"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="STOPPLAN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Truck Stop Planner API"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root log level.")
    data_root: Path = Field(default=Path("data"), description="Root directory for static data files.")
    rest_seed_file: Path = Field(
        default=Path("data/rest-seed.json"),
        description="Local catalog of rest facilities used as the last fallback.",
    )
    station_seed_files: Annotated[tuple[Path, ...], NoDecode] = Field(
        default=(Path("data/station-seed.json"), Path("data/station-extra.json")),
        description="Fuel station seed files used to bootstrap an empty station master.",
    )

    # Google Maps Platform
    google_maps_api_key: Optional[str] = Field(
        default=None,
        description="Key for the Directions API (also used for Places when no dedicated key is set).",
    )
    google_places_api_key: Optional[str] = Field(default=None, description="Dedicated Places API key.")
    directions_base_url: str = "https://maps.googleapis.com/maps/api/directions/json"
    places_base_url: str = "https://maps.googleapis.com/maps/api/place"
    maps_language: str = "ja"
    maps_region: str = "jp"
    directions_timeout_seconds: float = Field(default=10.0, gt=0.0)

    # Route link expansion
    link_expand_timeout_seconds: float = Field(default=8.0, gt=0.0)

    # Overpass (open geodata)
    overpass_api_urls: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "https://overpass.kumi.systems/api/interpreter",
            "https://overpass-api.de/api/interpreter",
        ),
        description="Overpass endpoints; tried in host priority order.",
    )
    overpass_timeout_seconds: float = Field(default=8.0, gt=0.0)
    route_buffer_km: float = Field(default=8.0, gt=0.0, description="Overpass search radius and corridor width.")

    # Places (commercial)
    places_nearby_timeout_seconds: float = Field(default=4.5, gt=0.0)
    places_details_timeout_seconds: float = Field(default=2.5, gt=0.0)
    places_total_budget_seconds: float = Field(default=8.0, gt=0.0)
    places_corridor_km: float = Field(default=12.0, gt=0.0)
    seed_corridor_km: float = Field(default=12.0, gt=0.0)

    # Fuel
    fuel_corridor_km: float = Field(default=10.0, gt=0.0)
    fuel_candidate_limit: int = Field(default=20, ge=1)
    fuel_master_timeout_seconds: float = Field(default=4.0, gt=0.0)
    fuel_phase_budget_seconds: float = Field(default=9.0, gt=0.0)
    default_fuel_range_km: float = Field(default=100.0, gt=0.0)

    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=(
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Supabase configuration (fuel station master)
    supabase_url: Optional[str] = Field(
        default=None,
        description="Supabase project URL (e.g., https://xxx.supabase.co).",
    )
    supabase_key: Optional[str] = Field(
        default=None,
        description="Supabase service role key for backend operations.",
    )
    station_table: str = "fuel_stations"
    station_store_required: bool = Field(
        default=False,
        description="Fail planning when the station store is not configured instead of reading seed files.",
    )

    @property
    def places_api_key(self) -> Optional[str]:
        return self.google_places_api_key or self.google_maps_api_key

    @field_validator("data_root", "rest_seed_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator("station_seed_files", mode="before")
    @classmethod
    def _parse_path_tuple_from_env(cls, value: Any) -> tuple[Path, ...]:
        return tuple(Path(str(item)).expanduser().resolve() for item in _parse_str_tuple(value))

    @field_validator("frontend_allowed_origins", "overpass_api_urls", mode="before")
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        return tuple(str(item) for item in _parse_str_tuple(value))


def _parse_str_tuple(value: Any) -> tuple:
    """Parse a tuple from an environment variable (comma-separated or JSON array)."""
    if isinstance(value, tuple):
        return value
    if isinstance(value, list):
        return tuple(value)
    if isinstance(value, str):
        # Try JSON first
        try:
            parsed = json.loads(value)
            if isinstance(parsed, list):
                return tuple(str(item) for item in parsed)
        except (json.JSONDecodeError, TypeError):
            pass
        # Try comma-separated
        if "," in value:
            return tuple(item.strip() for item in value.split(",") if item.strip())
        # Single value
        if value.strip():
            return (value.strip(),)
    # Return empty tuple if value is None or empty
    return tuple()


settings = Settings()
