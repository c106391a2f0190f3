"""Health endpoints."""

from __future__ import annotations

import asyncio

from fastapi import APIRouter, status

from ...config import settings

router = APIRouter(tags=["health"])


@router.get("/health", status_code=status.HTTP_200_OK)
def health_root() -> dict:
    """Simple health check endpoint that doesn't require any dependencies."""
    return {"status": "ok"}


@router.get("/health/directions", status_code=status.HTTP_200_OK)
async def health_directions() -> dict:
    """Check that the Directions API key is configured and accepted."""
    from ...services.routing.directions_client import check_health

    if not settings.google_maps_api_key:
        return {
            "service": "directions",
            "configured": False,
            "healthy": False,
            "message": "Set STOPPLAN_GOOGLE_MAPS_API_KEY.",
        }
    return {"service": "directions", "configured": True, "healthy": await check_health()}


@router.get("/health/stations", status_code=status.HTTP_200_OK)
async def health_stations() -> dict:
    """Report where fuel stations are read from and how many are available."""
    from ...data.station_repository import count_stations, load_stations_from_file

    seed_count = len(await asyncio.to_thread(load_stations_from_file))
    try:
        count = await asyncio.to_thread(count_stations)
    except Exception as exc:
        return {
            "configured": True,
            "connected": False,
            "seed_stations": seed_count,
            "error": str(exc),
            "message": f"Database connection error: {exc}",
        }

    if count is None:
        return {
            "configured": False,
            "seed_stations": seed_count,
            "message": "Supabase not configured; fuel stations are read from seed files. "
            "Set STOPPLAN_SUPABASE_URL and STOPPLAN_SUPABASE_KEY to use the station master.",
        }
    return {
        "configured": True,
        "connected": True,
        "stations": count,
        "seed_stations": seed_count,
        "message": f"Database connected. Found {count} stations in {settings.station_table}.",
    }
