#!/usr/bin/env python3
"""Check the stop planner's .env file, creating a template when it is missing."""

from pathlib import Path
import sys

SECRET_KEYS = ("STOPPLAN_GOOGLE_MAPS_API_KEY", "STOPPLAN_GOOGLE_PLACES_API_KEY", "STOPPLAN_SUPABASE_KEY")

TEMPLATE = """# Google Maps Platform (Required: Directions; Places is optional)
STOPPLAN_GOOGLE_MAPS_API_KEY=your-maps-api-key-here
# STOPPLAN_GOOGLE_PLACES_API_KEY=   # defaults to the Maps key

# Supabase fuel station master (Optional - seed files are used when unset)
# Get these from: https://supabase.com/dashboard → Your Project → Settings → API
STOPPLAN_SUPABASE_URL=https://your-project-id.supabase.co
STOPPLAN_SUPABASE_KEY=your-service-role-key-here
# STOPPLAN_STATION_STORE_REQUIRED=false

# API Configuration
STOPPLAN_API_PREFIX=/api
# STOPPLAN_FRONTEND_ALLOWED_ORIGINS - JSON array or comma-separated list
# STOPPLAN_OVERPASS_API_URLS=https://overpass.kumi.systems/api/interpreter,https://overpass-api.de/api/interpreter

# Data Paths
STOPPLAN_REST_SEED_FILE=./data/rest-seed.json
STOPPLAN_STATION_SEED_FILES=./data/station-seed.json,./data/station-extra.json
"""


def mask(value: str) -> str:
    if len(value) > 20:
        return value[:12] + "..." + value[-6:]
    return "***"


def print_env_file(env_file: Path) -> None:
    print(f"✅ Found .env file at: {env_file}")
    print("-" * 60)
    for line in env_file.read_text(encoding="utf-8").splitlines():
        name, sep, value = line.partition("=")
        if sep and name.strip() in SECRET_KEYS:
            print(f"{name}={mask(value.strip())}")
        else:
            print(line)
    print("-" * 60)
    print()


def main() -> int:
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Stop Planner Environment Checker")
    print("=" * 60)
    print()

    if not env_file.exists():
        env_file.write_text(TEMPLATE, encoding="utf-8")
        print(f"❌ .env file NOT found; created a template at: {env_file}")
        print("⚠️  Edit .env and add your Google Maps API key (and Supabase credentials if used).")
        return 1

    print_env_file(env_file)

    try:
        sys.path.insert(0, str(project_root / "src"))
        from stopplan.config import settings
    except Exception as e:
        print(f"❌ Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    checks = {
        "Google Maps API key": bool(settings.google_maps_api_key),
        "Google Places API key": bool(settings.places_api_key),
        "Supabase station master": bool(settings.supabase_url and settings.supabase_key),
        "Rest seed file": settings.rest_seed_file.exists(),
    }
    for label, ok in checks.items():
        print(f"{'✅' if ok else '❌'} {label}")
    print()

    if not settings.google_maps_api_key:
        print("❌ ERROR: STOPPLAN_GOOGLE_MAPS_API_KEY is required for route lookups.")
        return 1
    if settings.station_store_required and not checks["Supabase station master"]:
        print("❌ ERROR: STOPPLAN_STATION_STORE_REQUIRED is set but Supabase is not configured.")
        return 1
    if not checks["Supabase station master"]:
        print("ℹ️  Fuel stations will be read from the bundled seed files.")
    print("✅ SUCCESS: configuration looks usable.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
