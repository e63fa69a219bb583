#!/usr/bin/env python3
"""Helper script to check and create the .env file for the fleet simulator."""

from pathlib import Path
import os
import sys

ENV_TEMPLATE = """# Telemetry ingestion API
FLEETSIM_INGESTION_BASE_URL=http://localhost:3000/api
FLEETSIM_INGESTION_API_KEY=your-api-key-here
# FLEETSIM_INGESTION_TIMEOUT_SECONDS=10
# FLEETSIM_INGESTION_MAX_RETRIES=2

# Scheduler
# FLEETSIM_TICK_INTERVAL_SECONDS=10
# FLEETSIM_AUTO_RESTART=true
# FLEETSIM_AUTOSTART=true
# FLEETSIM_RANDOM_SEED=42

# Battery drain per tick (percent)
# FLEETSIM_BATTERY_DRAIN_RATE=0.1

# API Configuration
FLEETSIM_API_PREFIX=/api
# Comma-separated or JSON array: http://localhost:5173,http://127.0.0.1:5173
# FLEETSIM_FRONTEND_ALLOWED_ORIGINS=
"""


def _mask(value: str) -> str:
    return value[:6] + "..." + value[-4:] if len(value) > 12 else "***"


def main():
    project_root = Path(__file__).parent
    env_file = project_root / ".env"

    print("=" * 60)
    print("Fleet Simulator Environment Checker")
    print("=" * 60)
    print()

    if env_file.exists():
        print(f"[OK] Found .env file at: {env_file}")
        print()
        print("Current contents:")
        print("-" * 60)
        for line in env_file.read_text(encoding="utf-8").splitlines():
            if line.startswith("FLEETSIM_INGESTION_API_KEY=") and "=" in line:
                name, value = line.split("=", 1)
                print(f"{name}={_mask(value.strip())}")
            else:
                print(line)
        print("-" * 60)
        print()
    else:
        print(f"[MISSING] .env file NOT found at: {env_file}")
        print("Creating template .env file...")
        env_file.write_text(ENV_TEMPLATE, encoding="utf-8")
        print(f"[OK] Created .env file at: {env_file}")
        print("Please edit .env and set the ingestion URL and API key.")
        return 0

    print("Checking environment variables...")
    for name in ("FLEETSIM_INGESTION_BASE_URL", "FLEETSIM_INGESTION_API_KEY"):
        value = os.getenv(name)
        if value:
            shown = _mask(value) if name.endswith("API_KEY") else value
            print(f"[OK] {name} (from environment): {shown}")
        else:
            print(f"[--] {name} not set in environment (the .env file is still read by the app)")
    print()

    print("Testing config loading...")
    try:
        sys.path.insert(0, str(project_root / "src"))
        from fleet_simulator.config import settings
        from fleet_simulator.data.fleet_repository import load_routes, load_vehicles
    except Exception as e:
        print(f"[ERROR] Error loading config: {e}")
        print("Make sure you're running this from the project root directory")
        return 1

    print(f"[OK] Ingestion URL: {settings.ingestion_base_url or 'not configured (offline mode)'}")
    print(f"[OK] API key: {'set' if settings.ingestion_api_key else 'not set'}")
    print(f"[OK] Tick interval: {settings.tick_interval_seconds:g}s, auto-restart: {settings.auto_restart}")
    try:
        routes = load_routes()
        vehicles = load_vehicles()
    except Exception as e:
        print(f"[ERROR] Fleet data could not be loaded: {e}")
        return 1
    active = sum(1 for vehicle in vehicles if vehicle.is_active)
    print(f"[OK] {len(routes)} routes and {len(vehicles)} buses ({active} active) loaded")
    print()
    print("=" * 60)
    print("Configuration looks good.")
    print("=" * 60)
    return 0


if __name__ == "__main__":
    sys.exit(main())
