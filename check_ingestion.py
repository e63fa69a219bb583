#!/usr/bin/env python3
"""Test script to verify connectivity with the telemetry ingestion API."""

import asyncio
import sys
from datetime import datetime
from pathlib import Path

# Add src to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root / "src"))

from fleet_simulator.config import settings
from fleet_simulator.data.fleet_repository import get_route, get_vehicle
from fleet_simulator.services.ingestion import IngestionClient
from fleet_simulator.services.simulation import GPSDevice


async def run_checks(bus_id: str) -> int:
    print("=" * 60)
    print("Ingestion API Connection Test")
    print("=" * 60)
    print()

    print("1. Checking ingestion configuration...")
    if not settings.ingestion_base_url:
        print("   [ERROR] FLEETSIM_INGESTION_BASE_URL is not configured")
        return 1
    print(f"   [OK] Base URL: {settings.ingestion_base_url}")
    print(f"   [OK] API key: {'set' if settings.ingestion_api_key else 'NOT SET'}")
    print()

    async with IngestionClient() as client:
        print("2. Testing health endpoint...")
        health = await client.check_health()
        if not health.success:
            print(f"   [ERROR] Health check failed: {health.error}")
            return 1
        print(f"   [OK] Healthy (HTTP {health.status_code}) after {health.attempts} attempt(s)")
        print()

        print("3. Sending one location sample...")
        vehicle = get_vehicle(bus_id)
        if vehicle is None:
            print(f"   [ERROR] Unknown bus {bus_id}")
            return 1
        route = get_route(vehicle.assigned_route_ids[0])
        if route is None:
            print(f"   [ERROR] Route {vehicle.assigned_route_ids[0]} not found for bus {bus_id}")
            return 1
        device = GPSDevice(vehicle, route)
        now = datetime.now().astimezone()
        device.initialize_trip(now)
        outcome = device.step(now)
        result = await client.send_location(outcome.sample.to_payload())
        if not result.success:
            print(f"   [ERROR] Location sample rejected: {result.error}")
            return 1
        print(f"   [OK] Sample for bus {vehicle.vehicle_id} accepted (HTTP {result.status_code})")
        print()

    print("=" * 60)
    print("All checks passed.")
    print("=" * 60)
    return 0


def main():
    bus_id = sys.argv[1] if len(sys.argv) > 1 else "BUS001"
    return asyncio.run(run_checks(bus_id))


if __name__ == "__main__":
    sys.exit(main())
