"""Fleet bootstrap: binds every active bus to a route and builds the scheduler."""

from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Sequence

from ...data.fleet_repository import load_routes, load_vehicles, route_lookup
from ...models.domain import Route, RouteValidationError, Vehicle
from ..geospatial import path_length_km
from ..location.context import LocationContextProvider
from .alerts import AlertEvaluator
from .clock import Clock
from .device import GPSDevice
from .device_health import DeviceHealthModel
from .movement import MovementEngine
from .progress import ProgressCalculator
from .scheduler import FleetScheduler, SchedulerParameters

logger = logging.getLogger(__name__)


def build_fleet(
    rng: random.Random,
    *,
    vehicles: Sequence[Vehicle] | None = None,
    routes: Sequence[Route] | None = None,
) -> list[GPSDevice]:
    """Create one GPS device per active bus on its first assigned route.

    Buses whose route is unknown or malformed are logged and skipped.
    """

    vehicles = load_vehicles() if vehicles is None else vehicles
    lookup = route_lookup(load_routes() if routes is None else routes)

    movement = MovementEngine(rng)
    alerts = AlertEvaluator(rng)
    health = DeviceHealthModel(rng)
    progress = ProgressCalculator()
    locator = LocationContextProvider(rng)

    devices: list[GPSDevice] = []
    for vehicle in vehicles:
        if not vehicle.is_active:
            logger.info(f"Skipping bus {vehicle.vehicle_id}: status {vehicle.status}")
            continue
        if not vehicle.assigned_route_ids:
            logger.warning(f"Skipping bus {vehicle.vehicle_id}: no assigned routes")
            continue
        route_id = vehicle.assigned_route_ids[0]
        route = lookup.get(route_id)
        if route is None:
            logger.warning(f"Skipping bus {vehicle.vehicle_id}: route {route_id} not found (known: {sorted(lookup)})")
            continue
        try:
            device = GPSDevice(
                vehicle,
                route,
                rng=rng,
                movement=movement,
                alerts=alerts,
                health=health,
                progress=progress,
                locator=locator,
            )
        except RouteValidationError as exc:
            logger.warning(f"Skipping bus {vehicle.vehicle_id}: {exc}")
            continue
        devices.append(device)

    log_fleet_summary(devices)
    return devices


def log_fleet_summary(devices: Sequence[GPSDevice]) -> None:
    operators = Counter(device.vehicle.operator_name for device in devices)
    routes = {device.route.route_id: device.route for device in devices}
    per_route = Counter(device.route.route_id for device in devices)
    logger.info(f"Fleet ready: {len(devices)} GPS devices, {len(operators)} operators, {len(routes)} routes")
    for operator, count in sorted(operators.items()):
        logger.info(f"  {operator}: {count} buses")
    for route_id in sorted(routes):
        route = routes[route_id]
        surveyed = path_length_km([(stop.latitude, stop.longitude) for stop in route.stops])
        logger.info(
            f"  {route_id} {route.name}: {per_route[route_id]} buses, "
            f"{route.distance_km:g} km declared, {surveyed:.1f} km between stops"
        )


def create_scheduler(
    clock: Clock,
    rng: random.Random | None = None,
    *,
    params: SchedulerParameters | None = None,
    vehicles: Sequence[Vehicle] | None = None,
    routes: Sequence[Route] | None = None,
) -> FleetScheduler:
    rng = rng or random.Random()
    devices = build_fleet(rng, vehicles=vehicles, routes=routes)
    return FleetScheduler(devices, clock=clock, rng=rng, params=params)
