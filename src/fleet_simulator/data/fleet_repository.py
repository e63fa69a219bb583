"""Route and bus fleet loaders backed by the bundled JSON catalogs."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Iterable

from ..config import settings
from ..models.domain import Route, RouteValidationError, Vehicle, Waypoint

logger = logging.getLogger(__name__)


def _read_json(path: Path) -> list[dict]:
    if not path.exists():
        raise FileNotFoundError(f"Fleet data file not found: {path}")
    with path.open("r", encoding="utf-8") as handle:
        payload = json.load(handle)
    if not isinstance(payload, list):
        raise ValueError(f"Fleet data file '{path}' must contain a JSON array.")
    return payload


def _parse_waypoint(raw: dict) -> Waypoint:
    return Waypoint(
        name=str(raw["name"]),
        latitude=float(raw["latitude"]),
        longitude=float(raw["longitude"]),
        city=raw.get("city"),
        province=raw.get("province"),
    )


def _parse_route(raw: dict) -> Route:
    try:
        route = Route(
            route_id=str(raw["route_id"]),
            name=str(raw["name"]),
            start=_parse_waypoint(raw["start"]),
            end=_parse_waypoint(raw["end"]),
            waypoints=tuple(_parse_waypoint(item) for item in raw.get("waypoints", [])),
            distance_km=float(raw["distance_km"]),
            estimated_duration_min=int(raw["estimated_duration_min"]),
            max_speed_kmh=float(raw["max_speed_kmh"]),
            average_speed_kmh=float(raw["average_speed_kmh"]),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RouteValidationError(f"Malformed route record {raw.get('route_id', '<unknown>')}: {exc}") from exc
    validate_route(route)
    return route


def _parse_vehicle(raw: dict) -> Vehicle:
    try:
        return Vehicle(
            vehicle_id=str(raw["vehicle_id"]),
            registration_number=str(raw["registration_number"]),
            operator_id=str(raw["operator_id"]),
            operator_name=str(raw["operator_name"]),
            vehicle_type=str(raw.get("vehicle_type", "Normal")),
            capacity=int(raw.get("capacity", 0)),
            assigned_route_ids=tuple(str(item) for item in raw.get("assigned_route_ids", [])),
            gps_device_id=str(raw["gps_device_id"]),
            status=str(raw.get("status", "active")),
        )
    except (KeyError, TypeError, ValueError) as exc:
        raise RouteValidationError(f"Malformed vehicle record {raw.get('vehicle_id', '<unknown>')}: {exc}") from exc


def validate_route(route: Route) -> None:
    """Reject routes that a GPS device cannot traverse."""

    if not route.route_id or not route.route_id.strip():
        raise RouteValidationError("Route is missing its identifier.")
    if len(route.stops) < 2:
        raise RouteValidationError(f"Route {route.route_id} needs at least a start and an end stop.")
    for stop in route.stops:
        if not -90.0 <= stop.latitude <= 90.0 or not -180.0 <= stop.longitude <= 180.0:
            raise RouteValidationError(
                f"Route {route.route_id} has out-of-range coordinates at stop '{stop.name}'."
            )
    if route.distance_km <= 0:
        raise RouteValidationError(f"Route {route.route_id} must declare a positive distance.")
    if route.estimated_duration_min <= 0:
        raise RouteValidationError(f"Route {route.route_id} must declare a positive duration.")
    if route.max_speed_kmh <= 0 or route.average_speed_kmh < 0:
        raise RouteValidationError(f"Route {route.route_id} has invalid speed limits.")


@lru_cache(maxsize=4)
def load_routes(source: Path | None = None) -> tuple[Route, ...]:
    path = source or settings.routes_file
    routes = tuple(_parse_route(raw) for raw in _read_json(path))
    logger.debug(f"Loaded {len(routes)} routes from {path}")
    return routes


@lru_cache(maxsize=4)
def load_vehicles(source: Path | None = None) -> tuple[Vehicle, ...]:
    path = source or settings.vehicles_file
    vehicles = tuple(_parse_vehicle(raw) for raw in _read_json(path))
    logger.debug(f"Loaded {len(vehicles)} vehicles from {path}")
    return vehicles


def route_lookup(routes: Iterable[Route] | None = None) -> dict[str, Route]:
    return {route.route_id: route for route in (routes if routes is not None else load_routes())}


def get_route(route_id: str, routes: Iterable[Route] | None = None) -> Route | None:
    return route_lookup(routes).get(route_id)


def get_vehicle(vehicle_id: str) -> Vehicle | None:
    for vehicle in load_vehicles():
        if vehicle.vehicle_id == vehicle_id:
            return vehicle
    return None


def clear_fleet_cache() -> None:
    load_routes.cache_clear()
    load_vehicles.cache_clear()
