"""Domain models for routes, buses and the mutable GPS device state."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class RouteValidationError(ValueError):
    """Raised when a route or vehicle record cannot drive a GPS device."""


class SignalTier(str, Enum):
    POOR = "poor"
    FAIR = "fair"
    GOOD = "good"
    EXCELLENT = "excellent"


class DeviceStatus(str, Enum):
    IDLE = "idle"
    EN_ROUTE = "en_route"
    COMPLETED = "completed"
    SHUTDOWN = "shutdown"


@dataclass(frozen=True, slots=True)
class Waypoint:
    """A named stop on a route. Terminal stops also carry city and province."""

    name: str
    latitude: float
    longitude: float
    city: Optional[str] = None
    province: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Route:
    """Represents an intercity bus route with its declared distance and duration."""

    route_id: str
    name: str
    start: Waypoint
    end: Waypoint
    waypoints: tuple[Waypoint, ...]
    distance_km: float
    estimated_duration_min: int
    max_speed_kmh: float
    average_speed_kmh: float

    @property
    def stops(self) -> tuple[Waypoint, ...]:
        return (self.start, *self.waypoints, self.end)


@dataclass(frozen=True, slots=True)
class Vehicle:
    """Represents a bus and the GPS unit installed in it."""

    vehicle_id: str
    registration_number: str
    operator_id: str
    operator_name: str
    vehicle_type: str
    capacity: int
    assigned_route_ids: tuple[str, ...]
    gps_device_id: str
    status: str = "active"

    @property
    def is_active(self) -> bool:
        return self.status == "active"


@dataclass(slots=True)
class Position:
    latitude: float
    longitude: float
    accuracy_m: float
    altitude_m: float


@dataclass(slots=True)
class DeviceState:
    """Mutable telemetry state owned by a single scheduler entry."""

    position: Position
    waypoint_cursor: int = 0
    speed_kmh: float = 0.0
    heading_deg: float = 0.0
    is_moving: bool = False
    battery_pct: float = 100.0
    signal_tier: SignalTier = SignalTier.GOOD
    active: bool = True
    status: DeviceStatus = DeviceStatus.IDLE
    trip_id: Optional[str] = None
    trip_started_at: Optional[datetime] = None
    completed_this_cycle: bool = False
    samples_emitted: int = 0
    trips_completed: int = 0
    last_update: Optional[datetime] = None
