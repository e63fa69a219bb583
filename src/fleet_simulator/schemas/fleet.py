"""Control API request/response schemas."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class IngestionStatistics(BaseModel):
    locations_sent: int = 0
    location_failures: int = 0
    completions_sent: int = 0
    completion_failures: int = 0
    dropped: int = 0
    in_flight: int = 0
    success_rate: Optional[float] = Field(default=None, description="Percentage of location samples delivered.")


class FleetStatusResponse(BaseModel):
    running: bool
    auto_restart: bool
    total_devices: int
    active_devices: int
    en_route_devices: int
    completed_this_cycle: int
    cycles_completed: int
    ticks: int
    samples_emitted: int
    completions: int
    shutdowns: int
    individual_restarts: int
    device_errors: int
    listener_errors: int
    fleet_restart_pending: bool
    pending_restarts: int
    uptime_seconds: float
    started_at: Optional[datetime] = None
    ingestion_online: Optional[bool] = None
    ingestion: Optional[IngestionStatistics] = None


class DeviceStatusModel(BaseModel):
    device_id: str
    bus_id: str
    registration_number: str
    operator_name: str
    route_id: str
    route_name: str
    status: str
    active: bool
    battery_level: float
    signal_strength: str
    latitude: float
    longitude: float
    speed: float
    heading: int
    is_moving: bool
    waypoint_cursor: int
    total_waypoints: int
    completed_this_cycle: bool
    trip_id: Optional[str] = None
    trip_started_at: Optional[datetime] = None
    last_update: Optional[datetime] = None
    samples_emitted: int
    trips_completed: int


class DeviceListResponse(BaseModel):
    count: int
    devices: List[DeviceStatusModel]


class AutoRestartRequest(BaseModel):
    enabled: bool = Field(..., description="Restart buses automatically after they complete their route.")


class FleetActionResponse(BaseModel):
    status: str
    message: str
    running: bool


class TickResponse(BaseModel):
    bus_id: str
    sample: dict = Field(..., description="The emitted location sample with camelCase keys.")
