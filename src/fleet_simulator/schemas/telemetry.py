"""Wire payloads sent to the telemetry ingestion service."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..models.domain import SignalTier


class WireModel(BaseModel):
    """Immutable payload serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    def to_payload(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


class LatLon(WireModel):
    latitude: float
    longitude: float


class Coordinates(WireModel):
    latitude: float
    longitude: float
    accuracy: float = Field(..., ge=0)
    altitude: float


class StopLocation(WireModel):
    name: str
    city: Optional[str] = None
    province: Optional[str] = None
    coordinates: LatLon


class MovementInfo(WireModel):
    speed: float = Field(..., ge=0)
    heading: int = Field(..., ge=0, lt=360)
    is_moving: bool


class WaypointReference(WireModel):
    name: str
    coordinates: LatLon
    index: int = Field(..., ge=0)


class RouteProgressInfo(WireModel):
    completed_waypoints: int = Field(..., ge=0)
    total_waypoints: int = Field(..., ge=2)
    progress_percentage: int = Field(..., ge=0, le=100)


class WaypointInfo(WireModel):
    current_waypoint: Optional[WaypointReference]
    next_waypoint: Optional[WaypointReference]
    route_progress: RouteProgressInfo


class DistanceInfo(WireModel):
    total_route_distance: float
    distance_traveled: float
    remaining_distance: float
    distance_to_next_waypoint: float


class DurationInfo(WireModel):
    estimated_total_duration: int
    elapsed_duration: int
    estimated_remaining_duration: int
    estimated_arrival: datetime


class LocationData(WireModel):
    address: str
    city: str
    nearest_landmark: str
    road_name: str


class AlertFlagsInfo(WireModel):
    speeding_alert: bool
    route_deviation_alert: bool
    emergency_alert: bool
    maintenance_alert: bool


class AlertMessagesInfo(WireModel):
    speeding_message: str
    route_deviation_message: str
    emergency_message: str
    maintenance_message: str


class LocationSample(WireModel):
    location_id: str
    trip_id: str
    bus_id: str
    route_id: str
    route_name: str
    start_location: StopLocation
    end_location: StopLocation
    registration_number: str
    gps_device_id: str
    coordinates: Coordinates
    movement: MovementInfo
    waypoint_info: WaypointInfo
    distance_info: DistanceInfo
    duration_info: DurationInfo
    location_data: LocationData
    signal_strength: SignalTier
    battery_level: float = Field(..., ge=0, le=100)
    timestamp: datetime
    server_timestamp: datetime
    is_valid: bool = True
    alerts: AlertFlagsInfo
    alert_messages: AlertMessagesInfo


class RouteCompletionInfo(WireModel):
    total_waypoints: int
    completed_waypoints: int
    completion_percentage: int = 100


class JourneySummary(WireModel):
    total_distance: float
    average_speed: float
    estimated_duration: int
    actual_duration: int


class CompletionMetadata(WireModel):
    completion_method: str = "waypoint_reached"
    proximity_to_destination: float = 0.0


class CompletionRecord(WireModel):
    bus_id: str
    route_id: str
    route_name: str
    registration_number: str
    gps_device_id: str
    trip_id: str
    start_location: StopLocation
    end_location: StopLocation
    journey_start_time: datetime
    journey_end_time: datetime
    total_journey_duration: int = Field(..., ge=0)
    final_coordinates: Coordinates
    route_completion: RouteCompletionInfo
    journey_summary: JourneySummary
    final_movement: MovementInfo
    completion_status: Literal["completed"] = "completed"
    completion_metadata: CompletionMetadata = Field(default_factory=CompletionMetadata)
