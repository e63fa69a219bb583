"""Simulated GPS unit bound to one bus and one route."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ...data.fleet_repository import validate_route
from ...models.domain import (
    DeviceState,
    DeviceStatus,
    Position,
    Route,
    RouteValidationError,
    Vehicle,
    Waypoint,
)
from ...schemas.telemetry import (
    AlertFlagsInfo,
    AlertMessagesInfo,
    CompletionRecord,
    Coordinates,
    DistanceInfo,
    DurationInfo,
    JourneySummary,
    LatLon,
    LocationData,
    LocationSample,
    MovementInfo,
    RouteCompletionInfo,
    RouteProgressInfo,
    StopLocation,
    WaypointInfo,
    WaypointReference,
)
from ..location.context import LocationContextProvider
from .alerts import AlertEvaluator, AlertReport
from .device_health import DeviceHealthModel
from .movement import MovementEngine
from .progress import ProgressCalculator, ProgressSnapshot, WaypointRef

logger = logging.getLogger(__name__)

ALTITUDE_RANGE_M = (50.0, 150.0)
SHUTDOWN_REASON_BATTERY = "battery_depleted"


@dataclass(frozen=True, slots=True)
class ShutdownNotice:
    device_id: str
    bus_id: str
    reason: str
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class TickOutcome:
    sample: LocationSample
    completion: Optional[CompletionRecord] = None
    shutdown: Optional[ShutdownNotice] = None


def _epoch_ms(moment: datetime) -> int:
    return int(moment.timestamp() * 1000)


def _stop_location(stop: Waypoint) -> StopLocation:
    return StopLocation(
        name=stop.name,
        city=stop.city,
        province=stop.province,
        coordinates=LatLon(latitude=stop.latitude, longitude=stop.longitude),
    )


def _waypoint_reference(ref: Optional[WaypointRef]) -> Optional[WaypointReference]:
    if ref is None:
        return None
    return WaypointReference(
        name=ref.name,
        coordinates=LatLon(latitude=ref.latitude, longitude=ref.longitude),
        index=ref.index,
    )


class GPSDevice:
    """Owns one DeviceState and turns each tick into a LocationSample.

    A tick runs movement, battery drain, signal refresh, progress and alert
    evaluation in that order. The tick that runs past the final stop also
    yields the single CompletionRecord for the traversal and parks the device
    in ``COMPLETED`` until the scheduler restarts it.
    """

    def __init__(
        self,
        vehicle: Vehicle,
        route: Route,
        *,
        rng: random.Random | None = None,
        movement: MovementEngine | None = None,
        alerts: AlertEvaluator | None = None,
        health: DeviceHealthModel | None = None,
        progress: ProgressCalculator | None = None,
        locator: LocationContextProvider | None = None,
    ) -> None:
        if vehicle is None or not vehicle.vehicle_id or not vehicle.gps_device_id:
            raise RouteValidationError("A GPS device needs a vehicle with a bus id and a device id.")
        if route is None:
            raise RouteValidationError(f"Invalid route provided for bus {vehicle.vehicle_id}")
        validate_route(route)

        self.vehicle = vehicle
        self.route = route
        self.rng = rng or random.Random()
        self.movement = movement or MovementEngine(self.rng)
        self.alerts = alerts or AlertEvaluator(self.rng)
        self.health = health or DeviceHealthModel(self.rng)
        self.progress = progress or ProgressCalculator()
        self.locator = locator or LocationContextProvider(self.rng)
        self.state = DeviceState(position=self._start_position(), heading_deg=float(self.rng.randrange(360)))
        logger.info(f"GPS device {self.device_id} created for bus {self.bus_id} on route {route.route_id}")

    @property
    def device_id(self) -> str:
        return self.vehicle.gps_device_id

    @property
    def bus_id(self) -> str:
        return self.vehicle.vehicle_id

    @property
    def is_active(self) -> bool:
        return self.state.active

    def _start_position(self) -> Position:
        start = self.route.start
        return Position(
            latitude=start.latitude,
            longitude=start.longitude,
            accuracy_m=self.movement.sample_accuracy(),
            altitude_m=self.rng.uniform(*ALTITUDE_RANGE_M),
        )

    def initialize_trip(self, now: datetime, *, clear_cycle_flag: bool = True) -> bool:
        state = self.state
        if not state.active:
            logger.warning(f"Device {self.device_id} is inactive, trip not started")
            return False
        state.status = DeviceStatus.EN_ROUTE
        state.trip_started_at = now
        state.trip_id = f"TRIP_{self.bus_id}_{_epoch_ms(now)}"
        if clear_cycle_flag:
            state.completed_this_cycle = False
        logger.debug(f"Trip {state.trip_id} started for bus {self.bus_id}")
        return True

    def reset_for_next_trip(self) -> None:
        state = self.state
        state.waypoint_cursor = 0
        state.position = self._start_position()
        state.trip_started_at = None
        state.trip_id = None
        state.speed_kmh = 0.0
        state.is_moving = False
        if state.active:
            state.status = DeviceStatus.IDLE
        logger.info(f"Bus {self.bus_id} reset to {self.route.start.name}")

    def halt(self) -> None:
        self.state.speed_kmh = 0.0
        self.state.is_moving = False

    def step(self, now: datetime) -> Optional[TickOutcome]:
        state = self.state
        if not state.active or state.status != DeviceStatus.EN_ROUTE:
            return None

        result = self.movement.advance(state, self.route)
        shutdown = None
        if self.health.drain_battery(state):
            shutdown = ShutdownNotice(
                device_id=self.device_id,
                bus_id=self.bus_id,
                reason=SHUTDOWN_REASON_BATTERY,
                timestamp=now,
            )
        self.health.refresh_signal(state, self.route)
        snapshot = self.progress.compute(state, self.route, now)
        report = self.alerts.evaluate(state, self.route, now)

        state.samples_emitted += 1
        sample = self._build_sample(now, snapshot, report)
        state.last_update = now

        completion = None
        if result.completed:
            completion = self._build_completion(now)
            state.completed_this_cycle = True
            state.trips_completed += 1
            if state.status == DeviceStatus.EN_ROUTE:
                state.status = DeviceStatus.COMPLETED
        return TickOutcome(sample=sample, completion=completion, shutdown=shutdown)

    def _build_sample(self, now: datetime, snapshot: ProgressSnapshot, report: AlertReport) -> LocationSample:
        state = self.state
        position = state.position
        latitude = round(position.latitude, 6)
        longitude = round(position.longitude, 6)
        context = self.locator.describe(latitude, longitude, self.route.name)
        distance = snapshot.distance
        duration = snapshot.duration
        progress = snapshot.route_progress
        return LocationSample(
            location_id=f"LOC_{self.bus_id}_{_epoch_ms(now)}_{state.samples_emitted:06d}",
            trip_id=state.trip_id or f"TRIP_{self.bus_id}_{_epoch_ms(now)}",
            bus_id=self.bus_id,
            route_id=self.route.route_id,
            route_name=self.route.name,
            start_location=_stop_location(self.route.start),
            end_location=_stop_location(self.route.end),
            registration_number=self.vehicle.registration_number,
            gps_device_id=self.device_id,
            coordinates=Coordinates(
                latitude=latitude,
                longitude=longitude,
                accuracy=round(position.accuracy_m, 2),
                altitude=round(position.altitude_m, 2),
            ),
            movement=self._movement_info(),
            waypoint_info=WaypointInfo(
                current_waypoint=_waypoint_reference(snapshot.current_waypoint),
                next_waypoint=_waypoint_reference(snapshot.next_waypoint),
                route_progress=RouteProgressInfo(
                    completed_waypoints=progress.completed_waypoints,
                    total_waypoints=progress.total_waypoints,
                    progress_percentage=progress.progress_percentage,
                ),
            ),
            distance_info=DistanceInfo(
                total_route_distance=round(distance.total_route_distance, 2),
                distance_traveled=round(distance.distance_traveled, 2),
                remaining_distance=round(distance.remaining_distance, 2),
                distance_to_next_waypoint=round(distance.distance_to_next_waypoint, 2),
            ),
            duration_info=DurationInfo(
                estimated_total_duration=duration.estimated_total_duration,
                elapsed_duration=duration.elapsed_duration,
                estimated_remaining_duration=duration.estimated_remaining_duration,
                estimated_arrival=duration.estimated_arrival,
            ),
            location_data=LocationData(
                address=context.address,
                city=context.city,
                nearest_landmark=context.nearest_landmark,
                road_name=context.road_name,
            ),
            signal_strength=state.signal_tier,
            battery_level=state.battery_pct,
            timestamp=now,
            server_timestamp=now,
            is_valid=True,
            alerts=AlertFlagsInfo(
                speeding_alert=report.flags.speeding_alert,
                route_deviation_alert=report.flags.route_deviation_alert,
                emergency_alert=report.flags.emergency_alert,
                maintenance_alert=report.flags.maintenance_alert,
            ),
            alert_messages=AlertMessagesInfo(
                speeding_message=report.messages.speeding_message,
                route_deviation_message=report.messages.route_deviation_message,
                emergency_message=report.messages.emergency_message,
                maintenance_message=report.messages.maintenance_message,
            ),
        )

    def _movement_info(self) -> MovementInfo:
        state = self.state
        return MovementInfo(
            speed=round(state.speed_kmh, 1),
            heading=int(state.heading_deg) % 360,
            is_moving=state.is_moving,
        )

    def _build_completion(self, now: datetime) -> CompletionRecord:
        state = self.state
        started_at = state.trip_started_at or now
        duration_min = max(0, round((now - started_at).total_seconds() / 60))
        total_distance = float(self.route.distance_km)
        average_speed = (
            round(total_distance / (duration_min / 60), 2) if total_distance > 0 and duration_min > 0 else 0.0
        )
        stop_count = len(self.route.stops)
        record = CompletionRecord(
            bus_id=self.bus_id,
            route_id=self.route.route_id,
            route_name=self.route.name,
            registration_number=self.vehicle.registration_number,
            gps_device_id=self.device_id,
            trip_id=state.trip_id or f"TRIP_{self.bus_id}_{_epoch_ms(started_at)}",
            start_location=_stop_location(self.route.start),
            end_location=_stop_location(self.route.end),
            journey_start_time=started_at,
            journey_end_time=now,
            total_journey_duration=duration_min,
            final_coordinates=Coordinates(
                latitude=round(state.position.latitude, 6),
                longitude=round(state.position.longitude, 6),
                accuracy=round(state.position.accuracy_m, 2),
                altitude=round(state.position.altitude_m, 2),
            ),
            route_completion=RouteCompletionInfo(total_waypoints=stop_count, completed_waypoints=stop_count),
            journey_summary=JourneySummary(
                total_distance=total_distance,
                average_speed=average_speed,
                estimated_duration=self.route.estimated_duration_min,
                actual_duration=duration_min,
            ),
            final_movement=self._movement_info(),
        )
        logger.info(
            f"Bus {self.bus_id} completed {self.route.name}: {duration_min} min, "
            f"{total_distance} km, {average_speed} km/h average"
        )
        return record

    def status_summary(self) -> dict:
        state = self.state
        return {
            "device_id": self.device_id,
            "bus_id": self.bus_id,
            "registration_number": self.vehicle.registration_number,
            "operator_name": self.vehicle.operator_name,
            "route_id": self.route.route_id,
            "route_name": self.route.name,
            "status": state.status.value,
            "active": state.active,
            "battery_level": state.battery_pct,
            "signal_strength": state.signal_tier.value,
            "latitude": state.position.latitude,
            "longitude": state.position.longitude,
            "speed": round(state.speed_kmh, 1),
            "heading": int(state.heading_deg) % 360,
            "is_moving": state.is_moving,
            "waypoint_cursor": state.waypoint_cursor,
            "total_waypoints": len(self.route.stops),
            "completed_this_cycle": state.completed_this_cycle,
            "trip_id": state.trip_id,
            "trip_started_at": state.trip_started_at,
            "last_update": state.last_update,
            "samples_emitted": state.samples_emitted,
            "trips_completed": state.trips_completed,
        }
