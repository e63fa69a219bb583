"""Distance, duration and waypoint progress derived from a device's position on its route."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from ...models.domain import DeviceState, Route, Waypoint
from ..geospatial import haversine_km

DURATION_TOLERANCE_MIN = 5
MINUTES_PER_WAYPOINT = 2


@dataclass(frozen=True, slots=True)
class WaypointRef:
    name: str
    latitude: float
    longitude: float
    index: int


@dataclass(frozen=True, slots=True)
class RouteProgress:
    completed_waypoints: int
    total_waypoints: int
    progress_percentage: int


@dataclass(frozen=True, slots=True)
class DistanceInfo:
    total_route_distance: float
    distance_traveled: float
    remaining_distance: float
    distance_to_next_waypoint: float


@dataclass(frozen=True, slots=True)
class DurationInfo:
    estimated_total_duration: int
    elapsed_duration: int
    estimated_remaining_duration: int
    estimated_arrival: datetime


@dataclass(frozen=True, slots=True)
class ProgressSnapshot:
    fraction: float
    current_waypoint: WaypointRef
    next_waypoint: Optional[WaypointRef]
    route_progress: RouteProgress
    distance: DistanceInfo
    duration: DurationInfo


def _ref(stop: Waypoint, index: int) -> WaypointRef:
    return WaypointRef(name=stop.name, latitude=stop.latitude, longitude=stop.longitude, index=index)


class ProgressCalculator:
    """Pure function of device state and route; never mutates either.

    The waypoint cursor is read as the index of the stop most recently
    reached. The declared route distance and duration are authoritative;
    summed segment lengths are only used to place the vehicle within its
    current segment.
    """

    def route_fraction(self, state: DeviceState, route: Route) -> float:
        stops = route.stops
        segments_total = len(stops) - 1
        segments_completed = min(max(state.waypoint_cursor, 0), segments_total)
        fraction = segments_completed / segments_total

        if segments_completed < segments_total:
            segment_start = stops[segments_completed]
            segment_end = stops[segments_completed + 1]
            segment_length = haversine_km(
                segment_start.latitude, segment_start.longitude, segment_end.latitude, segment_end.longitude
            )
            if segment_length > 0:
                covered = haversine_km(
                    segment_start.latitude,
                    segment_start.longitude,
                    state.position.latitude,
                    state.position.longitude,
                )
                fraction += min(covered / segment_length, 1.0) / segments_total

        return min(max(fraction, 0.0), 1.0)

    def compute(self, state: DeviceState, route: Route, now: datetime) -> ProgressSnapshot:
        stops = route.stops
        segments_total = len(stops) - 1
        cursor = max(state.waypoint_cursor, 0)
        segments_completed = min(cursor, segments_total)
        fraction = self.route_fraction(state, route)

        total_distance = float(route.distance_km)
        traveled = total_distance * fraction
        remaining_distance = max(0.0, total_distance - traveled)
        next_stop = stops[segments_completed + 1] if segments_completed < segments_total else None
        to_next = (
            haversine_km(state.position.latitude, state.position.longitude, next_stop.latitude, next_stop.longitude)
            if next_stop is not None
            else 0.0
        )

        total_minutes = int(route.estimated_duration_min)
        elapsed = min(max(round(total_minutes * fraction), cursor * MINUTES_PER_WAYPOINT), total_minutes)
        if fraction >= 1.0:
            elapsed = total_minutes
            remaining_minutes = 0
        else:
            remaining_minutes = max(0, total_minutes - elapsed)
        if abs(elapsed + remaining_minutes - total_minutes) > DURATION_TOLERANCE_MIN:
            remaining_minutes = max(0, total_minutes - elapsed)

        return ProgressSnapshot(
            fraction=fraction,
            current_waypoint=_ref(stops[segments_completed], segments_completed),
            next_waypoint=_ref(next_stop, segments_completed + 1) if next_stop is not None else None,
            route_progress=RouteProgress(
                completed_waypoints=segments_completed,
                total_waypoints=len(stops),
                progress_percentage=round(segments_completed / segments_total * 100),
            ),
            distance=DistanceInfo(
                total_route_distance=total_distance,
                distance_traveled=traveled,
                remaining_distance=remaining_distance,
                distance_to_next_waypoint=to_next,
            ),
            duration=DurationInfo(
                estimated_total_duration=total_minutes,
                elapsed_duration=elapsed,
                estimated_remaining_duration=remaining_minutes,
                estimated_arrival=now + timedelta(minutes=remaining_minutes),
            ),
        )
