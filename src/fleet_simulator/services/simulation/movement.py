"""Discrete waypoint-to-waypoint movement and the bus speed model."""

from __future__ import annotations

import random
from dataclasses import dataclass

from ...config import settings
from ...models.domain import DeviceState, Route
from ..geospatial import bearing_degrees

HIGHWAY_MARKERS = ("Highway", "Express")


@dataclass(slots=True)
class MovementParameters:
    speed_variation_kmh: float = 10.0
    speeding_probability: float = settings.speeding_probability
    speeding_margin_kmh: float = settings.speeding_margin_kmh
    traffic_probability: float = settings.traffic_probability
    traffic_max_factor: float = 0.5
    highway_bonus_probability: float = settings.highway_bonus_probability
    highway_bonus_factor: float = settings.highway_bonus_factor
    moving_threshold_kmh: float = settings.moving_threshold_kmh
    position_jitter_degrees: float = settings.position_jitter_degrees
    gps_accuracy_min_m: float = settings.gps_accuracy_min_m
    gps_accuracy_max_m: float = settings.gps_accuracy_max_m


@dataclass(frozen=True, slots=True)
class MovementResult:
    completed: bool
    advanced: bool


def is_highway_route(route: Route) -> bool:
    return any(marker in route.name for marker in HIGHWAY_MARKERS)


class MovementEngine:
    """Moves a device one stop per tick along its route.

    The vehicle jumps straight to the next stop (plus a little GPS jitter)
    instead of interpolating along the segment. Once the cursor runs past the
    last stop the traversal is complete and further calls are no-ops that keep
    reporting completion until the device is reset.
    """

    def __init__(self, rng: random.Random | None = None, params: MovementParameters | None = None) -> None:
        self.rng = rng or random.Random()
        self.params = params or MovementParameters()

    def sample_accuracy(self) -> float:
        return self.rng.uniform(self.params.gps_accuracy_min_m, self.params.gps_accuracy_max_m)

    def advance(self, state: DeviceState, route: Route) -> MovementResult:
        stops = route.stops
        cursor = max(state.waypoint_cursor, 0)
        if cursor >= len(stops):
            state.waypoint_cursor = len(stops)
            return MovementResult(completed=True, advanced=False)

        cursor += 1
        state.waypoint_cursor = cursor
        completed = cursor >= len(stops)
        if not completed:
            target = stops[cursor]
            jitter = self.params.position_jitter_degrees
            heading = bearing_degrees(
                state.position.latitude, state.position.longitude, target.latitude, target.longitude
            )
            state.position.latitude = target.latitude + self.rng.uniform(-jitter, jitter)
            state.position.longitude = target.longitude + self.rng.uniform(-jitter, jitter)
            state.position.accuracy_m = self.sample_accuracy()
            state.heading_deg = heading

        self.update_speed(state, route)
        self.update_movement_status(state)
        return MovementResult(completed=completed, advanced=True)

    def update_speed(self, state: DeviceState, route: Route) -> float:
        params = self.params
        target = route.average_speed_kmh + self.rng.uniform(-params.speed_variation_kmh, params.speed_variation_kmh)

        ceiling = route.max_speed_kmh
        if self.rng.random() < params.speeding_probability:
            ceiling += params.speeding_margin_kmh
        target = min(max(target, 0.0), ceiling)

        if self.rng.random() < params.traffic_probability:
            target *= self.rng.uniform(0.0, params.traffic_max_factor)

        if is_highway_route(route) and self.rng.random() < params.highway_bonus_probability:
            target = min(target * params.highway_bonus_factor, ceiling)

        state.speed_kmh = max(0.0, target)
        return state.speed_kmh

    def update_movement_status(self, state: DeviceState) -> None:
        state.is_moving = state.speed_kmh > self.params.moving_threshold_kmh
        state.heading_deg = round(state.heading_deg) % 360
