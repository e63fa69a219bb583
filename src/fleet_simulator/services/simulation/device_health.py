"""Battery drain and terrain-dependent cellular signal model for GPS units."""

from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum

from ...config import settings
from ...models.domain import DeviceState, DeviceStatus, Route, SignalTier

BATTERY_PRECISION = 6


class Terrain(str, Enum):
    MOUNTAIN = "mountain"
    RURAL = "rural"
    URBAN = "urban"


# Cumulative thresholds for poor, fair and good; anything above is excellent.
SIGNAL_TABLES: dict[Terrain, tuple[float, float, float]] = {
    Terrain.MOUNTAIN: (0.15, 0.35, 0.65),
    Terrain.RURAL: (0.10, 0.25, 0.50),
    Terrain.URBAN: (0.03, 0.10, 0.25),
}


@dataclass(slots=True)
class HealthParameters:
    battery_drain_rate: float = settings.battery_drain_rate
    mountain_route_ids: tuple[str, ...] = settings.mountain_route_ids
    mountain_route_markers: tuple[str, ...] = settings.mountain_route_markers
    rural_route_markers: tuple[str, ...] = settings.rural_route_markers


class DeviceHealthModel:
    def __init__(self, rng: random.Random | None = None, params: HealthParameters | None = None) -> None:
        self.rng = rng or random.Random()
        self.params = params or HealthParameters()

    def classify_terrain(self, route: Route) -> Terrain:
        params = self.params
        if route.route_id in params.mountain_route_ids or any(
            marker in route.name for marker in params.mountain_route_markers
        ):
            return Terrain.MOUNTAIN
        if any(marker in route.name for marker in params.rural_route_markers):
            return Terrain.RURAL
        return Terrain.URBAN

    def drain_battery(self, state: DeviceState) -> bool:
        """Drain one tick of battery. Returns True only on the tick that depletes it."""

        if not state.active or state.status == DeviceStatus.SHUTDOWN:
            return False
        state.battery_pct = round(max(0.0, state.battery_pct - self.params.battery_drain_rate), BATTERY_PRECISION)
        if state.battery_pct > 0:
            return False

        state.active = False
        state.status = DeviceStatus.SHUTDOWN
        state.speed_kmh = 0.0
        state.is_moving = False
        return True

    def refresh_signal(self, state: DeviceState, route: Route) -> SignalTier:
        poor, fair, good = SIGNAL_TABLES[self.classify_terrain(route)]
        roll = self.rng.random()
        if roll < poor:
            tier = SignalTier.POOR
        elif roll < fair:
            tier = SignalTier.FAIR
        elif roll < good:
            tier = SignalTier.GOOD
        else:
            tier = SignalTier.EXCELLENT
        state.signal_tier = tier
        return tier
