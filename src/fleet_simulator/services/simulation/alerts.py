"""Alert flags and operator-facing alert messages for each telemetry sample."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime

from ...config import settings
from ...models.domain import DeviceState, Route, SignalTier

PEAK_HOUR_WINDOWS = ((7, 9), (17, 19))

MAINTENANCE_CATALOG = (
    "Scheduled maintenance due - engine service required",
    "Tire pressure monitoring system alert",
    "Brake system inspection needed",
    "Air conditioning service required",
    "Engine temperature running high",
    "Fuel system efficiency check needed",
    "Transmission service overdue",
    "Electrical system diagnostic required",
)

SPEED_NORMAL_MESSAGE = "Speed within normal limits"
DEVIATION_MESSAGE = "GPS indicates possible route deviation or alternate path"
ON_ROUTE_MESSAGE = "Following designated route"
EMERGENCY_MESSAGE = "Emergency situation detected - immediate attention required"
NO_EMERGENCY_MESSAGE = "No emergency alerts"
SYSTEMS_NORMAL_MESSAGE = "Vehicle systems operating normally"


@dataclass(slots=True)
class AlertParameters:
    route_deviation_probability: float = settings.route_deviation_probability
    poor_signal_deviation_probability: float = settings.poor_signal_deviation_probability
    emergency_probability: float = settings.emergency_probability
    maintenance_peak_probability: float = settings.maintenance_peak_probability
    maintenance_offpeak_probability: float = settings.maintenance_offpeak_probability
    low_battery_threshold: float = settings.low_battery_threshold


@dataclass(frozen=True, slots=True)
class AlertFlags:
    speeding_alert: bool
    route_deviation_alert: bool
    emergency_alert: bool
    maintenance_alert: bool


@dataclass(frozen=True, slots=True)
class AlertMessages:
    speeding_message: str
    route_deviation_message: str
    emergency_message: str
    maintenance_message: str


@dataclass(frozen=True, slots=True)
class AlertReport:
    flags: AlertFlags
    messages: AlertMessages


def is_peak_hour(moment: datetime) -> bool:
    """Morning and evening rush, 07:00-09:59 and 17:00-19:59 local time."""
    return any(start <= moment.hour <= end for start, end in PEAK_HOUR_WINDOWS)


def low_battery_message(battery_pct: float) -> str:
    return f"Low battery level: {battery_pct:.1f}% - charging required"


class AlertEvaluator:
    def __init__(self, rng: random.Random | None = None, params: AlertParameters | None = None) -> None:
        self.rng = rng or random.Random()
        self.params = params or AlertParameters()

    def evaluate(self, state: DeviceState, route: Route, now: datetime) -> AlertReport:
        params = self.params
        speeding = state.speed_kmh > route.max_speed_kmh
        deviation = self.rng.random() < params.route_deviation_probability
        emergency = self.rng.random() < params.emergency_probability

        maintenance_probability = (
            params.maintenance_peak_probability if is_peak_hour(now) else params.maintenance_offpeak_probability
        )
        maintenance = self.rng.random() < maintenance_probability
        low_battery = state.battery_pct < params.low_battery_threshold
        if low_battery:
            maintenance = True

        if state.signal_tier == SignalTier.POOR and self.rng.random() < params.poor_signal_deviation_probability:
            deviation = True

        flags = AlertFlags(
            speeding_alert=speeding,
            route_deviation_alert=deviation,
            emergency_alert=emergency,
            maintenance_alert=maintenance,
        )
        messages = AlertMessages(
            speeding_message=(
                f"Vehicle exceeding speed limit by {round(state.speed_kmh - route.max_speed_kmh)} km/h"
                if speeding
                else SPEED_NORMAL_MESSAGE
            ),
            route_deviation_message=DEVIATION_MESSAGE if deviation else ON_ROUTE_MESSAGE,
            emergency_message=EMERGENCY_MESSAGE if emergency else NO_EMERGENCY_MESSAGE,
            maintenance_message=self._maintenance_message(state, low_battery) if maintenance else SYSTEMS_NORMAL_MESSAGE,
        )
        return AlertReport(flags=flags, messages=messages)

    def _maintenance_message(self, state: DeviceState, low_battery: bool) -> str:
        if low_battery:
            return low_battery_message(state.battery_pct)
        return self.rng.choice(MAINTENANCE_CATALOG)
