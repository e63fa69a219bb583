"""Fleet scheduler: one randomly chosen bus reports per tick, with completion-driven restarts."""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass
from datetime import datetime
from functools import partial
from typing import Callable, Iterable, Optional

from ...config import settings
from ...models.domain import DeviceStatus
from ...schemas.telemetry import CompletionRecord, LocationSample
from .clock import Clock, RepeatingTimer, TimerHandle
from .device import GPSDevice, ShutdownNotice, TickOutcome

logger = logging.getLogger(__name__)

LocationListener = Callable[[LocationSample], None]
CompletionListener = Callable[[CompletionRecord], None]
ShutdownListener = Callable[[ShutdownNotice], None]


@dataclass(slots=True)
class SchedulerParameters:
    tick_interval_seconds: float = settings.tick_interval_seconds
    first_tick_delay_seconds: float = settings.first_tick_delay_seconds
    individual_restart_delay_seconds: float = settings.individual_restart_delay_seconds
    fleet_restart_settle_seconds: float = settings.fleet_restart_settle_seconds
    status_report_interval_seconds: float = settings.status_report_interval_seconds
    auto_restart: bool = settings.auto_restart


@dataclass(slots=True)
class FleetStatistics:
    total_devices: int = 0
    ticks: int = 0
    samples_emitted: int = 0
    completions: int = 0
    shutdowns: int = 0
    cycles_completed: int = 0
    individual_restarts: int = 0
    device_errors: int = 0
    listener_errors: int = 0
    started_at: Optional[datetime] = None


class FleetScheduler:
    """Drives a fleet of GPS devices from a single repeating timer.

    Every tick picks exactly one active, en-route device uniformly at random
    and runs it synchronously, so no two mutations of a device state ever
    overlap. When a device finishes its route it is restarted on its own after
    a short delay, unless it was the last active device of the cycle, in which
    case the whole fleet is reset together after a settle delay.
    """

    def __init__(
        self,
        devices: Iterable[GPSDevice],
        *,
        clock: Clock,
        rng: random.Random | None = None,
        params: SchedulerParameters | None = None,
    ) -> None:
        self.devices: dict[str, GPSDevice] = {}
        for device in devices:
            if device.bus_id in self.devices:
                raise ValueError(f"Duplicate bus id in fleet: {device.bus_id}")
            self.devices[device.bus_id] = device
        self.clock = clock
        self.rng = rng or random.Random()
        self.params = params or SchedulerParameters()
        self.auto_restart = self.params.auto_restart
        self.running = False
        self.stats = FleetStatistics(total_devices=len(self.devices))

        self._location_listeners: list[LocationListener] = []
        self._completion_listeners: list[CompletionListener] = []
        self._shutdown_listeners: list[ShutdownListener] = []
        self._tick_timer: Optional[RepeatingTimer] = None
        self._status_timer: Optional[RepeatingTimer] = None
        self._pending_restarts: dict[str, TimerHandle] = {}
        self._fleet_restart: Optional[TimerHandle] = None

    # Listener registry

    def on_location_sample(self, listener: LocationListener) -> LocationListener:
        self._location_listeners.append(listener)
        return listener

    def on_completion(self, listener: CompletionListener) -> CompletionListener:
        self._completion_listeners.append(listener)
        return listener

    def on_shutdown(self, listener: ShutdownListener) -> ShutdownListener:
        self._shutdown_listeners.append(listener)
        return listener

    # Fleet views

    def active_devices(self) -> list[GPSDevice]:
        return [device for device in self.devices.values() if device.is_active]

    def eligible_devices(self) -> list[GPSDevice]:
        return [
            device
            for device in self.devices.values()
            if device.is_active and device.state.status == DeviceStatus.EN_ROUTE
        ]

    @property
    def fleet_restart_pending(self) -> bool:
        return self._fleet_restart is not None

    @property
    def pending_restarts(self) -> tuple[str, ...]:
        return tuple(self._pending_restarts)

    # Lifecycle

    def start(self) -> bool:
        if self.running:
            logger.warning("Fleet scheduler is already running")
            return False
        now = self.clock.now()
        self.running = True
        self.stats.started_at = now
        started = 0
        for device in self.active_devices():
            if device.state.status != DeviceStatus.IDLE:
                device.reset_for_next_trip()
            if device.initialize_trip(now):
                started += 1
        params = self.params
        self._tick_timer = RepeatingTimer(
            self.clock,
            params.tick_interval_seconds,
            self.tick,
            first_delay=params.first_tick_delay_seconds,
        ).start()
        self._status_timer = RepeatingTimer(
            self.clock,
            params.status_report_interval_seconds,
            self.log_status,
        ).start()
        logger.info(
            f"Fleet scheduler started: {started} buses en route, one report every "
            f"{params.tick_interval_seconds:g}s"
        )
        return True

    def stop(self) -> bool:
        if not self.running:
            logger.warning("Fleet scheduler is not running")
            return False
        self.running = False
        for timer in (self._tick_timer, self._status_timer):
            if timer is not None:
                timer.cancel()
        self._tick_timer = None
        self._status_timer = None
        self._cancel_pending_restarts()
        if self._fleet_restart is not None:
            self._fleet_restart.cancel()
            self._fleet_restart = None
        for device in self.devices.values():
            device.halt()
        logger.info("Fleet scheduler stopped")
        return True

    def set_auto_restart(self, enabled: bool) -> None:
        resumed = enabled and not self.auto_restart
        self.auto_restart = enabled
        logger.info(f"Auto-restart {'enabled' if enabled else 'disabled'}")
        if not (resumed and self.running):
            return
        # Buses that finished while auto-restart was off are still parked.
        parked = [device for device in self.active_devices() if device.state.status == DeviceStatus.COMPLETED]
        if parked:
            self._schedule_restarts(parked)

    # Ticking

    def tick(self) -> Optional[LocationSample]:
        if not self.running:
            return None
        eligible = self.eligible_devices()
        if not eligible:
            logger.debug("No en-route devices available for this tick")
            return None
        device = self.rng.choice(eligible)
        return self._run_device(device)

    def tick_device(self, bus_id: str) -> Optional[LocationSample]:
        device = self.devices.get(bus_id)
        if device is None:
            raise KeyError(bus_id)
        if not self.running:
            logger.debug(f"Ignoring manual tick for bus {bus_id}: fleet is stopped")
            return None
        return self._run_device(device)

    def _run_device(self, device: GPSDevice) -> Optional[LocationSample]:
        try:
            outcome = device.step(self.clock.now())
        except Exception:
            self.stats.device_errors += 1
            logger.exception(f"Tick failed for bus {device.bus_id}")
            return None
        if outcome is None:
            return None
        self._publish(device, outcome)
        return outcome.sample

    def _publish(self, device: GPSDevice, outcome: TickOutcome) -> None:
        stats = self.stats
        stats.ticks += 1
        stats.samples_emitted += 1
        logger.debug(
            f"Bus {device.bus_id} reported at stop {device.state.waypoint_cursor}/{len(device.route.stops)}"
        )
        self._dispatch(self._location_listeners, outcome.sample)

        if outcome.completion is not None:
            stats.completions += 1
            self._dispatch(self._completion_listeners, outcome.completion)
            self._handle_completion(device)

        if outcome.shutdown is not None:
            stats.shutdowns += 1
            self._dispatch(self._shutdown_listeners, outcome.shutdown)
            self._handle_shutdown(device)

    def _dispatch(self, listeners: list, payload) -> None:
        for listener in list(listeners):
            try:
                listener(payload)
            except Exception:
                self.stats.listener_errors += 1
                logger.exception(f"Listener {getattr(listener, '__name__', listener)!r} failed")

    # Restart cycle

    def _handle_completion(self, device: GPSDevice) -> None:
        if not self.auto_restart:
            logger.info(f"Bus {device.bus_id} completed its route, auto-restart is disabled")
            return
        self._schedule_restarts([device])

    def _schedule_restarts(self, finished: list[GPSDevice]) -> None:
        active = self.active_devices()
        completed = sum(1 for candidate in active if candidate.state.completed_this_cycle)
        if active and completed == len(active):
            if self._fleet_restart is None:
                logger.info(f"All {len(active)} active buses completed their routes, restarting the cycle")
                self._fleet_restart = self.clock.call_later(
                    self.params.fleet_restart_settle_seconds, self._restart_fleet
                )
            return

        for device in finished:
            previous = self._pending_restarts.pop(device.bus_id, None)
            if previous is not None:
                previous.cancel()
            self._pending_restarts[device.bus_id] = self.clock.call_later(
                self.params.individual_restart_delay_seconds,
                partial(self._restart_device, device.bus_id),
            )
            logger.debug(f"Bus {device.bus_id} completed ({completed}/{len(active)} this cycle), restart scheduled")

    def _restart_device(self, bus_id: str) -> None:
        self._pending_restarts.pop(bus_id, None)
        if not self.running:
            return
        device = self.devices.get(bus_id)
        if device is None or not device.is_active or device.state.status != DeviceStatus.COMPLETED:
            return
        device.reset_for_next_trip()
        device.initialize_trip(self.clock.now(), clear_cycle_flag=False)
        self.stats.individual_restarts += 1
        logger.info(f"Restarted bus {bus_id} on {device.route.route_id}")

    def _restart_fleet(self) -> None:
        self._fleet_restart = None
        if not self.running:
            return
        self._cancel_pending_restarts()
        self.stats.cycles_completed += 1
        now = self.clock.now()
        restarted = 0
        for device in self.active_devices():
            device.reset_for_next_trip()
            if device.initialize_trip(now):
                restarted += 1
        logger.info(f"Simulation cycle {self.stats.cycles_completed} started with all {restarted} buses")

    def _cancel_pending_restarts(self) -> None:
        for handle in self._pending_restarts.values():
            handle.cancel()
        self._pending_restarts.clear()

    def _handle_shutdown(self, device: GPSDevice) -> None:
        handle = self._pending_restarts.pop(device.bus_id, None)
        if handle is not None:
            handle.cancel()
        logger.warning(f"Device {device.device_id} on bus {device.bus_id} shut down: battery depleted")

    # Reporting

    def statistics(self) -> dict:
        active = self.active_devices()
        summary = asdict(self.stats)
        summary.update(
            running=self.running,
            auto_restart=self.auto_restart,
            active_devices=len(active),
            en_route_devices=len(self.eligible_devices()),
            completed_this_cycle=sum(1 for device in active if device.state.completed_this_cycle),
            fleet_restart_pending=self.fleet_restart_pending,
            pending_restarts=len(self._pending_restarts),
            uptime_seconds=(
                (self.clock.now() - self.stats.started_at).total_seconds() if self.stats.started_at else 0.0
            ),
        )
        return summary

    def device_statuses(self) -> list[dict]:
        return [device.status_summary() for device in self.devices.values()]

    def device_status(self, bus_id: str) -> Optional[dict]:
        device = self.devices.get(bus_id)
        return device.status_summary() if device else None

    def log_status(self) -> None:
        summary = self.statistics()
        uptime_minutes = int(summary["uptime_seconds"] // 60)
        logger.info(
            f"Fleet status: {summary['active_devices']}/{summary['total_devices']} active, "
            f"cycle {summary['cycles_completed']}, {summary['samples_emitted']} samples, "
            f"{summary['completions']} completions, {summary['device_errors']} device errors, "
            f"auto-restart {'on' if self.auto_restart else 'off'}, uptime {uptime_minutes // 60}h {uptime_minutes % 60}m"
        )
