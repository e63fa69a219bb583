import random

import pytest

from fleet_simulator.models.domain import DeviceStatus, Route, Vehicle, Waypoint
from fleet_simulator.services.simulation.clock import RepeatingTimer, VirtualClock
from fleet_simulator.services.simulation.device import GPSDevice
from fleet_simulator.services.simulation.device_health import DeviceHealthModel, HealthParameters
from fleet_simulator.services.simulation.scheduler import FleetScheduler, SchedulerParameters


def _route() -> Route:
    return Route(
        route_id="RT900",
        name="Colombo - Kandy Line",
        start=Waypoint("Colombo Central", 6.9271, 79.8612, "Colombo", "Western Province"),
        end=Waypoint("Kandy Terminal", 7.2966, 80.6350, "Kandy", "Central Province"),
        waypoints=(Waypoint("Kadawatha", 7.0014, 79.9547), Waypoint("Kegalle", 7.2513, 80.3464)),
        distance_km=115,
        estimated_duration_min=180,
        max_speed_kmh=80,
        average_speed_kmh=45,
    )


def _device(vehicle_id: str, seed: int = 0, **kwargs) -> GPSDevice:
    vehicle = Vehicle(
        vehicle_id=vehicle_id,
        registration_number=f"NC-{vehicle_id[-3:]}",
        operator_id="OP900",
        operator_name="Test Transit",
        vehicle_type="Normal",
        capacity=52,
        assigned_route_ids=("RT900",),
        gps_device_id=f"GPS_{vehicle_id}_001",
    )
    return GPSDevice(vehicle, _route(), rng=random.Random(seed), **kwargs)


def _params(**overrides) -> SchedulerParameters:
    # Long tick interval so tests drive ticks by hand unless they opt in.
    values = dict(
        tick_interval_seconds=1000.0,
        first_tick_delay_seconds=1000.0,
        individual_restart_delay_seconds=2.0,
        fleet_restart_settle_seconds=3.0,
        status_report_interval_seconds=5000.0,
        auto_restart=True,
    )
    values.update(overrides)
    return SchedulerParameters(**values)


def _scheduler(*bus_ids: str, clock: VirtualClock | None = None, **overrides) -> FleetScheduler:
    devices = [_device(bus_id, seed=index) for index, bus_id in enumerate(bus_ids)]
    return FleetScheduler(devices, clock=clock or VirtualClock(), rng=random.Random(7), params=_params(**overrides))


def _complete(scheduler: FleetScheduler, bus_id: str) -> None:
    for _ in range(4):
        scheduler.tick_device(bus_id)


def test_start_puts_every_active_device_en_route():
    scheduler = _scheduler("BUS901", "BUS902", "BUS903")

    assert scheduler.start()
    assert not scheduler.start()

    assert len(scheduler.eligible_devices()) == 3
    assert all(device.state.trip_id for device in scheduler.devices.values())


def test_duplicate_bus_ids_are_rejected():
    with pytest.raises(ValueError):
        FleetScheduler([_device("BUS901"), _device("BUS901")], clock=VirtualClock())


def test_each_tick_emits_exactly_one_sample():
    scheduler = _scheduler("BUS901", "BUS902", "BUS903")
    samples = []
    scheduler.on_location_sample(samples.append)
    scheduler.start()

    for expected in range(1, 6):
        assert scheduler.tick() is not None
        assert len(samples) == expected

    assert sum(device.state.samples_emitted for device in scheduler.devices.values()) == 5
    assert scheduler.stats.ticks == 5


def test_tick_before_start_does_nothing():
    scheduler = _scheduler("BUS901")
    assert scheduler.tick() is None
    assert scheduler.stats.samples_emitted == 0


def test_timer_drives_ticks_at_the_configured_cadence():
    clock = VirtualClock()
    scheduler = _scheduler(
        "BUS901", "BUS902", clock=clock, tick_interval_seconds=10.0, first_tick_delay_seconds=2.0, auto_restart=False
    )
    scheduler.start()

    clock.advance(1.9)
    assert scheduler.stats.samples_emitted == 0
    clock.advance(0.1)
    assert scheduler.stats.samples_emitted == 1
    clock.advance(30)
    assert scheduler.stats.samples_emitted == 4


def test_exactly_one_completion_per_traversal():
    scheduler = _scheduler("BUS901", auto_restart=False)
    completions = []
    scheduler.on_completion(completions.append)
    scheduler.start()

    for _ in range(10):
        scheduler.tick()

    assert len(completions) == 1
    assert scheduler.stats.samples_emitted == 4
    assert scheduler.devices["BUS901"].state.status == DeviceStatus.COMPLETED
    assert not scheduler.fleet_restart_pending
    assert scheduler.pending_restarts == ()


def test_individual_restart_after_delay():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()
    _complete(scheduler, "BUS901")
    device = scheduler.devices["BUS901"]

    assert scheduler.pending_restarts == ("BUS901",)
    assert not scheduler.fleet_restart_pending

    clock.advance(1.9)
    assert device.state.status == DeviceStatus.COMPLETED

    clock.advance(0.2)
    assert device.state.status == DeviceStatus.EN_ROUTE
    assert device.state.waypoint_cursor == 0
    assert device.state.completed_this_cycle
    assert scheduler.stats.individual_restarts == 1
    assert scheduler.pending_restarts == ()


def test_fleet_restart_only_when_every_active_device_completed():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", "BUS903", clock=clock)
    scheduler.start()

    _complete(scheduler, "BUS901")
    _complete(scheduler, "BUS902")
    assert not scheduler.fleet_restart_pending
    assert scheduler.statistics()["completed_this_cycle"] == 2

    _complete(scheduler, "BUS903")
    assert scheduler.fleet_restart_pending

    clock.advance(3)

    assert scheduler.stats.cycles_completed == 1
    assert not scheduler.fleet_restart_pending
    assert scheduler.pending_restarts == ()
    for device in scheduler.devices.values():
        assert device.state.status == DeviceStatus.EN_ROUTE
        assert device.state.waypoint_cursor == 0
        assert not device.state.completed_this_cycle


def test_restarted_device_does_not_count_twice_in_a_cycle():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()

    _complete(scheduler, "BUS901")
    clock.advance(2)
    _complete(scheduler, "BUS901")
    assert scheduler.devices["BUS901"].state.trips_completed == 2
    assert not scheduler.fleet_restart_pending

    _complete(scheduler, "BUS902")
    assert scheduler.fleet_restart_pending


def test_stop_cancels_pending_restarts():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()
    _complete(scheduler, "BUS901")

    assert scheduler.stop()
    assert not scheduler.stop()
    clock.advance(60)

    assert scheduler.devices["BUS901"].state.status == DeviceStatus.COMPLETED
    assert scheduler.stats.individual_restarts == 0
    assert clock.pending() == 0
    assert all(device.state.speed_kmh == 0 for device in scheduler.devices.values())


def test_restart_after_stop_begins_fresh_trips():
    scheduler = _scheduler("BUS901", "BUS902")
    scheduler.start()
    _complete(scheduler, "BUS901")
    scheduler.stop()

    scheduler.start()

    device = scheduler.devices["BUS901"]
    assert device.state.status == DeviceStatus.EN_ROUTE
    assert device.state.waypoint_cursor == 0
    assert not device.state.completed_this_cycle


def test_auto_restart_can_be_disabled_at_runtime():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()
    scheduler.set_auto_restart(False)

    _complete(scheduler, "BUS901")
    clock.advance(10)

    assert scheduler.devices["BUS901"].state.status == DeviceStatus.COMPLETED
    assert scheduler.pending_restarts == ()


def test_shutdown_removes_device_from_the_cycle():
    clock = VirtualClock()
    health = DeviceHealthModel(
        random.Random(0),
        HealthParameters(
            battery_drain_rate=50,
            mountain_route_ids=(),
            mountain_route_markers=(),
            rural_route_markers=(),
        ),
    )
    fragile = _device("BUS901", health=health)
    healthy = _device("BUS902", seed=1)
    scheduler = FleetScheduler([fragile, healthy], clock=clock, rng=random.Random(7), params=_params())
    notices = []
    scheduler.on_shutdown(notices.append)
    scheduler.start()

    scheduler.tick_device("BUS901")
    scheduler.tick_device("BUS901")

    assert [notice.bus_id for notice in notices] == ["BUS901"]
    assert scheduler.stats.shutdowns == 1
    assert [device.bus_id for device in scheduler.active_devices()] == ["BUS902"]
    assert [device.bus_id for device in scheduler.eligible_devices()] == ["BUS902"]
    assert scheduler.tick_device("BUS901") is None

    # the last active bus finishing now closes the cycle
    _complete(scheduler, "BUS902")
    assert scheduler.fleet_restart_pending
    clock.advance(3)
    assert fragile.state.status == DeviceStatus.SHUTDOWN
    assert healthy.state.status == DeviceStatus.EN_ROUTE


def test_listener_errors_are_counted_and_do_not_stop_delivery():
    scheduler = _scheduler("BUS901")
    received = []

    def broken(sample):
        raise RuntimeError("listener exploded")

    scheduler.on_location_sample(broken)
    scheduler.on_location_sample(received.append)
    scheduler.start()

    assert scheduler.tick() is not None
    assert scheduler.stats.listener_errors == 1
    assert len(received) == 1


def test_device_errors_are_counted(monkeypatch):
    scheduler = _scheduler("BUS901")
    scheduler.start()

    def explode(now):
        raise RuntimeError("device exploded")

    monkeypatch.setattr(scheduler.devices["BUS901"], "step", explode)

    assert scheduler.tick() is None
    assert scheduler.stats.device_errors == 1
    assert scheduler.running


def test_tick_device_rejects_unknown_bus():
    scheduler = _scheduler("BUS901")
    with pytest.raises(KeyError):
        scheduler.tick_device("BUS999")


def test_statistics_and_device_status():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()
    scheduler.tick_device("BUS902")
    clock.advance(90)

    summary = scheduler.statistics()

    assert summary["running"]
    assert summary["total_devices"] == 2
    assert summary["active_devices"] == 2
    assert summary["en_route_devices"] == 2
    assert summary["samples_emitted"] == 1
    assert summary["uptime_seconds"] == 90
    assert scheduler.device_status("BUS902")["waypoint_cursor"] == 1
    assert scheduler.device_status("BUS999") is None
    assert len(scheduler.device_statuses()) == 2


def test_repeating_timer_keeps_cadence_when_callback_fails():
    clock = VirtualClock()
    calls = []

    def callback():
        calls.append(clock.elapsed)
        raise RuntimeError("tick failed")

    timer = RepeatingTimer(clock, 5, callback, first_delay=1).start()
    with pytest.raises(RuntimeError):
        clock.advance(1)
    assert timer.active
    timer.cancel()
    clock.advance(20)

    assert calls == [1]
    assert not timer.active


def test_manual_tick_is_ignored_while_stopped():
    scheduler = _scheduler("BUS901", "BUS902")
    samples = []
    scheduler.on_location_sample(samples.append)
    scheduler.start()
    scheduler.stop()
    device = scheduler.devices["BUS901"]

    for _ in range(5):
        assert scheduler.tick_device("BUS901") is None

    assert device.state.waypoint_cursor == 0
    assert device.state.battery_pct == 100
    assert device.state.speed_kmh == 0
    assert samples == []
    assert scheduler.pending_restarts == ()


def test_re_enabling_auto_restart_restarts_the_parked_fleet():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", clock=clock)
    scheduler.start()
    scheduler.set_auto_restart(False)
    _complete(scheduler, "BUS901")
    _complete(scheduler, "BUS902")
    clock.advance(60)
    assert scheduler.eligible_devices() == []

    scheduler.set_auto_restart(True)
    assert scheduler.fleet_restart_pending
    clock.advance(3)

    assert scheduler.stats.cycles_completed == 1
    assert len(scheduler.eligible_devices()) == 2
    assert all(not device.state.completed_this_cycle for device in scheduler.devices.values())


def test_re_enabling_auto_restart_restarts_parked_buses_individually():
    clock = VirtualClock()
    scheduler = _scheduler("BUS901", "BUS902", "BUS903", clock=clock)
    scheduler.start()
    scheduler.set_auto_restart(False)
    _complete(scheduler, "BUS901")

    scheduler.set_auto_restart(True)
    assert scheduler.pending_restarts == ("BUS901",)
    assert not scheduler.fleet_restart_pending
    clock.advance(2)

    device = scheduler.devices["BUS901"]
    assert device.state.status == DeviceStatus.EN_ROUTE
    assert device.state.completed_this_cycle
    assert scheduler.stats.individual_restarts == 1

    # toggling while already enabled schedules nothing new
    scheduler.set_auto_restart(True)
    assert scheduler.pending_restarts == ()
