import random
from datetime import datetime, timedelta, timezone

import pytest

from fleet_simulator.models.domain import DeviceState, Position, Route, Waypoint
from fleet_simulator.services.geospatial import haversine_km
from fleet_simulator.services.simulation.movement import MovementEngine, MovementParameters
from fleet_simulator.services.simulation.progress import DURATION_TOLERANCE_MIN, ProgressCalculator

NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _route(duration: int = 180) -> Route:
    return Route(
        route_id="RT900",
        name="Colombo - Kandy Line",
        start=Waypoint("Colombo Central", 6.9271, 79.8612, "Colombo", "Western Province"),
        end=Waypoint("Kandy Terminal", 7.2966, 80.6350, "Kandy", "Central Province"),
        waypoints=(Waypoint("Kadawatha", 7.0014, 79.9547), Waypoint("Kegalle", 7.2513, 80.3464)),
        distance_km=115,
        estimated_duration_min=duration,
        max_speed_kmh=80,
        average_speed_kmh=45,
    )


def _state_at(route: Route, cursor: int) -> DeviceState:
    stop = route.stops[min(cursor, len(route.stops) - 1)]
    return DeviceState(position=Position(stop.latitude, stop.longitude, 10.0, 80.0), waypoint_cursor=cursor)


def test_progress_at_start_of_route():
    route = _route()
    snapshot = ProgressCalculator().compute(_state_at(route, 0), route, NOW)

    assert snapshot.fraction == 0
    assert snapshot.current_waypoint.name == "Colombo Central"
    assert snapshot.next_waypoint.name == "Kadawatha"
    assert snapshot.next_waypoint.index == 1
    assert snapshot.route_progress.progress_percentage == 0
    assert snapshot.route_progress.total_waypoints == 4
    assert snapshot.distance.distance_traveled == 0
    assert snapshot.distance.remaining_distance == 115
    assert snapshot.distance.distance_to_next_waypoint == pytest.approx(haversine_km(6.9271, 79.8612, 7.0014, 79.9547))
    assert snapshot.duration.elapsed_duration == 0
    assert snapshot.duration.estimated_remaining_duration == 180
    assert snapshot.duration.estimated_arrival == NOW + timedelta(minutes=180)


def test_progress_at_intermediate_stop():
    route = _route()
    snapshot = ProgressCalculator().compute(_state_at(route, 1), route, NOW)

    assert snapshot.fraction == pytest.approx(1 / 3)
    assert snapshot.current_waypoint.name == "Kadawatha"
    assert snapshot.next_waypoint.name == "Kegalle"
    assert snapshot.route_progress.completed_waypoints == 1
    assert snapshot.route_progress.progress_percentage == 33
    assert snapshot.distance.distance_traveled == pytest.approx(115 / 3)
    assert snapshot.duration.elapsed_duration == 60
    assert snapshot.duration.estimated_remaining_duration == 120


def test_progress_when_route_completed():
    route = _route()
    snapshot = ProgressCalculator().compute(_state_at(route, 4), route, NOW)

    assert snapshot.fraction == 1
    assert snapshot.current_waypoint.name == "Kandy Terminal"
    assert snapshot.next_waypoint is None
    assert snapshot.route_progress.progress_percentage == 100
    assert snapshot.distance.remaining_distance == 0
    assert snapshot.distance.distance_to_next_waypoint == 0
    assert snapshot.duration.elapsed_duration == 180
    assert snapshot.duration.estimated_remaining_duration == 0
    assert snapshot.duration.estimated_arrival == NOW


def test_elapsed_has_a_per_waypoint_floor():
    route = _route(duration=3)
    snapshot = ProgressCalculator().compute(_state_at(route, 1), route, NOW)

    assert snapshot.duration.elapsed_duration == 2
    assert snapshot.duration.estimated_remaining_duration == 1


def test_out_of_range_cursor_is_treated_as_complete():
    route = _route()
    state = _state_at(route, 4)
    state.waypoint_cursor = 99
    snapshot = ProgressCalculator().compute(state, route, NOW)

    assert snapshot.fraction == 1
    assert snapshot.route_progress.completed_waypoints == 3
    assert snapshot.route_progress.progress_percentage == 100


def test_progress_stays_consistent_over_a_traversal():
    route = _route()
    state = _state_at(route, 0)
    engine = MovementEngine(random.Random(42), MovementParameters())
    calculator = ProgressCalculator()

    previous_percentage = -1
    for _ in range(6):
        engine.advance(state, route)
        snapshot = calculator.compute(state, route, NOW)
        distance, duration = snapshot.distance, snapshot.duration

        assert 0 <= snapshot.fraction <= 1
        assert distance.distance_traveled + distance.remaining_distance == pytest.approx(route.distance_km)
        assert abs(duration.elapsed_duration + duration.estimated_remaining_duration - 180) <= DURATION_TOLERANCE_MIN
        assert snapshot.route_progress.progress_percentage >= previous_percentage
        previous_percentage = snapshot.route_progress.progress_percentage

    assert previous_percentage == 100


def test_compute_does_not_mutate_state():
    route = _route()
    state = _state_at(route, 2)
    before = (state.waypoint_cursor, state.position.latitude, state.position.longitude, state.speed_kmh)

    ProgressCalculator().compute(state, route, NOW)

    assert (state.waypoint_cursor, state.position.latitude, state.position.longitude, state.speed_kmh) == before
