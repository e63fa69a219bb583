import asyncio
import json
import random
from datetime import datetime, timezone

import httpx

from fleet_simulator.models.domain import Route, Vehicle, Waypoint
from fleet_simulator.services.ingestion.client import IngestionClient
from fleet_simulator.services.ingestion.publisher import TelemetryPublisher
from fleet_simulator.services.simulation.device import GPSDevice

BASE_URL = "http://ingest.test/api"
T0 = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)


def _client(handler, **kwargs) -> IngestionClient:
    options = dict(api_key="secret", timeout=5.0, max_retries=2, backoff_seconds=0.0, exponential_backoff=False)
    options.update(kwargs)
    return IngestionClient(BASE_URL, transport=httpx.MockTransport(handler), **options)


def _device() -> GPSDevice:
    route = Route(
        route_id="RT900",
        name="Colombo - Galle Line",
        start=Waypoint("Colombo Central", 6.9271, 79.8612, "Colombo", "Western Province"),
        end=Waypoint("Galle Fort", 6.0535, 80.2210, "Galle", "Southern Province"),
        waypoints=(Waypoint("Kalutara", 6.5854, 79.9607),),
        distance_km=119,
        estimated_duration_min=150,
        max_speed_kmh=80,
        average_speed_kmh=55,
    )
    vehicle = Vehicle(
        vehicle_id="BUS901",
        registration_number="NC-9001",
        operator_id="OP900",
        operator_name="Test Transit",
        vehicle_type="Normal",
        capacity=52,
        assigned_route_ids=("RT900",),
        gps_device_id="GPS_BUS901_001",
    )
    device = GPSDevice(vehicle, route, rng=random.Random(5))
    device.initialize_trip(T0)
    return device


def test_send_location_posts_camel_case_payload():
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"success": True})

    sample = _device().step(T0).sample

    async def scenario():
        async with _client(handler) as client:
            return await client.send_location(sample.to_payload())

    result = asyncio.run(scenario())

    assert result.success
    assert result.status_code == 201
    assert result.attempts == 1
    assert result.data == {"success": True}
    request = seen[0]
    assert request.method == "POST"
    assert request.url.path == "/api/locations"
    assert request.headers["x-api-key"] == "secret"
    assert request.headers["X-Device-Type"] == "GPS-IoT-Device"
    assert request.headers["User-Agent"] == "Fleet-GPS-Simulator/1.0"
    assert request.headers["X-Request-ID"].startswith("req_")
    assert "X-Timestamp" in request.headers
    assert json.loads(request.content)["busId"] == "BUS901"


def test_completion_goes_to_completion_endpoint():
    paths = []

    def handler(request: httpx.Request) -> httpx.Response:
        paths.append(request.url.path)
        return httpx.Response(200, json={})

    async def scenario():
        async with _client(handler) as client:
            return await client.send_completion({"busId": "BUS901"})

    assert asyncio.run(scenario()).success
    assert paths == ["/api/locations/complete"]


def test_server_errors_are_retried():
    statuses = iter([500, 503, 200])

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(next(statuses), json={})

    async def scenario():
        async with _client(handler) as client:
            return await client.send_location({"busId": "BUS901"})

    result = asyncio.run(scenario())

    assert result.success
    assert result.attempts == 3


def test_retries_are_bounded():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(502)

    async def scenario():
        async with _client(handler, max_retries=1) as client:
            return await client.send_location({"busId": "BUS901"})

    result = asyncio.run(scenario())

    assert not result.success
    assert result.status_code == 502
    assert result.attempts == 2
    assert len(calls) == 2


def test_client_errors_are_not_retried():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(400, json={"error": "bad payload"})

    async def scenario():
        async with _client(handler) as client:
            return await client.send_location({"busId": "BUS901"})

    result = asyncio.run(scenario())

    assert not result.success
    assert result.status_code == 400
    assert len(calls) == 1


def test_unexpected_success_status_is_a_failure():
    async def scenario():
        async with _client(lambda request: httpx.Response(204)) as client:
            return await client.send_location({"busId": "BUS901"})

    result = asyncio.run(scenario())

    assert not result.success
    assert result.status_code == 204


def test_connection_errors_are_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async def scenario():
        async with _client(handler) as client:
            return await client.check_health()

    result = asyncio.run(scenario())

    assert not result.success
    assert result.attempts == 3
    assert result.error.startswith("Connection error")


def test_timeouts_are_reported():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ReadTimeout("too slow", request=request)

    async def scenario():
        async with _client(handler, max_retries=0) as client:
            return await client.send_location({"busId": "BUS901"})

    result = asyncio.run(scenario())

    assert not result.success
    assert result.attempts == 1
    assert result.error.startswith("Timeout")


def test_backoff_schedule():
    fixed = IngestionClient(BASE_URL, backoff_seconds=0.5, exponential_backoff=False)
    exponential = IngestionClient(BASE_URL, backoff_seconds=0.5, exponential_backoff=True)

    assert [fixed._wait_time(attempt) for attempt in (1, 2, 3)] == [0.5, 0.5, 0.5]
    assert [exponential._wait_time(attempt) for attempt in (1, 2, 3)] == [0.5, 1.0, 2.0]


def test_publisher_counts_deliveries_and_failures():
    device = _device()
    first = device.step(T0)
    second = device.step(T0)
    third = device.step(T0)
    assert third.completion is not None

    def handler(request: httpx.Request) -> httpx.Response:
        if json.loads(request.content).get("locationId") == second.sample.location_id:
            return httpx.Response(400, json={})
        return httpx.Response(201, json={})

    async def scenario():
        async with _client(handler, max_retries=0) as client:
            publisher = TelemetryPublisher(client)
            publisher.publish_location(first.sample)
            publisher.publish_location(second.sample)
            publisher.publish_completion(third.completion)
            assert publisher.in_flight == 3
            await publisher.drain()
            return publisher.statistics()

    stats = asyncio.run(scenario())

    assert stats["locations_sent"] == 1
    assert stats["location_failures"] == 1
    assert stats["completions_sent"] == 1
    assert stats["in_flight"] == 0
    assert stats["success_rate"] == 50.0


def test_publisher_drops_payloads_without_event_loop():
    client = _client(lambda request: httpx.Response(201))
    publisher = TelemetryPublisher(client)

    publisher.publish_location(_device().step(T0).sample)

    assert publisher.statistics()["dropped"] == 1
    assert publisher.in_flight == 0
