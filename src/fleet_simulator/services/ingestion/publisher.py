"""Bridges scheduler events to the ingestion client as fire-and-forget asyncio tasks."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass
from typing import Any, Coroutine

from ...schemas.telemetry import CompletionRecord, LocationSample
from ..simulation.scheduler import FleetScheduler
from .client import IngestionClient, SendResult

logger = logging.getLogger(__name__)

DELIVERY_LOG_EVERY = 10


@dataclass(slots=True)
class PublisherStatistics:
    locations_sent: int = 0
    location_failures: int = 0
    completions_sent: int = 0
    completion_failures: int = 0
    dropped: int = 0


class TelemetryPublisher:
    """Sends every sample and completion without ever blocking the tick.

    Results only move counters; a slow or failing ingestion service has no
    effect on device state or on the scheduler cadence.
    """

    def __init__(self, client: IngestionClient) -> None:
        self.client = client
        self.stats = PublisherStatistics()
        self._pending: set[asyncio.Task] = set()

    def attach(self, scheduler: FleetScheduler) -> None:
        scheduler.on_location_sample(self.publish_location)
        scheduler.on_completion(self.publish_completion)

    @property
    def in_flight(self) -> int:
        return len(self._pending)

    def publish_location(self, sample: LocationSample) -> None:
        self._schedule(self._send_location(sample), kind="location")

    def publish_completion(self, record: CompletionRecord) -> None:
        self._schedule(self._send_completion(record), kind="completion")

    def _schedule(self, coroutine: Coroutine[Any, Any, None], *, kind: str) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            coroutine.close()
            self.stats.dropped += 1
            logger.warning(f"No running event loop, {kind} payload dropped")
            return
        task = loop.create_task(coroutine)
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def _send_location(self, sample: LocationSample) -> None:
        result: SendResult = await self.client.send_location(sample.to_payload())
        if result.success:
            self.stats.locations_sent += 1
            if self.stats.locations_sent % DELIVERY_LOG_EVERY == 0:
                logger.info(f"{self.stats.locations_sent} location samples delivered (latest: bus {sample.bus_id})")
        else:
            self.stats.location_failures += 1
            logger.warning(f"Location sample for bus {sample.bus_id} not delivered: {result.error}")

    async def _send_completion(self, record: CompletionRecord) -> None:
        result: SendResult = await self.client.send_completion(record.to_payload())
        if result.success:
            self.stats.completions_sent += 1
            summary = record.journey_summary
            logger.info(
                f"Journey summary for bus {record.bus_id}: {record.total_journey_duration} min, "
                f"{summary.total_distance} km, {summary.average_speed} km/h"
            )
        else:
            self.stats.completion_failures += 1
            logger.warning(f"Route completion for bus {record.bus_id} not delivered: {result.error}")

    async def drain(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def statistics(self) -> dict:
        summary = asdict(self.stats)
        summary["in_flight"] = self.in_flight
        attempted = self.stats.locations_sent + self.stats.location_failures
        summary["success_rate"] = round(self.stats.locations_sent / attempted * 100, 1) if attempted else None
        return summary
