"""Telemetry ingestion services."""

from .client import IngestionClient, SendResult
from .publisher import TelemetryPublisher

__all__ = ["IngestionClient", "SendResult", "TelemetryPublisher"]
