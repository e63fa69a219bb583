"""Async HTTP client for the telemetry ingestion API."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from ...config import settings

USER_AGENT = "Fleet-GPS-Simulator/1.0"
DEVICE_TYPE = "GPS-IoT-Device"
SUCCESS_STATUSES = (200, 201)

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendResult:
    success: bool
    status_code: Optional[int] = None
    error: Optional[str] = None
    attempts: int = 0
    data: Any = None


def _is_retryable_status(status_code: int) -> bool:
    return status_code >= 500 or status_code in (408, 429)


class IngestionClient:
    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
        backoff_seconds: float | None = None,
        exponential_backoff: bool | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or settings.ingestion_base_url or "").rstrip("/")
        if not self.base_url:
            raise ValueError("Ingestion base URL is not configured.")
        self.api_key = api_key if api_key is not None else settings.ingestion_api_key
        self.timeout = timeout if timeout is not None else settings.ingestion_timeout_seconds
        self.max_retries = max_retries if max_retries is not None else settings.ingestion_max_retries
        self.backoff_seconds = backoff_seconds if backoff_seconds is not None else settings.ingestion_backoff_seconds
        self.exponential_backoff = (
            exponential_backoff if exponential_backoff is not None else settings.ingestion_exponential_backoff
        )
        headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            "X-Device-Type": DEVICE_TYPE,
        }
        if self.api_key:
            headers["x-api-key"] = self.api_key
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "IngestionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _wait_time(self, attempt: int) -> float:
        if self.exponential_backoff:
            return self.backoff_seconds * (2 ** (attempt - 1))
        return self.backoff_seconds

    @staticmethod
    def _request_headers() -> dict[str, str]:
        return {
            "X-Request-ID": f"req_{uuid.uuid4().hex[:16]}",
            "X-Timestamp": datetime.now(timezone.utc).isoformat(),
        }

    async def _request(self, method: str, path: str, payload: dict | None = None) -> SendResult:
        attempt = 0
        while True:
            attempt += 1
            try:
                response = await self._client.request(method, path, json=payload, headers=self._request_headers())
                response.raise_for_status()
                if response.status_code not in SUCCESS_STATUSES:
                    return SendResult(
                        success=False,
                        status_code=response.status_code,
                        error=f"Unexpected status: {response.status_code}",
                        attempts=attempt,
                    )
                try:
                    data = response.json()
                except ValueError:
                    data = response.text
                return SendResult(success=True, status_code=response.status_code, attempts=attempt, data=data)
            except httpx.HTTPStatusError as exc:
                status_code = exc.response.status_code
                if not _is_retryable_status(status_code) or attempt > self.max_retries:
                    logger.warning(f"Ingestion {method} {path} failed with HTTP {status_code}")
                    return SendResult(success=False, status_code=status_code, error=str(exc), attempts=attempt)
                error = f"HTTP {status_code}"
            except httpx.TimeoutException as exc:
                if attempt > self.max_retries:
                    logger.warning(f"Ingestion {method} {path} timed out after {attempt} attempts: {exc}")
                    return SendResult(success=False, error=f"Timeout: {exc}", attempts=attempt)
                error = "timeout"
            except (httpx.ConnectError, httpx.NetworkError) as exc:
                if attempt > self.max_retries:
                    logger.warning(f"Ingestion service at {self.base_url} is not reachable: {exc}")
                    return SendResult(success=False, error=f"Connection error: {exc}", attempts=attempt)
                error = "network error"
            except httpx.HTTPError as exc:
                if attempt > self.max_retries:
                    logger.warning(f"Ingestion {method} {path} failed: {exc}")
                    return SendResult(success=False, error=str(exc), attempts=attempt)
                error = str(exc)

            wait_time = self._wait_time(attempt)
            logger.debug(
                f"Ingestion {method} {path} {error}, retrying in {wait_time:.1f}s "
                f"(attempt {attempt}/{self.max_retries})"
            )
            await asyncio.sleep(wait_time)

    async def send_location(self, payload: dict) -> SendResult:
        result = await self._request("POST", settings.location_endpoint, payload)
        if result.success:
            logger.debug(f"Location sample sent for bus {payload.get('busId')} - {result.status_code}")
        return result

    async def send_completion(self, payload: dict) -> SendResult:
        result = await self._request("POST", settings.completion_endpoint, payload)
        if result.success:
            logger.info(f"Route completion sent for bus {payload.get('busId')} - {result.status_code}")
        return result

    async def check_health(self) -> SendResult:
        result = await self._request("GET", settings.health_endpoint)
        if result.success:
            logger.info("Ingestion API health check passed")
        else:
            logger.warning(f"Ingestion API health check failed: {result.error}")
        return result
