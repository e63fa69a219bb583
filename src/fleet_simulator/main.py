"""FastAPI application entry point."""

from __future__ import annotations

import logging
import random
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.routes import fleet, health
from .config import settings
from .services.ingestion import IngestionClient, TelemetryPublisher
from .services.simulation import AsyncioClock, create_scheduler

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    rng = random.Random(settings.random_seed)
    scheduler = create_scheduler(AsyncioClock(), rng)
    app.state.scheduler = scheduler
    app.state.ingestion_client = None
    app.state.publisher = None
    app.state.ingestion_online = False

    if settings.ingestion_base_url:
        client = IngestionClient()
        publisher = TelemetryPublisher(client)
        publisher.attach(scheduler)
        app.state.ingestion_client = client
        app.state.publisher = publisher
        health_result = await client.check_health()
        app.state.ingestion_online = health_result.success
        if not health_result.success:
            logger.warning("Ingestion API not reachable, continuing in offline mode")
    else:
        logger.warning("Ingestion base URL not configured, telemetry will not be delivered")

    if settings.autostart:
        scheduler.start()
    try:
        yield
    finally:
        if scheduler.running:
            scheduler.stop()
        if app.state.publisher is not None:
            await app.state.publisher.drain()
        if app.state.ingestion_client is not None:
            await app.state.ingestion_client.aclose()
        logger.info(f"Simulator shut down after {scheduler.stats.samples_emitted} samples")


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, lifespan=lifespan)
    if settings.frontend_allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.frontend_allowed_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    @app.get("/")
    def root():
        return {
            "service": settings.app_name,
            "status": "running",
            "api_prefix": settings.api_prefix,
            "health": f"{settings.api_prefix}/health",
            "fleet": f"{settings.api_prefix}/fleet/status",
            "docs": "/docs",
        }

    app.include_router(health.router, prefix=settings.api_prefix)
    app.include_router(fleet.router, prefix=settings.api_prefix)
    return app


app = create_app()
