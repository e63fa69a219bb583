"""Fleet control and inspection endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status

from ...schemas.fleet import (
    AutoRestartRequest,
    DeviceListResponse,
    DeviceStatusModel,
    FleetActionResponse,
    FleetStatusResponse,
    IngestionStatistics,
    TickResponse,
)
from ...services.simulation.scheduler import FleetScheduler

router = APIRouter(prefix="/fleet", tags=["fleet"])


def get_scheduler(request: Request) -> FleetScheduler:
    scheduler = getattr(request.app.state, "scheduler", None)
    if scheduler is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Fleet is not initialised.")
    return scheduler


@router.get("/status", response_model=FleetStatusResponse)
def fleet_status(request: Request, scheduler: FleetScheduler = Depends(get_scheduler)) -> FleetStatusResponse:
    publisher = getattr(request.app.state, "publisher", None)
    return FleetStatusResponse(
        **scheduler.statistics(),
        ingestion_online=getattr(request.app.state, "ingestion_online", None),
        ingestion=IngestionStatistics(**publisher.statistics()) if publisher is not None else None,
    )


@router.get("/devices", response_model=DeviceListResponse)
def list_devices(scheduler: FleetScheduler = Depends(get_scheduler)) -> DeviceListResponse:
    devices = [DeviceStatusModel(**item) for item in scheduler.device_statuses()]
    return DeviceListResponse(count=len(devices), devices=devices)


@router.get("/devices/{bus_id}", response_model=DeviceStatusModel)
def get_device(bus_id: str, scheduler: FleetScheduler = Depends(get_scheduler)) -> DeviceStatusModel:
    summary = scheduler.device_status(bus_id)
    if summary is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Bus '{bus_id}' not found.")
    return DeviceStatusModel(**summary)


# Timers are created on the running event loop, so these handlers must be async.
@router.post("/start", response_model=FleetActionResponse)
async def start_fleet(scheduler: FleetScheduler = Depends(get_scheduler)) -> FleetActionResponse:
    if not scheduler.start():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Fleet simulation is already running.")
    return FleetActionResponse(
        status="started",
        message=f"{len(scheduler.eligible_devices())} buses en route.",
        running=scheduler.running,
    )


@router.post("/stop", response_model=FleetActionResponse)
async def stop_fleet(scheduler: FleetScheduler = Depends(get_scheduler)) -> FleetActionResponse:
    if not scheduler.stop():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Fleet simulation is not running.")
    return FleetActionResponse(status="stopped", message="All timers cancelled.", running=scheduler.running)


@router.put("/auto-restart", response_model=FleetActionResponse)
async def set_auto_restart(
    payload: AutoRestartRequest, scheduler: FleetScheduler = Depends(get_scheduler)
) -> FleetActionResponse:
    scheduler.set_auto_restart(payload.enabled)
    return FleetActionResponse(
        status="updated",
        message=f"Auto-restart {'enabled' if payload.enabled else 'disabled'}.",
        running=scheduler.running,
    )


@router.post("/devices/{bus_id}/tick", response_model=TickResponse)
async def tick_device(bus_id: str, scheduler: FleetScheduler = Depends(get_scheduler)) -> TickResponse:
    try:
        sample = scheduler.tick_device(bus_id)
    except KeyError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Bus '{bus_id}' not found.") from exc
    if sample is None:
        if not scheduler.running:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Fleet simulation is not running.")
        device = scheduler.device_status(bus_id)
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Bus '{bus_id}' is not en route (status: {device['status'] if device else 'unknown'}).",
        )
    return TickResponse(bus_id=bus_id, sample=sample.to_payload())
