"""Fleet simulation services."""

from .clock import AsyncioClock, RepeatingTimer, VirtualClock
from .device import GPSDevice, ShutdownNotice, TickOutcome
from .fleet import build_fleet, create_scheduler
from .scheduler import FleetScheduler, SchedulerParameters

__all__ = [
    "AsyncioClock",
    "RepeatingTimer",
    "VirtualClock",
    "GPSDevice",
    "ShutdownNotice",
    "TickOutcome",
    "build_fleet",
    "create_scheduler",
    "FleetScheduler",
    "SchedulerParameters",
]
