"""Application configuration and settings management."""

from pathlib import Path
from typing import Annotated, Any, Optional

import json
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

_PACKAGE_DATA = Path(__file__).resolve().parent / "data" / "static"


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or defaults."""

    model_config = SettingsConfigDict(
        env_prefix="FLEETSIM_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
    )

    app_name: str = "Fleet GPS Telemetry Simulator"
    api_prefix: str = "/api"
    log_level: str = Field(default="INFO", description="Root logging level.")
    autostart: bool = Field(
        default=True,
        description="Start the fleet scheduler together with the API process.",
    )
    frontend_allowed_origins: Annotated[tuple[str, ...], NoDecode] = Field(
        default=("http://localhost:5173", "http://127.0.0.1:5173"),
        description="Permitted web origins for browser clients (CORS).",
    )

    # Static fleet data
    data_root: Path = Field(default=_PACKAGE_DATA, description="Directory holding the bundled fleet data.")
    routes_file: Path = Field(default=_PACKAGE_DATA / "routes.json", description="Route definitions.")
    vehicles_file: Path = Field(default=_PACKAGE_DATA / "vehicles.json", description="Bus fleet definitions.")

    # Ingestion service
    ingestion_base_url: Optional[str] = Field(
        default="http://localhost:3000/api",
        description="Base URL of the telemetry ingestion API.",
    )
    ingestion_api_key: Optional[str] = Field(default=None, description="Value sent in the x-api-key header.")
    ingestion_timeout_seconds: float = Field(default=10.0, gt=0.0)
    ingestion_max_retries: int = Field(default=2, ge=0)
    ingestion_backoff_seconds: float = Field(default=0.5, ge=0.0)
    ingestion_exponential_backoff: bool = False
    location_endpoint: str = "/locations"
    completion_endpoint: str = "/locations/complete"
    health_endpoint: str = "/health"

    # Scheduler
    tick_interval_seconds: float = Field(default=10.0, gt=0.0)
    first_tick_delay_seconds: float = Field(default=2.0, ge=0.0)
    individual_restart_delay_seconds: float = Field(default=2.0, ge=0.0)
    fleet_restart_settle_seconds: float = Field(default=3.0, ge=0.0)
    status_report_interval_seconds: float = Field(default=300.0, gt=0.0)
    auto_restart: bool = True
    random_seed: Optional[int] = Field(default=None, description="Seed for reproducible runs.")

    # Movement
    speeding_probability: float = Field(default=0.15, ge=0.0, le=1.0)
    speeding_margin_kmh: float = Field(default=15.0, ge=0.0)
    traffic_probability: float = Field(default=0.10, ge=0.0, le=1.0)
    highway_bonus_probability: float = Field(default=0.15, ge=0.0, le=1.0)
    highway_bonus_factor: float = Field(default=1.1, ge=1.0)
    moving_threshold_kmh: float = Field(default=5.0, ge=0.0)
    position_jitter_degrees: float = Field(default=0.005, ge=0.0)
    gps_accuracy_min_m: float = Field(default=5.0, ge=0.0)
    gps_accuracy_max_m: float = Field(default=50.0, ge=0.0)

    # Alerts
    route_deviation_probability: float = Field(default=0.08, ge=0.0, le=1.0)
    poor_signal_deviation_probability: float = Field(default=0.5, ge=0.0, le=1.0)
    emergency_probability: float = Field(default=0.03, ge=0.0, le=1.0)
    maintenance_peak_probability: float = Field(default=0.06, ge=0.0, le=1.0)
    maintenance_offpeak_probability: float = Field(default=0.04, ge=0.0, le=1.0)
    low_battery_threshold: float = Field(default=30.0, ge=0.0, le=100.0)

    # Battery and signal
    battery_drain_rate: float = Field(default=0.1, ge=0.0)
    mountain_route_ids: Annotated[tuple[str, ...], NoDecode] = Field(default=("RT008",))
    mountain_route_markers: Annotated[tuple[str, ...], NoDecode] = Field(default=("Nuwara Eliya", "Kandy"))
    rural_route_markers: Annotated[tuple[str, ...], NoDecode] = Field(default=("Batticaloa", "Trincomalee", "Anuradhapura"))

    @field_validator("data_root", "routes_file", "vehicles_file", mode="before")
    @classmethod
    def _expand_path(cls, value: Any) -> Path:
        path_value = value if isinstance(value, Path) else Path(str(value))
        return path_value.expanduser().resolve()

    @field_validator(
        "frontend_allowed_origins",
        "mountain_route_ids",
        "mountain_route_markers",
        "rural_route_markers",
        mode="before",
    )
    @classmethod
    def _parse_str_tuple_from_env(cls, value: Any) -> tuple[str, ...]:
        """Parse string tuple from environment variable (comma-separated or JSON array)."""
        if isinstance(value, tuple):
            return value
        if isinstance(value, list):
            return tuple(str(item) for item in value)
        if isinstance(value, str):
            try:
                parsed = json.loads(value)
                if isinstance(parsed, list):
                    return tuple(str(item) for item in parsed)
            except (json.JSONDecodeError, TypeError):
                pass
            if "," in value:
                return tuple(item.strip() for item in value.split(",") if item.strip())
            if value.strip():
                return (value.strip(),)
        return tuple()


settings = Settings()
