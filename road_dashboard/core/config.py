"""
@file config.py
@brief Environment-driven application settings

@details
Collects every tunable of the dashboard in one place. Values come from
environment variables with local-development defaults:

- Database: DATABASE_URL, or DB_HOST / DB_PORT / DB_NAME / DB_USER / DB_PASSWORD
- HTTP: PORT
- CSV dataset: CSV_PATH, WATCH_CSV, WATCH_INTERVAL, UPLOAD_DIR, REJECTED_LOG
- OSM dataset: DEFAULT_STATE
- Cache: REDIS_URL, CACHE_TTL
- Geocoding: GEOCODER_URL

@author Road Dashboard Project
@date 2026-10-19
@version 1.0
@license AGPL-3.0
"""

import os
from dataclasses import dataclass, field
from typing import Optional

## @brief Default location of the state DOT road segment export
DEFAULT_CSV_PATH = "./RMSSEG_(State_Roads).csv"

## @brief Region code stamped on OSM-derived rows
DEFAULT_STATE = "PA"


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def build_database_url() -> str:
    """
    @brief Resolve the PostgreSQL connection URL

    @details
    A full DATABASE_URL wins when set; otherwise the URL is composed from
    the individual DB_* variables.
    """
    if "DATABASE_URL" in os.environ:
        return os.environ["DATABASE_URL"]

    return (
        f"postgresql://{os.getenv('DB_USER', 'postgres')}:"
        f"{os.getenv('DB_PASSWORD', 'password')}@"
        f"{os.getenv('DB_HOST', 'localhost')}:"
        f"{os.getenv('DB_PORT', '5432')}/"
        f"{os.getenv('DB_NAME', 'road_dashboard')}"
    )


@dataclass
class Settings:
    """Runtime configuration for the API service and the import jobs."""

    database_url: str = field(default_factory=build_database_url)
    port: int = 3001
    csv_path: Optional[str] = DEFAULT_CSV_PATH
    watch_csv: bool = True
    watch_interval: float = 2.0
    default_state: str = DEFAULT_STATE
    upload_dir: str = "uploads"
    rejected_log: Optional[str] = None
    redis_url: str = "redis://localhost:6379/0"
    cache_ttl: int = 300
    geocoder_url: str = "https://nominatim.openstreetmap.org/search"
    batch_size: int = 1000

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        return cls(
            database_url=build_database_url(),
            port=int(os.getenv("PORT", "3001")),
            csv_path=os.getenv("CSV_PATH", DEFAULT_CSV_PATH) or None,
            watch_csv=_env_bool("WATCH_CSV", True),
            watch_interval=float(os.getenv("WATCH_INTERVAL", "2.0")),
            default_state=os.getenv("DEFAULT_STATE", DEFAULT_STATE),
            upload_dir=os.getenv("UPLOAD_DIR", "uploads"),
            rejected_log=os.getenv("REJECTED_LOG") or None,
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            cache_ttl=int(os.getenv("CACHE_TTL", "300")),
            geocoder_url=os.getenv(
                "GEOCODER_URL", "https://nominatim.openstreetmap.org/search"
            ),
        )
