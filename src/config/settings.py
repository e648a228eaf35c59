from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dateutil import tz

LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


@dataclass(frozen=True)
class Settings:
    database_url: str
    sqlite_db_path: str
    log_level: str
    timezone: str
    booking_days_ahead: int
    slot_times_config_path: str
    store_timeout_seconds: float
    host: str
    port: int


def load_settings() -> Settings:
    return Settings(
        database_url=os.getenv("DATABASE_URL", "").strip(),
        sqlite_db_path=os.getenv("SQLITE_DB_PATH", "data/barbershop.db"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        timezone=os.getenv("TIMEZONE", "UTC").strip(),
        booking_days_ahead=int(os.getenv("BOOKING_DAYS_AHEAD", "1")),
        slot_times_config_path=os.getenv("SLOT_TIMES_CONFIG_PATH", "config/slot_times.yaml"),
        store_timeout_seconds=float(os.getenv("STORE_TIMEOUT_SECONDS", "5")),
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "3000")),
    )


def validate_settings(settings: Settings) -> list[str]:
    errors: list[str] = []
    if settings.log_level not in LOG_LEVELS:
        errors.append(f"LOG_LEVEL must be one of {', '.join(sorted(LOG_LEVELS))}")
    if not settings.timezone or tz.gettz(settings.timezone) is None:
        errors.append(f"TIMEZONE is not a known timezone: {settings.timezone!r}")
    if settings.booking_days_ahead < 0:
        errors.append("BOOKING_DAYS_AHEAD must be >= 0")
    if settings.store_timeout_seconds <= 0:
        errors.append("STORE_TIMEOUT_SECONDS must be > 0")
    if not settings.slot_times_config_path.strip():
        errors.append("SLOT_TIMES_CONFIG_PATH is required")
    if not settings.database_url and not settings.sqlite_db_path.strip():
        errors.append("SQLITE_DB_PATH is required when DATABASE_URL is not set")
    if settings.database_url and not settings.database_url.startswith(
        ("postgres://", "postgresql://")
    ):
        errors.append("DATABASE_URL must start with postgres:// or postgresql://")
    if not 0 < settings.port < 65536:
        errors.append("PORT must be between 1 and 65535")
    return errors


def ensure_runtime_dirs(settings: Settings) -> None:
    if not settings.database_url:
        Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
