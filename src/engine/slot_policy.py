"""Booking-day and daily slot-set policy.

The calendar offers one fixed set of ``HH:MM`` labels per day, and inbound
messages always target a single booking day: ``days_ahead`` days after "today"
in the configured timezone (tomorrow by default).
"""

from __future__ import annotations

import re
from datetime import UTC, date, datetime, timedelta
from pathlib import Path

import yaml  # type: ignore[import-untyped]
from dateutil import tz

DEFAULT_SLOT_TIMES = ["10:00", "11:00", "14:00", "15:00"]

TIME_LABEL_PATTERN = re.compile(r"\d{2}:\d{2}")


def is_time_label(text: str) -> bool:
    """Return True for a bare ``HH:MM`` token such as ``"10:00"``."""
    return bool(TIME_LABEL_PATTERN.fullmatch(text))


def _is_valid_clock(label: str) -> bool:
    if not is_time_label(label):
        return False
    hours, minutes = (int(part) for part in label.split(":"))
    return 0 <= hours < 24 and 0 <= minutes < 60


def normalize_slot_times(labels: list[object]) -> list[str]:
    """Keep valid ``HH:MM`` labels, drop duplicates, sort ascending."""
    cleaned = {str(label).strip() for label in labels}
    return sorted(label for label in cleaned if _is_valid_clock(label))


def load_slot_times(config_path: str) -> list[str]:
    path = Path(config_path)
    if not path.exists():
        return list(DEFAULT_SLOT_TIMES)
    payload = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    raw = payload.get("times", []) if isinstance(payload, dict) else []
    return normalize_slot_times(raw if isinstance(raw, list) else [])


def booking_date(now: datetime | None = None, tz_name: str = "UTC", days_ahead: int = 1) -> str:
    """Return the ISO date that inbound requests book against.

    ``now`` defaults to the current instant; naive values are read as UTC.
    """
    if now is None:
        now = datetime.now(UTC)
    elif now.tzinfo is None:
        now = now.replace(tzinfo=UTC)
    zone = tz.gettz(tz_name)
    if zone is None:
        raise ValueError(f"Unknown timezone: {tz_name}")
    local_day = now.astimezone(zone).date()
    return (local_day + timedelta(days=days_ahead)).isoformat()


def format_day(iso_date: str) -> str:
    """Render an ISO date the way replies show it, e.g. ``"02/01"``."""
    return date.fromisoformat(iso_date).strftime("%d/%m")
