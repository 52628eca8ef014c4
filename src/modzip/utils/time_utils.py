"""UTC timestamp helpers for run summaries."""

from __future__ import annotations

from datetime import datetime, timezone


def now_utc() -> datetime:
    """Return current timezone-aware UTC timestamp."""

    return datetime.now(timezone.utc)


def run_stamp(ts: datetime | None = None) -> str:
    """Return a compact UTC stamp suitable for run identifiers."""

    return (ts or now_utc()).strftime("%Y%m%dT%H%M%SZ")
