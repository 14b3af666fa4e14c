from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc).isoformat(timespec="seconds")


def now_iso() -> str:
    return to_iso(utc_now())


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO timestamp; naive values are taken as UTC. Accepts a trailing 'Z'."""
    if not value:
        return None
    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    dt = datetime.fromisoformat(raw)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def hours_until(value: Optional[str], now: Optional[datetime] = None) -> Optional[float]:
    target = parse_iso(value)
    if target is None:
        return None
    now = now or utc_now()
    return (target - now).total_seconds() / 3600.0


def iso_in(hours: float, now: Optional[datetime] = None) -> str:
    return to_iso((now or utc_now()) + timedelta(hours=hours))
