# PATH: core/time.py
"""
Time utilities for ARBSCAN.

Wall-clock helpers for record timestamps and a monotonic clock for
cache freshness.
"""

import time
from datetime import datetime, timezone
from typing import Optional


def now_utc() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def now_iso() -> str:
    """Get current UTC datetime as ISO string."""
    return now_utc().isoformat()


def now_ms() -> int:
    """Get current Unix timestamp in milliseconds."""
    return int(time.time() * 1000)


def monotonic() -> float:
    """Monotonic seconds, immune to wall-clock jumps."""
    return time.monotonic()


def is_fresh(
    fetched_at: float,
    ttl_seconds: float,
    current_time: Optional[float] = None,
) -> bool:
    """
    Check whether a value fetched at `fetched_at` is still within its TTL.

    Strict comparison: an entry exactly `ttl_seconds` old is stale.

    Args:
        fetched_at: Monotonic timestamp of the fetch
        ttl_seconds: Time to live
        current_time: Current monotonic time (defaults to now)
    """
    current = monotonic() if current_time is None else current_time
    return current - fetched_at < ttl_seconds


def parse_iso(value: str) -> datetime:
    """Parse an ISO timestamp, assuming UTC when no offset is present."""
    dt = datetime.fromisoformat(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt
