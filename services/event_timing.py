# services/event_timing.py
"""
Event time rules used around the ETA engine.

- Location updates are only accepted inside the event's tracking window
  (start - before .. end + after).
- Arrival status relative to the event start: early, ontime (up to 5 minutes
  late), late.
"""
import math
from datetime import datetime, timedelta, timezone

ONTIME_GRACE_MINUTES = 5


def _aware(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def is_within_time_window(
    start: datetime,
    end: datetime,
    now: datetime,
    before_ms: int,
    after_ms: int,
) -> bool:
    window_start = _aware(start) - timedelta(milliseconds=before_ms)
    window_end = _aware(end) + timedelta(milliseconds=after_ms)
    return window_start <= _aware(now) <= window_end


def calculate_arrival_status(start: datetime, arrival: datetime) -> dict:
    """
    Returns:
        {"status": "early" | "ontime" | "late", "late_minutes": int}
    """
    diff_minutes = (_aware(arrival) - _aware(start)).total_seconds() / 60.0
    if diff_minutes < 0:
        return {"status": "early", "late_minutes": 0}
    if diff_minutes <= ONTIME_GRACE_MINUTES:
        return {"status": "ontime", "late_minutes": 0}
    return {"status": "late", "late_minutes": math.floor(diff_minutes + 0.5)}
