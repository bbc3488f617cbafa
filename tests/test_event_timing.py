from datetime import datetime, timedelta, timezone

import pytest

from services.event_timing import calculate_arrival_status, is_within_time_window

START = datetime(2024, 5, 1, 18, 0, tzinfo=timezone.utc)
END = datetime(2024, 5, 1, 21, 0, tzinfo=timezone.utc)
HALF_HOUR_MS = 30 * 60 * 1000


@pytest.mark.parametrize("now, inside", [
    (START - timedelta(minutes=31), False),
    (START - timedelta(minutes=30), True),
    (START + timedelta(hours=1), True),
    (END + timedelta(minutes=30), True),
    (END + timedelta(minutes=30, seconds=1), False),
])
def test_time_window(now, inside):
    assert is_within_time_window(START, END, now, HALF_HOUR_MS, HALF_HOUR_MS) is inside


def test_time_window_treats_naive_as_utc():
    naive_start = START.replace(tzinfo=None)
    naive_end = END.replace(tzinfo=None)
    assert is_within_time_window(naive_start, naive_end, START, HALF_HOUR_MS, HALF_HOUR_MS) is True


@pytest.mark.parametrize("arrival, status, late", [
    (START - timedelta(minutes=10), "early", 0),
    (START, "ontime", 0),
    (START + timedelta(minutes=5), "ontime", 0),
    (START + timedelta(minutes=12, seconds=40), "late", 13),
    (START + timedelta(minutes=6, seconds=30), "late", 7),
    (START + timedelta(minutes=8, seconds=30), "late", 9),
])
def test_arrival_status(arrival, status, late):
    assert calculate_arrival_status(START, arrival) == {"status": status, "late_minutes": late}
