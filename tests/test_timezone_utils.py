import asyncio
from datetime import date, datetime, time, timedelta, timezone

import pytest

from utils.timezone_utils import (
    ensure_utc,
    get_timezone_offset,
    get_user_day_bounds,
    get_user_now,
    get_user_today,
    parse_time_of_day,
    parse_timezone_offset,
    to_user_local,
)


@pytest.mark.parametrize(
    "raw, expected",
    [("300", 300), ("-480", -480), ("+05:30", 330), ("-08:00", -480), ("", 0), (None, 0), ("garbage", 0)],
)
def test_parse_timezone_offset(raw, expected) -> None:
    assert parse_timezone_offset(raw) == expected


def test_ensure_utc_handles_naive_and_aware() -> None:
    naive = datetime(2026, 10, 18, 12, 0)
    assert ensure_utc(naive) == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)

    sydney = timezone(timedelta(hours=11))
    aware = datetime(2026, 10, 18, 23, 0, tzinfo=sydney)
    assert ensure_utc(aware) == datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


def test_user_clock_crosses_midnight() -> None:
    now = datetime(2026, 10, 18, 20, 0, tzinfo=timezone.utc)
    assert get_user_today(0, now) == date(2026, 10, 18)
    assert get_user_today(300, now) == date(2026, 10, 19)
    assert get_user_now(-60, now) == datetime(2026, 10, 18, 19, 0)
    assert to_user_local(now, 30).tzinfo is None


def test_day_bounds_are_utc_half_open() -> None:
    start, end = get_user_day_bounds(date(2026, 10, 18), 600)
    assert start == datetime(2026, 10, 17, 14, 0, tzinfo=timezone.utc)
    assert end - start == timedelta(days=1)


def test_parse_time_of_day() -> None:
    assert parse_time_of_day("07:45") == time(7, 45)


def test_header_dependency_prefers_offset_then_string() -> None:
    assert asyncio.run(get_timezone_offset("120", "+05:00")) == 120
    assert asyncio.run(get_timezone_offset(None, "+05:00")) == 300
    assert asyncio.run(get_timezone_offset(None, None)) is None
