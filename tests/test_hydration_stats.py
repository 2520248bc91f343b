from datetime import date, datetime, timedelta, timezone

from models.water_schemas import HydrationEvent
from services.hydration_stats import (
    compute_streak,
    daily_total,
    daily_totals_by_date,
    exact_progress_percent,
    progress_percent,
)

TODAY = date(2026, 10, 18)


def _event(amount: int, when: datetime) -> HydrationEvent:
    return HydrationEvent(user_id="u1", amount_ml=amount, occurred_at=when)


def test_daily_total_sums_only_events_on_that_day() -> None:
    events = [
        _event(250, datetime(2026, 10, 18, 0, 0, tzinfo=timezone.utc)),
        _event(500, datetime(2026, 10, 18, 23, 59, tzinfo=timezone.utc)),
        _event(300, datetime(2026, 10, 19, 0, 0, tzinfo=timezone.utc)),
        _event(200, datetime(2026, 10, 17, 23, 59, tzinfo=timezone.utc)),
    ]
    assert daily_total(events, TODAY) == 750


def test_daily_total_is_zero_without_events() -> None:
    assert daily_total([], TODAY) == 0


def test_daily_total_uses_user_timezone_offset() -> None:
    # 23:30 UTC on the 17th is 09:30 on the 18th at UTC+10
    events = [_event(400, datetime(2026, 10, 17, 23, 30, tzinfo=timezone.utc))]
    assert daily_total(events, TODAY, timezone_offset=600) == 400
    assert daily_total(events, TODAY) == 0


def test_daily_totals_by_date_groups_events() -> None:
    events = [
        _event(250, datetime(2026, 10, 18, 8, 0, tzinfo=timezone.utc)),
        _event(250, datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc)),
        _event(1000, datetime(2026, 10, 17, 9, 0, tzinfo=timezone.utc)),
    ]
    assert daily_totals_by_date(events) == {TODAY: 500, date(2026, 10, 17): 1000}


def test_progress_percent_rounds_and_handles_zero_goal() -> None:
    assert progress_percent(1500, 2000) == 75
    assert progress_percent(400, 2000) == 20
    assert progress_percent(100, 0) == 0


def test_exact_progress_keeps_band_boundaries() -> None:
    assert exact_progress_percent(1009, 2000) > 50
    assert exact_progress_percent(499, 2000) < 25
    assert progress_percent(1009, 2000) == 50
    assert exact_progress_percent(100, 0) == 0


def test_empty_history_has_no_streak() -> None:
    state = compute_streak({}, 2000, TODAY)
    assert state.current_streak == 0
    assert state.longest_streak == 0


def test_single_qualifying_day_today() -> None:
    state = compute_streak({TODAY: 2000}, 2000, TODAY)
    assert state.current_streak == 1
    assert state.longest_streak == 1
    assert state.last_qualifying_date == "2026-10-18"


def test_streak_counts_through_yesterday_while_today_in_progress() -> None:
    totals = {TODAY - timedelta(days=d): 2500 for d in range(1, 4)}
    totals[TODAY] = 300
    state = compute_streak(totals, 2000, TODAY)
    assert state.current_streak == 3
    assert state.longest_streak == 3


def test_streak_resets_when_today_and_yesterday_miss_goal() -> None:
    totals = {TODAY - timedelta(days=d): 2500 for d in range(2, 10)}
    totals[TODAY - timedelta(days=1)] = 1999
    totals[TODAY] = 100
    state = compute_streak(totals, 2000, TODAY)
    assert state.current_streak == 0
    assert state.longest_streak == 8


def test_longest_streak_comes_from_whole_history() -> None:
    totals = {}
    for d in range(20, 25):
        totals[TODAY - timedelta(days=d)] = 2000
    for d in range(0, 2):
        totals[TODAY - timedelta(days=d)] = 2000
    state = compute_streak(totals, 2000, TODAY)
    assert state.current_streak == 2
    assert state.longest_streak == 5


def test_future_days_are_ignored() -> None:
    totals = {TODAY + timedelta(days=1): 5000, TODAY: 2000}
    state = compute_streak(totals, 2000, TODAY)
    assert state.current_streak == 1
    assert state.last_qualifying_date == TODAY.isoformat()


def test_longest_never_below_current_for_any_prefix() -> None:
    pattern = [1, 1, 0, 1, 1, 1, 0, 0, 1, 1, 1, 1]
    totals = {}
    start = TODAY - timedelta(days=len(pattern) - 1)
    for offset, hit in enumerate(pattern):
        day = start + timedelta(days=offset)
        totals[day] = 2000 if hit else 500
        state = compute_streak(totals, 2000, day)
        assert state.longest_streak >= state.current_streak


def test_previous_longest_is_kept() -> None:
    state = compute_streak({TODAY: 2000}, 2000, TODAY, previous_longest=12)
    assert state.longest_streak == 12
