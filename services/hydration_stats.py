# services/hydration_stats.py

from typing import Dict, Iterable, Optional
from datetime import date, timedelta
from models.water_schemas import HydrationEvent, StreakState
from utils.timezone_utils import to_user_local

def daily_total(events: Iterable[HydrationEvent], day: date, timezone_offset: int = 0) -> int:
    """Sum of amount_ml for events falling on `day` in the user's timezone"""
    return sum(
        event.amount_ml
        for event in events
        if to_user_local(event.occurred_at, timezone_offset).date() == day
    )

def daily_totals_by_date(events: Iterable[HydrationEvent], timezone_offset: int = 0) -> Dict[date, int]:
    """Group events into per-day totals"""
    totals: Dict[date, int] = {}
    for event in events:
        day = to_user_local(event.occurred_at, timezone_offset).date()
        totals[day] = totals.get(day, 0) + event.amount_ml
    return totals

def exact_progress_percent(current_ml: int, goal_ml: int) -> float:
    """Unrounded progress, used wherever a band boundary is decided"""
    if goal_ml <= 0:
        return 0.0
    return current_ml / goal_ml * 100

def progress_percent(current_ml: int, goal_ml: int) -> int:
    return round(exact_progress_percent(current_ml, goal_ml))

def compute_streak(
    daily_totals: Dict[date, int],
    goal_ml: int,
    today: date,
    previous_longest: int = 0
) -> StreakState:
    """
    Compute the consecutive-day streak ending today, or ending yesterday when
    today has not reached the goal yet. Days after `today` are ignored.
    """
    qualifying = {
        day for day, total in daily_totals.items()
        if day <= today and total >= goal_ml
    }
    if not qualifying:
        return StreakState(current_streak=0, longest_streak=previous_longest)

    # Longest run anywhere in the supplied history
    longest = 0
    for day in qualifying:
        if day - timedelta(days=1) in qualifying:
            continue
        run = 1
        while day + timedelta(days=run) in qualifying:
            run += 1
        longest = max(longest, run)

    anchor: Optional[date] = None
    if today in qualifying:
        anchor = today
    elif today - timedelta(days=1) in qualifying:
        anchor = today - timedelta(days=1)

    current = 0
    if anchor is not None:
        while anchor - timedelta(days=current) in qualifying:
            current += 1

    return StreakState(
        current_streak=current,
        longest_streak=max(longest, current, previous_longest),
        last_qualifying_date=max(qualifying).isoformat()
    )
