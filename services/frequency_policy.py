# services/frequency_policy.py

from typing import Dict, List, Optional
from datetime import datetime
from models.notification_schemas import FrequencyTier, NotificationCategory
from utils.timezone_utils import ensure_utc

# Ordered reminder intervals in minutes, most frequent first
TIER_INTERVALS: Dict[FrequencyTier, List[int]] = {
    FrequencyTier.MINIMAL: [240, 360, 480, 720],
    FrequencyTier.MODERATE: [120, 180, 240, 360],
    FrequencyTier.FREQUENT: [60, 90, 120, 180],
}

def select_interval(tier: FrequencyTier, progress_percent: float) -> int:
    """
    Pick the tier interval for the current progress.
    Below 25% nudge most often, 25-50% use the lower median, above 50% back off.
    """
    intervals = sorted(TIER_INTERVALS[tier])
    if progress_percent < 25:
        return intervals[0]
    if progress_percent <= 50:
        return intervals[(len(intervals) - 1) // 2]
    return intervals[-1]

def resolve_interval(
    category: NotificationCategory,
    custom_intervals: Optional[Dict[NotificationCategory, int]],
    tier: FrequencyTier,
    progress_percent: float
) -> int:
    custom = (custom_intervals or {}).get(category)
    if custom is not None and custom > 0:
        return custom
    return select_interval(tier, progress_percent)

def is_due(
    last_notified_at: Optional[datetime],
    category: NotificationCategory,
    custom_intervals: Optional[Dict[NotificationCategory, int]],
    tier: FrequencyTier,
    progress_percent: float,
    now: datetime
) -> bool:
    """Pure check whether a reminder for `category` may go out at `now`"""
    if last_notified_at is None:
        # Never notified
        return True

    interval = resolve_interval(category, custom_intervals, tier, progress_percent)
    elapsed_minutes = (ensure_utc(now) - ensure_utc(last_notified_at)).total_seconds() / 60
    return elapsed_minutes >= interval
