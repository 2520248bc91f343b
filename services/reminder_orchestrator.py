# services/reminder_orchestrator.py

from typing import Any, Dict, Optional, Tuple
from datetime import datetime, date, timedelta
from models.notification_schemas import (
    Channel, DeliveryMethod, NotificationCategory, NotificationPreferences,
    ReminderRequest, ReminderResult
)
from models.water_schemas import DailyTotalResponse, StreakState, UserHydrationProfile
from services.errors import InputValidationError, NotFoundError
from services.frequency_policy import is_due
from services.hydration_stats import (
    compute_streak, daily_totals_by_date, exact_progress_percent, progress_percent
)
from services.message_composer import (
    MessageStats, PUSH_MAX_LENGTH, SMS_MAX_LENGTH, get_notification_title
)
from services.milestone_tracker import MilestoneTracker
from services.fcm_service import get_vibration_pattern
from utils.timezone_utils import get_user_day_bounds, get_user_now, utc_now

STREAK_LOOKBACK_DAYS = 90

def _skipped(reason: str) -> ReminderResult:
    print(f"⏭️ Reminder skipped: {reason}")
    return ReminderResult(success=False, method=Channel.NONE, skipped_reason=reason)

class ReminderOrchestrator:
    """
    Per-request reminder flow:
    preferences -> enabled checks -> frequency -> milestone -> compose ->
    dispatch -> analytics -> last_notification_at.

    Frequency is checked before the milestone on purpose: the milestone check
    writes the day's record, and a call skipped as not due must not consume it.

    A skipped reminder writes nothing (no analytics event). A failed dispatch
    leaves last_notification_at untouched, so the next evaluation retries
    without waiting out another interval.
    """

    def __init__(self, store, composer, dispatcher, milestone_tracker: Optional[MilestoneTracker] = None):
        self.store = store
        self.composer = composer
        self.dispatcher = dispatcher
        self.milestone_tracker = milestone_tracker or MilestoneTracker(store)

    async def _load_user(self, user_id: str) -> Tuple[NotificationPreferences, UserHydrationProfile]:
        prefs = await self.store.get_preferences(user_id)
        if prefs is None:
            raise NotFoundError(f"Notification preferences for {user_id} not configured")

        profile = await self.store.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile for {user_id} not found")

        return prefs, profile

    async def _load_totals(
        self,
        user_id: str,
        timezone_offset: int,
        today: date,
        days: int = STREAK_LOOKBACK_DAYS
    ) -> Dict[date, int]:
        start, _ = get_user_day_bounds(today - timedelta(days=days - 1), timezone_offset)
        _, end = get_user_day_bounds(today, timezone_offset)
        events = await self.store.list_events(user_id, start, end)
        return daily_totals_by_date(events, timezone_offset)

    async def get_streak(self, user_id: str, now: Optional[datetime] = None, timezone_offset: Optional[int] = None) -> StreakState:
        profile = await self.store.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile for {user_id} not found")

        offset = profile.timezone_offset_minutes if timezone_offset is None else timezone_offset
        today = get_user_now(offset, now).date()
        totals = await self._load_totals(user_id, offset, today)
        return compute_streak(totals, profile.hydration_goal_ml, today)

    async def get_daily_total(
        self,
        user_id: str,
        day: Optional[date] = None,
        now: Optional[datetime] = None,
        timezone_offset: Optional[int] = None
    ) -> DailyTotalResponse:
        profile = await self.store.get_user_profile(user_id)
        if profile is None:
            raise NotFoundError(f"User profile for {user_id} not found")

        offset = profile.timezone_offset_minutes if timezone_offset is None else timezone_offset
        day = day or get_user_now(offset, now).date()
        totals = await self._load_totals(user_id, offset, day, days=1)
        total = totals.get(day, 0)
        return DailyTotalResponse(
            user_id=user_id,
            date=day,
            total_ml=total,
            goal_ml=profile.hydration_goal_ml,
            progress_percent=progress_percent(total, profile.hydration_goal_ml)
        )

    async def _record_analytics(self, user_id: str, event_type: str, payload: Dict[str, Any]):
        try:
            await self.store.record_analytics_event(user_id, event_type, payload)
        except Exception as e:
            print(f"⚠️ Error logging analytics event: {e}")

    async def send_reminder(self, request: ReminderRequest, now: Optional[datetime] = None) -> ReminderResult:
        if not request.user_id.strip():
            raise InputValidationError("user_id is required")

        now = now or utc_now()
        user_id = request.user_id
        category = request.category

        try:
            prefs, profile = await self._load_user(user_id)
        except NotFoundError as e:
            print(f"⚠️ {e}")
            return ReminderResult(success=False, method=Channel.NONE, error=f"User not configured: {e}")

        if not prefs.enabled or not (prefs.push_enabled or prefs.sms_enabled):
            return _skipped("notifications disabled")
        if category not in prefs.enabled_categories:
            return _skipped(f"category {category.value} disabled")

        offset = profile.timezone_offset_minutes
        local_now = get_user_now(offset, now)
        today = local_now.date()
        totals = await self._load_totals(user_id, offset, today)
        current_ml = totals.get(today, 0)
        goal_ml = profile.hydration_goal_ml
        percent = progress_percent(current_ml, goal_ml)
        exact_percent = exact_progress_percent(current_ml, goal_ml)

        # A call that is not due must not consume the day's milestone record
        if not request.test_mode and not is_due(
            prefs.last_notification_at,
            category,
            prefs.custom_intervals,
            prefs.frequency_tier,
            exact_percent,
            now
        ):
            return _skipped("not due yet")

        milestone_label = None
        if category == NotificationCategory.MILESTONE and not request.test_mode:
            split = await self.milestone_tracker.check(user_id, prefs.day_splits, current_ml, local_now)
            if split is None:
                return _skipped("no new milestone")
            milestone_label = split.label or f"{split.target_ml}ml by {split.time_of_day}"

        streak = compute_streak(totals, goal_ml, today)
        tone = request.tone_override or prefs.tone
        requested_method = request.method_override or DeliveryMethod.AUTO

        resolved = self.dispatcher.resolve_method(requested_method, prefs, profile)
        max_length = SMS_MAX_LENGTH if resolved == DeliveryMethod.SMS else PUSH_MAX_LENGTH

        stats = MessageStats(
            current_ml=current_ml,
            goal_ml=goal_ml,
            progress_percent=percent,
            streak=streak.current_streak,
            name=profile.name,
            milestone_label=milestone_label
        )
        text = await self.composer.compose(category, tone, stats, max_length=max_length)

        data = {
            'type': category.value,
            'tone': tone.value,
            'current_ml': str(current_ml),
            'goal_ml': str(goal_ml),
            'vibration_pattern': get_vibration_pattern(prefs.vibration_intensity.value) if prefs.vibration_enabled else '',
        }
        outcome = await self.dispatcher.send(
            user_id,
            text,
            requested_method,
            prefs,
            profile,
            title=get_notification_title(category),
            data=data,
            day=today
        )

        await self._record_analytics(
            user_id,
            'notification_sent' if outcome.success else 'notification_failed',
            {
                'notification_type': category.value,
                'tone': tone.value,
                'channel': outcome.channel_attempted.value,
                'message_length': len(text),
                'error': outcome.error,
                'test_mode': request.test_mode,
                'source': 'reminder_orchestrator',
            }
        )

        if outcome.success and not request.test_mode:
            try:
                await self.store.update_preferences(user_id, {'last_notification_at': now})
            except Exception as e:
                print(f"❌ Error updating last notification time for {user_id}: {e}")

        if outcome.success:
            print(f"✅ Reminder sent to {user_id} via {outcome.channel_attempted.value}")
        else:
            print(f"❌ Reminder to {user_id} not delivered: {outcome.error}")

        return ReminderResult(
            success=outcome.success,
            method=outcome.channel_attempted,
            message_text=text,
            error=outcome.error
        )
