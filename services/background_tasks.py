# services/background_tasks.py

import asyncio
import os
from typing import Any, Dict, Optional, Tuple
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pydantic import ValidationError
from models.notification_schemas import DeliveryMethod, DeliveryOutcome, ScheduledNotification
from services.errors import DeliveryError, NotFoundError
from services.message_composer import MessageStats, get_notification_title
from services.hydration_stats import progress_percent
from services.fcm_service import get_vibration_pattern
from utils.timezone_utils import get_user_today, utc_now

DEFAULT_BATCH_SIZE = 50
DEFAULT_TIMEOUT_SECONDS = 540
DEFAULT_INTERVAL_MINUTES = 5
MAX_CONCURRENCY = 10

class ScheduledNotificationRunner:
    """
    Drains due records from the scheduled_notifications queue.

    Each record ends in exactly one terminal state: processed, or failed with
    the error message. Rows that do not validate are failed on their own.
    Failed records are not retried here; requeueing with a new scheduled_for
    is left to whoever planned them. A delivered record whose processed flag
    cannot be written is marked failed instead, so it is not delivered twice.
    """

    def __init__(
        self,
        store,
        composer,
        dispatcher,
        batch_size: Optional[int] = None,
        timeout_seconds: Optional[float] = None,
        max_concurrency: int = MAX_CONCURRENCY
    ):
        self.store = store
        self.composer = composer
        self.dispatcher = dispatcher
        if batch_size is None:
            batch_size = int(os.getenv("REMINDER_BATCH_SIZE", DEFAULT_BATCH_SIZE))
        if timeout_seconds is None:
            timeout_seconds = float(os.getenv("REMINDER_BATCH_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS))
        self.batch_size = batch_size
        self.timeout_seconds = timeout_seconds
        self.max_concurrency = max_concurrency

    async def deliver(self, notification: ScheduledNotification, now: datetime) -> Tuple[DeliveryOutcome, str]:
        """Compose and send one queued notification; raises when nothing was delivered"""
        prefs = await self.store.get_preferences(notification.user_id)
        if prefs is None:
            raise NotFoundError(f"Notification preferences for {notification.user_id} not configured")
        profile = await self.store.get_user_profile(notification.user_id)

        stats = MessageStats(
            current_ml=notification.current_ml,
            goal_ml=notification.goal_ml,
            progress_percent=progress_percent(notification.current_ml, notification.goal_ml),
            name=profile.name if profile else None
        )
        text = await self.composer.compose(notification.category, notification.tone, stats)

        data = {
            'type': notification.category.value,
            'tone': notification.tone.value,
            'current_ml': str(notification.current_ml),
            'goal_ml': str(notification.goal_ml),
            'notification_id': notification.id,
            'vibration_pattern': get_vibration_pattern(prefs.vibration_intensity.value) if prefs.vibration_enabled else '',
        }
        offset = profile.timezone_offset_minutes if profile else 0
        outcome = await self.dispatcher.send(
            notification.user_id,
            text,
            DeliveryMethod.AUTO,
            prefs,
            profile,
            title=get_notification_title(notification.category),
            data=data,
            day=get_user_today(offset, now)
        )
        if not outcome.success:
            raise DeliveryError(outcome.error or "No delivery channel available")

        return outcome, text

    async def _record_sent(self, notification: ScheduledNotification, outcome: DeliveryOutcome, text: str):
        try:
            await self.store.record_analytics_event(notification.user_id, 'notification_sent', {
                'notification_type': notification.category.value,
                'tone': notification.tone.value,
                'channel': outcome.channel_attempted.value,
                'message_length': len(text),
                'source': 'scheduled_notifications',
            })
        except Exception as e:
            print(f"⚠️ Error logging analytics event: {e}")

    async def _mark_failed(self, notification_id: Optional[str], error: str) -> None:
        if not notification_id:
            print(f"❌ Scheduled notification row without an id cannot be marked failed: {error}")
            return
        try:
            await self.store.mark_notification_failed(notification_id, utc_now(), error)
        except Exception as mark_error:
            print(f"❌ Could not mark notification {notification_id} as failed: {mark_error}")

    async def _process_one(self, row: Dict[str, Any], now: datetime, deadline: float, semaphore: asyncio.Semaphore) -> str:
        async with semaphore:
            if asyncio.get_running_loop().time() > deadline:
                # Out of time; leave the record for the next run
                return 'skipped'

            notification_id = row.get('id')
            try:
                notification = ScheduledNotification.model_validate(row)
            except ValidationError as e:
                print(f"❌ Invalid scheduled notification {notification_id}: {e}")
                await self._mark_failed(notification_id, f"Invalid record: {e}")
                return 'failed'

            try:
                outcome, text = await self.deliver(notification, now)
            except Exception as e:
                print(f"❌ Failed to process notification {notification.id}: {e}")
                await self._mark_failed(notification.id, str(e) or type(e).__name__)
                return 'failed'

            try:
                claimed = await self.store.mark_notification_processed(notification.id, utc_now())
            except Exception as e:
                print(f"❌ Could not mark notification {notification.id} as processed: {e}")
                await self._mark_failed(notification.id, f"Delivered but not marked processed: {e}")
                return 'failed'

            if not claimed:
                print(f"⚠️ Notification {notification.id} was already finalised by another run")
                return 'skipped'

            await self._record_sent(notification, outcome, text)
            print(f"✅ Processed notification {notification.id} for user {notification.user_id} via {outcome.channel_attempted.value}")
            return 'processed'

    async def run_once(self, now: Optional[datetime] = None) -> Dict[str, Any]:
        """One batch: fetch due records and process them with per-record isolation"""
        now = now or utc_now()
        summary = {'total': 0, 'processed': 0, 'failed': 0, 'skipped': 0}

        try:
            due = await self.store.get_due_notifications(now, self.batch_size)
        except Exception as e:
            print(f"❌ Error fetching scheduled notifications: {e}")
            raise

        if not due:
            print("📭 No scheduled notifications to process")
            return summary

        summary['total'] = len(due)
        print(f"🔄 Processing {len(due)} scheduled notifications")

        deadline = asyncio.get_running_loop().time() + self.timeout_seconds
        semaphore = asyncio.Semaphore(self.max_concurrency)
        results = await asyncio.gather(
            *(self._process_one(row, now, deadline, semaphore) for row in due),
            return_exceptions=True
        )

        for result in results:
            if isinstance(result, Exception):
                print(f"❌ Unexpected error in notification batch: {result}")
                summary['failed'] += 1
            else:
                summary[result] += 1

        print(f"✅ Finished scheduled notifications: {summary['processed']} processed, "
              f"{summary['failed']} failed, {summary['skipped']} skipped")
        return summary

def setup_notification_scheduler(runner: ScheduledNotificationRunner, interval_minutes: Optional[int] = None) -> AsyncIOScheduler:
    """Run the batch runner on a fixed interval, never two runs at once"""
    interval_minutes = interval_minutes or int(os.getenv("REMINDER_BATCH_INTERVAL_MINUTES", DEFAULT_INTERVAL_MINUTES))

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        runner.run_once,
        'interval',
        minutes=interval_minutes,
        id='process_scheduled_notifications',
        max_instances=1,
        coalesce=True
    )
    scheduler.start()
    print(f"✅ Notification scheduler started (every {interval_minutes} minutes, batch of {runner.batch_size})")
    return scheduler
