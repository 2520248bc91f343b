import asyncio
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from models.notification_schemas import NotificationPreferences
from models.water_schemas import HydrationEvent, UserHydrationProfile
from services.errors import UpstreamError


class InMemoryStore:
    """Dict-backed stand-in for SupabaseService."""

    def __init__(self) -> None:
        self.profiles: Dict[str, UserHydrationProfile] = {}
        self.preferences: Dict[str, NotificationPreferences] = {}
        self.events: List[HydrationEvent] = []
        self.milestones: Dict[tuple, Dict[str, Any]] = {}
        # Raw queue rows, as the table returns them
        self.notifications: Dict[str, Dict[str, Any]] = {}
        self.analytics: List[Dict[str, Any]] = []
        self.sms_counts: Dict[tuple, int] = {}
        self.preference_updates: List[Dict[str, Any]] = []
        self.broken_users: set = set()
        self.analytics_broken = False

    def add_user(self, user_id: str, prefs: Optional[NotificationPreferences] = None, **profile: Any) -> None:
        self.profiles[user_id] = UserHydrationProfile(user_id=user_id, **profile)
        self.preferences[user_id] = prefs or NotificationPreferences(user_id=user_id, fcm_token="token-" + user_id)

    def log(self, user_id: str, amount_ml: int, occurred_at: datetime) -> None:
        self.events.append(HydrationEvent(user_id=user_id, amount_ml=amount_ml, occurred_at=occurred_at))

    async def get_user_profile(self, user_id: str) -> Optional[UserHydrationProfile]:
        return self.profiles.get(user_id)

    async def list_events(self, user_id: str, start: datetime, end: datetime) -> List[HydrationEvent]:
        return [
            event for event in self.events
            if event.user_id == user_id and start <= event.occurred_at < end
        ]

    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        if user_id in self.broken_users:
            raise RuntimeError(f"store unavailable for {user_id}")
        return self.preferences.get(user_id)

    async def save_preferences(self, prefs: NotificationPreferences) -> Dict[str, Any]:
        self.preferences[prefs.user_id] = prefs
        return prefs.model_dump(mode="json")

    async def update_preferences(self, user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        self.preference_updates.append({"user_id": user_id, **update_data})
        current = self.preferences[user_id]
        self.preferences[user_id] = current.model_copy(update=update_data)
        return self.preferences[user_id].model_dump(mode="json")

    async def delete_preferences(self, user_id: str) -> bool:
        self.preferences.pop(user_id, None)
        return True

    @staticmethod
    def _milestone_key(key: Dict[str, Any]) -> tuple:
        return (key["user_id"], key["date"], key["split_time"], key["target_ml"])

    async def milestone_exists(self, key: Dict[str, Any]) -> bool:
        return self._milestone_key(key) in self.milestones

    async def create_milestone_if_absent(self, key: Dict[str, Any]) -> bool:
        composite = self._milestone_key(key)
        if composite in self.milestones:
            return False
        self.milestones[composite] = dict(key)
        return True

    async def get_due_notifications(self, now: datetime, limit: int = 50) -> List[Dict[str, Any]]:
        due = [
            dict(row) for row in self.notifications.values()
            if row["scheduled_for"] <= now and not row.get("processed") and not row.get("failed")
        ]
        due.sort(key=lambda row: row["scheduled_for"])
        return due[:limit]

    async def mark_notification_processed(self, notification_id: str, processed_at: datetime) -> bool:
        row = self.notifications[notification_id]
        if row.get("processed") or row.get("failed"):
            return False
        row.update(processed=True, processed_at=processed_at)
        return True

    async def mark_notification_failed(self, notification_id: str, failed_at: datetime, error: str) -> bool:
        row = self.notifications[notification_id]
        if row.get("processed") or row.get("failed"):
            return False
        row.update(failed=True, failed_at=failed_at, error=error)
        return True

    async def get_sms_count(self, user_id: str, day) -> int:
        return self.sms_counts.get((user_id, day), 0)

    async def increment_sms_count(self, user_id: str, day) -> int:
        self.sms_counts[(user_id, day)] = self.sms_counts.get((user_id, day), 0) + 1
        return self.sms_counts[(user_id, day)]

    async def record_analytics_event(self, user_id: str, event_type: str, payload: Dict[str, Any]) -> None:
        if self.analytics_broken:
            raise RuntimeError("analytics sink down")
        self.analytics.append({"user_id": user_id, "event_type": event_type, "data": payload})


class FakeGenerator:
    def __init__(self, text: str = "Drink a glass now 💧", error: Optional[Exception] = None, delay: float = 0) -> None:
        self.text = text
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def generate_text(self, prompt: str, max_output_length: int, temperature: float = 0.8) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.text


class FakePushService:
    def __init__(self, configured: bool = True, fail: bool = False) -> None:
        self.configured = configured
        self.fail = fail
        self.sent: List[Dict[str, Any]] = []

    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        if self.fail:
            raise UpstreamError("FCM send failed: unregistered token")
        self.sent.append({"token": token, "title": title, "body": body, "data": data or {}})
        return f"projects/test/messages/{len(self.sent)}"


class FakeSMSService:
    def __init__(self, configured: bool = True, fail: bool = False) -> None:
        self.configured = configured
        self.fail = fail
        self.sent: List[Dict[str, str]] = []

    async def send(self, to_number: str, body: str, from_number: Optional[str] = None) -> str:
        if self.fail:
            raise UpstreamError("Twilio error: queue overflow (Code: 30001)")
        self.sent.append({"to": to_number, "body": body})
        return f"SM{len(self.sent):032d}"


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def push() -> FakePushService:
    return FakePushService()


@pytest.fixture
def sms() -> FakeSMSService:
    return FakeSMSService()


@pytest.fixture
def now() -> datetime:
    return datetime(2026, 10, 18, 10, 15, tzinfo=timezone.utc)
