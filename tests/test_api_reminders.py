from datetime import datetime, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from api import notification_preferences, reminders
from conftest import FakeGenerator, FakePushService, FakeSMSService, InMemoryStore
from services.background_tasks import ScheduledNotificationRunner
from services.delivery_dispatcher import DeliveryDispatcher
from services.message_composer import MessageComposer
from services.reminder_orchestrator import ReminderOrchestrator


class ExplodingRunner:
    async def run_once(self):
        raise RuntimeError("queue unreachable")


@pytest.fixture
def app_store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def push_service() -> FakePushService:
    return FakePushService()


@pytest.fixture
def client(app_store, push_service) -> TestClient:
    app = FastAPI()
    app.include_router(reminders.router)
    app.include_router(notification_preferences.router)

    composer = MessageComposer(FakeGenerator(), timeout=1)
    dispatcher = DeliveryDispatcher(push_service, FakeSMSService(), app_store)
    app.state.store = app_store
    app.state.reminder_orchestrator = ReminderOrchestrator(app_store, composer, dispatcher)
    app.state.notification_runner = ScheduledNotificationRunner(app_store, composer, dispatcher, batch_size=10)
    return TestClient(app)


def test_send_reminder_delivers_push(client, app_store, push_service) -> None:
    app_store.add_user("u1")

    response = client.post("/api/reminders/send", json={"user_id": "u1"})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["method"] == "fcm"
    assert body["message_text"] == "Drink a glass now 💧"
    assert push_service.sent[0]["token"] == "token-u1"


def test_send_reminder_for_unknown_user(client) -> None:
    response = client.post("/api/reminders/send", json={"user_id": "ghost"})
    assert response.status_code == 200
    body = response.json()
    assert body["success"] is False
    assert body["error"].startswith("User not configured")


def test_send_reminder_rejects_blank_user(client) -> None:
    response = client.post("/api/reminders/send", json={"user_id": "  "})
    assert response.status_code == 400


def test_send_reminder_rejects_unknown_tone(client, app_store) -> None:
    app_store.add_user("u1")
    response = client.post("/api/reminders/send", json={"user_id": "u1", "tone_override": "grumpy"})
    assert response.status_code == 422


def test_streak_endpoint(client, app_store) -> None:
    app_store.add_user("u1")
    response = client.get("/api/reminders/streak/u1")
    assert response.status_code == 200
    assert response.json()["current_streak"] == 0


def test_streak_endpoint_unknown_user(client) -> None:
    assert client.get("/api/reminders/streak/ghost").status_code == 404


def test_daily_total_endpoint_for_given_day(client, app_store) -> None:
    app_store.add_user("u1", hydration_goal_ml=2000)
    app_store.log("u1", 500, datetime(2026, 10, 18, 9, 0, tzinfo=timezone.utc))

    response = client.get("/api/reminders/daily-total/u1", params={"day": "2026-10-18"})

    assert response.status_code == 200
    assert response.json() == {
        "user_id": "u1",
        "date": "2026-10-18",
        "total_ml": 500,
        "goal_ml": 2000,
        "progress_percent": 25,
    }


def test_process_scheduled_endpoint(client) -> None:
    response = client.post("/api/reminders/process-scheduled")
    assert response.status_code == 200
    assert response.json() == {
        "success": True,
        "summary": {"total": 0, "processed": 0, "failed": 0, "skipped": 0},
    }


def test_process_scheduled_endpoint_reports_errors(client) -> None:
    client.app.state.notification_runner = ExplodingRunner()
    response = client.post("/api/reminders/process-scheduled")
    assert response.status_code == 500
    assert "queue unreachable" in response.json()["detail"]


def test_preferences_round_trip(client, app_store) -> None:
    default = client.get("/api/notification-preferences/u9").json()
    assert default["is_default"] is True
    assert default["preferences"]["tone"] == "kind"

    saved = client.post(
        "/api/notification-preferences/save",
        json={"user_id": "u9", "tone": "funny", "frequency_tier": "frequent"},
    )
    assert saved.status_code == 200

    stored = client.get("/api/notification-preferences/u9").json()
    assert stored["is_default"] is False
    assert stored["preferences"]["frequency_tier"] == "frequent"

    assert client.delete("/api/notification-preferences/u9").json()["success"] is True
    assert "u9" not in app_store.preferences
