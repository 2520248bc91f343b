# api/reminders.py
# Reminder endpoints and the manual batch trigger

from fastapi import APIRouter, HTTPException, Depends, Request
from typing import Optional
from datetime import date
from models.notification_schemas import ReminderRequest, ReminderResult
from models.water_schemas import DailyTotalResponse, StreakState
from services.errors import InputValidationError, NotFoundError
from utils.timezone_utils import get_timezone_offset

router = APIRouter(prefix="/api/reminders", tags=["reminders"])

def get_orchestrator(request: Request):
    return request.app.state.reminder_orchestrator

def get_batch_runner(request: Request):
    return request.app.state.notification_runner

@router.post("/send", response_model=ReminderResult)
async def send_reminder(reminder: ReminderRequest, orchestrator=Depends(get_orchestrator)):
    """Send a reminder now if the user's settings allow it"""
    try:
        print(f"📬 Reminder requested for user {reminder.user_id} ({reminder.category.value})")
        return await orchestrator.send_reminder(reminder)
    except InputValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        print(f"❌ Error sending reminder: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/streak/{user_id}", response_model=StreakState)
async def get_streak(
    user_id: str,
    tz_offset: Optional[int] = Depends(get_timezone_offset),
    orchestrator=Depends(get_orchestrator)
):
    """Current and longest streak recomputed from the hydration log"""
    try:
        return await orchestrator.get_streak(user_id, timezone_offset=tz_offset)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        print(f"❌ Error computing streak: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/daily-total/{user_id}", response_model=DailyTotalResponse)
async def get_daily_total(
    user_id: str,
    day: Optional[date] = None,
    tz_offset: Optional[int] = Depends(get_timezone_offset),
    orchestrator=Depends(get_orchestrator)
):
    try:
        return await orchestrator.get_daily_total(user_id, day=day, timezone_offset=tz_offset)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        print(f"❌ Error computing daily total: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.post("/process-scheduled")
async def process_scheduled_notifications(runner=Depends(get_batch_runner)):
    """Run one batch of the scheduled notification queue immediately"""
    try:
        summary = await runner.run_once()
        return {"success": True, "summary": summary}
    except Exception as e:
        print(f"❌ Error processing scheduled notifications: {e}")
        raise HTTPException(status_code=500, detail=str(e))
