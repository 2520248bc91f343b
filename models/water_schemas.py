# models/water_schemas.py
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime, date

class HydrationEvent(BaseModel):
    """A single logged drink. Never mutated once written."""
    user_id: str
    amount_ml: int = Field(gt=0)
    occurred_at: datetime

class UserHydrationProfile(BaseModel):
    user_id: str
    name: Optional[str] = None
    hydration_goal_ml: int = Field(default=2000, gt=0)
    phone_number: Optional[str] = None
    # Minutes east of UTC, same convention as the X-Timezone-Offset header
    timezone_offset_minutes: int = 0

class StreakState(BaseModel):
    current_streak: int = 0
    longest_streak: int = 0
    last_qualifying_date: Optional[str] = None

class DailyTotalResponse(BaseModel):
    user_id: str
    date: date
    total_ml: int
    goal_ml: int
    progress_percent: int
