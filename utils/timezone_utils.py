# utils/timezone_utils.py
from datetime import datetime, date, time, timedelta, timezone
from typing import Optional, Tuple
from fastapi import Header

def parse_timezone_offset(offset_str: Optional[str]) -> int:
    """
    Parse timezone offset from various formats.
    Examples: "300" (minutes), "+05:00", "-08:00"
    """
    if not offset_str:
        return 0

    try:
        # If it's already in minutes
        if offset_str.lstrip('-').isdigit():
            return int(offset_str)

        # If it's in format "+05:00" or "-08:00"
        if ':' in offset_str:
            sign = -1 if offset_str.startswith('-') else 1
            parts = offset_str.lstrip('+-').split(':')
            hours = int(parts[0])
            minutes = int(parts[1]) if len(parts) > 1 else 0
            return sign * (hours * 60 + minutes)
    except ValueError:
        pass

    return 0

def utc_now() -> datetime:
    return datetime.now(timezone.utc)

def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes coming back from the store are UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)

def to_user_local(value: datetime, timezone_offset: int = 0) -> datetime:
    """Shift a timestamp to the user's wall clock (naive result)."""
    return (ensure_utc(value) + timedelta(minutes=timezone_offset)).replace(tzinfo=None)

def get_user_now(timezone_offset: int = 0, now: Optional[datetime] = None) -> datetime:
    """Get current datetime in user's timezone."""
    return to_user_local(now or utc_now(), timezone_offset)

def get_user_today(timezone_offset: int = 0, now: Optional[datetime] = None) -> date:
    """Get today's date in user's timezone."""
    return get_user_now(timezone_offset, now).date()

def get_user_day_bounds(day: date, timezone_offset: int = 0) -> Tuple[datetime, datetime]:
    """UTC [start, end) of a calendar day on the user's wall clock."""
    local_start = datetime.combine(day, time.min)
    start = local_start.replace(tzinfo=timezone.utc) - timedelta(minutes=timezone_offset)
    return start, start + timedelta(days=1)

def parse_time_of_day(value: str) -> time:
    """Parse "HH:MM" into a time."""
    hours, minutes = value.split(':')
    return time(int(hours), int(minutes))

# FastAPI dependency to extract timezone from headers
async def get_timezone_offset(
    x_timezone_offset: Optional[str] = Header(None),
    x_timezone_string: Optional[str] = Header(None)
) -> Optional[int]:
    """
    Extract timezone offset from request headers.
    Returns offset in minutes from UTC, or None when the client sent nothing
    so the stored profile offset can be used instead.
    """
    # Try the direct offset first
    if x_timezone_offset:
        return parse_timezone_offset(x_timezone_offset)

    # Try parsing the string format
    if x_timezone_string:
        return parse_timezone_offset(x_timezone_string)

    return None
