# models/notification_schemas.py
from pydantic import BaseModel, Field
from typing import Optional, List, Dict
from datetime import datetime
from enum import Enum

class Tone(str, Enum):
    FUNNY = "funny"
    KIND = "kind"
    MOTIVATIONAL = "motivational"
    SARCASTIC = "sarcastic"
    STRICT = "strict"
    SUPPORTIVE = "supportive"
    CRASS = "crass"
    WEIGHTLOSS = "weightloss"

DEFAULT_TONE = Tone.KIND

class NotificationCategory(str, Enum):
    SIP = "sip"
    GLASS = "glass"
    WALK = "walk"
    DRINK = "drink"
    HERBAL_TEA = "herbal_tea"
    MILESTONE = "milestone"
    STREAK = "streak"

class FrequencyTier(str, Enum):
    MINIMAL = "minimal"
    MODERATE = "moderate"
    FREQUENT = "frequent"

class DeliveryMethod(str, Enum):
    AUTO = "auto"
    FCM = "fcm"
    SMS = "sms"
    BOTH = "both"

class Channel(str, Enum):
    FCM = "fcm"
    SMS = "sms"
    BOTH = "both"
    NONE = "none"

class VibrationIntensity(str, Enum):
    LIGHT = "light"
    MEDIUM = "medium"
    HEAVY = "heavy"

class DaySplit(BaseModel):
    time_of_day: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$")  # "HH:MM"
    target_ml: int = Field(gt=0)
    label: str = ""
    confetti_enabled: bool = True

class NotificationPreferences(BaseModel):
    user_id: str
    enabled: bool = True
    push_enabled: bool = True
    sms_enabled: bool = False
    fcm_token: Optional[str] = None
    frequency_tier: FrequencyTier = FrequencyTier.MODERATE
    enabled_categories: List[NotificationCategory] = Field(
        default_factory=lambda: [NotificationCategory.DRINK, NotificationCategory.MILESTONE]
    )
    custom_intervals: Dict[NotificationCategory, int] = Field(default_factory=dict)
    day_splits: List[DaySplit] = Field(default_factory=list)
    # None means the user has never been notified
    last_notification_at: Optional[datetime] = None
    tone: Tone = DEFAULT_TONE
    sms_max_per_day: int = Field(default=2, ge=0)
    vibration_enabled: bool = True
    vibration_intensity: VibrationIntensity = VibrationIntensity.MEDIUM

class ScheduledNotification(BaseModel):
    id: str
    user_id: str
    category: NotificationCategory = NotificationCategory.DRINK
    scheduled_for: datetime
    current_ml: int = Field(default=0, ge=0)
    goal_ml: int = Field(default=2000, gt=0)
    tone: Tone = DEFAULT_TONE
    processed: bool = False
    failed: bool = False
    processed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None

class DeliveryOutcome(BaseModel):
    channel_attempted: Channel = Channel.NONE
    success: bool = False
    error: Optional[str] = None
    message_ids: Dict[str, str] = Field(default_factory=dict)

class ReminderRequest(BaseModel):
    user_id: str = Field(min_length=1)
    category: NotificationCategory = NotificationCategory.DRINK
    tone_override: Optional[Tone] = None
    method_override: Optional[DeliveryMethod] = None
    test_mode: bool = False

class ReminderResult(BaseModel):
    success: bool
    method: Channel = Channel.NONE
    message_text: Optional[str] = None
    error: Optional[str] = None
    skipped_reason: Optional[str] = None
