# services/delivery_dispatcher.py

from typing import Dict, List, Optional
from datetime import date
from models.notification_schemas import (
    Channel, DeliveryMethod, DeliveryOutcome, NotificationPreferences
)
from models.water_schemas import UserHydrationProfile
from services.sms_service import is_e164
from utils.timezone_utils import get_user_today

class DeliveryDispatcher:
    """
    Sends one message over push and/or SMS.

    Channel problems never raise out of send(): a missing token, phone number
    or credential makes the channel ineligible, and transport failures are
    folded into the outcome's error string.
    """

    def __init__(self, push_service=None, sms_service=None, store=None):
        self.push_service = push_service
        self.sms_service = sms_service
        self.store = store

    def push_unavailable_reason(self, prefs: NotificationPreferences) -> Optional[str]:
        if self.push_service is None or not getattr(self.push_service, 'configured', True):
            return "push service not configured"
        if not prefs.push_enabled:
            return "push disabled by user"
        if not prefs.fcm_token:
            return "no FCM token registered"
        return None

    def sms_unavailable_reason(self, prefs: NotificationPreferences, profile: Optional[UserHydrationProfile]) -> Optional[str]:
        if self.sms_service is None or not getattr(self.sms_service, 'configured', True):
            return "SMS service not configured"
        if not prefs.sms_enabled:
            return "SMS disabled by user"
        phone_number = profile.phone_number if profile else None
        if not phone_number:
            return "no phone number configured"
        if not is_e164(phone_number):
            return f"invalid phone number format: {phone_number}"
        return None

    def resolve_method(
        self,
        requested: DeliveryMethod,
        prefs: NotificationPreferences,
        profile: Optional[UserHydrationProfile]
    ) -> Optional[DeliveryMethod]:
        """Turn AUTO into a concrete channel; None means nothing is eligible"""
        if requested != DeliveryMethod.AUTO:
            return requested
        if prefs.push_enabled and prefs.fcm_token:
            return DeliveryMethod.FCM
        if self.sms_unavailable_reason(prefs, profile) is None:
            return DeliveryMethod.SMS
        return None

    async def _sms_cap_reached(self, prefs: NotificationPreferences, day: date) -> bool:
        if self.store is None:
            return False
        try:
            sent = await self.store.get_sms_count(prefs.user_id, day)
        except Exception as e:
            print(f"⚠️ Could not read SMS count for {prefs.user_id}: {e}")
            return False
        return sent >= prefs.sms_max_per_day

    async def _record_sms_sent(self, user_id: str, day: date):
        if self.store is None:
            return
        try:
            await self.store.increment_sms_count(user_id, day)
        except Exception as e:
            print(f"⚠️ Error updating SMS count for {user_id}: {e}")

    async def send(
        self,
        user_id: str,
        text: str,
        requested_method: DeliveryMethod,
        prefs: NotificationPreferences,
        profile: Optional[UserHydrationProfile] = None,
        title: str = "Time to Hydrate! 💧",
        data: Optional[Dict[str, str]] = None,
        day: Optional[date] = None
    ) -> DeliveryOutcome:
        method = self.resolve_method(requested_method, prefs, profile)
        if method is None:
            print(f"⚠️ No delivery channel available for user {user_id}")
            return DeliveryOutcome(channel_attempted=Channel.NONE, success=False, error="No delivery channel available")

        fcm_ok = False
        sms_ok = False
        errors: List[str] = []
        message_ids: Dict[str, str] = {}

        if method in (DeliveryMethod.FCM, DeliveryMethod.BOTH):
            reason = self.push_unavailable_reason(prefs)
            if reason:
                errors.append(f"FCM: {reason}")
            else:
                try:
                    message_ids['fcm'] = await self.push_service.send(prefs.fcm_token, title, text, data)
                    fcm_ok = True
                except Exception as e:
                    print(f"❌ Push notification failed for user {user_id}: {e}")
                    errors.append(f"FCM: {e}")

        wants_sms = method in (DeliveryMethod.SMS, DeliveryMethod.BOTH) \
            or (method == DeliveryMethod.FCM and not fcm_ok)

        if wants_sms:
            sms_day = day or get_user_today(profile.timezone_offset_minutes if profile else 0)
            reason = self.sms_unavailable_reason(prefs, profile)
            if reason is None and await self._sms_cap_reached(prefs, sms_day):
                reason = f"daily SMS limit of {prefs.sms_max_per_day} reached"

            if reason:
                errors.append(f"SMS: {reason}")
            else:
                try:
                    message_ids['sms'] = await self.sms_service.send(profile.phone_number, text)
                    sms_ok = True
                    await self._record_sms_sent(user_id, sms_day)
                except Exception as e:
                    print(f"❌ SMS reminder failed for user {user_id}: {e}")
                    errors.append(f"SMS: {e}")

        if fcm_ok and sms_ok:
            channel = Channel.BOTH
        elif fcm_ok:
            channel = Channel.FCM
        elif sms_ok:
            channel = Channel.SMS
        else:
            channel = Channel.NONE

        error = "; ".join(errors) if errors else None
        if channel == Channel.NONE and not error:
            error = "No delivery channel available"

        return DeliveryOutcome(
            channel_attempted=channel,
            success=fcm_ok or sms_ok,
            error=error,
            message_ids=message_ids
        )
