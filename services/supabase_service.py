# services/supabase_service.py
from supabase import create_client, Client
import os
from typing import Dict, List, Optional, Any
from datetime import datetime, date, timezone
from models.water_schemas import HydrationEvent, UserHydrationProfile
from models.notification_schemas import NotificationPreferences

class SupabaseService:
    """Store for hydration logs, preferences, milestones and the notification queue"""

    def __init__(self, url: Optional[str] = None, key: Optional[str] = None):
        url = url or os.getenv("SUPABASE_URL")
        key = key or os.getenv("SUPABASE_SERVICE_KEY")

        if not url or not key:
            raise ValueError("SUPABASE_URL and SUPABASE_SERVICE_KEY must be set in environment variables")

        self.client: Client = create_client(url, key)
        print("✅ Supabase client initialized")

    # User profile
    async def get_user_profile(self, user_id: str) -> Optional[UserHydrationProfile]:
        """Get the hydration-relevant part of a user profile"""
        try:
            response = self.client.table('users') \
                .select('id, name, hydration_goal_ml, phone_number, timezone_offset_minutes') \
                .eq('id', user_id) \
                .execute()

            if not response.data:
                return None

            row = response.data[0]
            return UserHydrationProfile(
                user_id=row['id'],
                name=row.get('name'),
                hydration_goal_ml=row.get('hydration_goal_ml') or 2000,
                phone_number=row.get('phone_number'),
                timezone_offset_minutes=row.get('timezone_offset_minutes') or 0
            )
        except Exception as e:
            print(f"❌ Error getting user profile: {e}")
            raise

    # Hydration log operations
    async def list_events(self, user_id: str, start: datetime, end: datetime) -> List[HydrationEvent]:
        """Hydration events with start <= occurred_at < end"""
        try:
            response = self.client.table('hydration_logs')\
                .select('user_id, amount_ml, occurred_at')\
                .eq('user_id', user_id)\
                .gte('occurred_at', start.isoformat())\
                .lt('occurred_at', end.isoformat())\
                .order('occurred_at', desc=True)\
                .execute()

            return [HydrationEvent(**row) for row in response.data or []]
        except Exception as e:
            print(f"❌ Error getting hydration logs: {e}")
            raise

    # Notification preferences
    async def get_preferences(self, user_id: str) -> Optional[NotificationPreferences]:
        try:
            response = self.client.table('notification_preferences')\
                .select('*')\
                .eq('user_id', user_id)\
                .execute()

            if response.data:
                return NotificationPreferences.model_validate(response.data[0])
            return None
        except Exception as e:
            print(f"❌ Error getting notification preferences: {e}")
            raise

    async def save_preferences(self, prefs: NotificationPreferences) -> Dict[str, Any]:
        """Insert or replace a user's preferences"""
        data = prefs.model_dump(mode='json')
        data['updated_at'] = datetime.now(timezone.utc).isoformat()

        try:
            response = self.client.table('notification_preferences')\
                .upsert(data, on_conflict='user_id')\
                .execute()
            return response.data[0] if response.data else data
        except Exception as e:
            print(f"❌ Error saving notification preferences: {e}")
            raise

    async def update_preferences(self, user_id: str, update_data: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        update_data = dict(update_data)
        for field, value in update_data.items():
            if isinstance(value, datetime):
                update_data[field] = value.isoformat()
        update_data['updated_at'] = datetime.now(timezone.utc).isoformat()

        try:
            response = self.client.table('notification_preferences')\
                .update(update_data)\
                .eq('user_id', user_id)\
                .execute()
            return response.data[0] if response.data else None
        except Exception as e:
            print(f"❌ Error updating notification preferences: {e}")
            raise

    async def delete_preferences(self, user_id: str) -> bool:
        self.client.table('notification_preferences')\
            .delete()\
            .eq('user_id', user_id)\
            .execute()
        return True

    # Milestone records
    async def milestone_exists(self, key: Dict[str, Any]) -> bool:
        response = self.client.table('milestone_notifications')\
            .select('id')\
            .eq('user_id', key['user_id'])\
            .eq('date', key['date'])\
            .eq('split_time', key['split_time'])\
            .eq('target_ml', key['target_ml'])\
            .limit(1)\
            .execute()
        return bool(response.data)

    async def create_milestone_if_absent(self, key: Dict[str, Any]) -> bool:
        """
        Create the milestone record unless it exists. Relies on the unique
        index (user_id, date, split_time, target_ml); returns False when the
        row was already there.
        """
        record = dict(key)
        record['notified_at'] = datetime.now(timezone.utc).isoformat()

        response = self.client.table('milestone_notifications')\
            .upsert(record, on_conflict='user_id,date,split_time,target_ml', ignore_duplicates=True)\
            .execute()
        return bool(response.data)

    # Scheduled notification queue
    async def get_due_notifications(self, now: datetime, limit: int = 50) -> List[Dict[str, Any]]:
        """Raw due rows; the runner validates each one so a bad row fails alone"""
        response = self.client.table('scheduled_notifications')\
            .select('*')\
            .lte('scheduled_for', now.isoformat())\
            .eq('processed', False)\
            .eq('failed', False)\
            .order('scheduled_for')\
            .limit(limit)\
            .execute()

        return response.data or []

    async def mark_notification_processed(self, notification_id: str, processed_at: datetime) -> bool:
        """Conditional terminal update; False if another runner got there first"""
        response = self.client.table('scheduled_notifications')\
            .update({'processed': True, 'processed_at': processed_at.isoformat()})\
            .eq('id', notification_id)\
            .eq('processed', False)\
            .eq('failed', False)\
            .execute()
        return bool(response.data)

    async def mark_notification_failed(self, notification_id: str, failed_at: datetime, error: str) -> bool:
        response = self.client.table('scheduled_notifications')\
            .update({'failed': True, 'failed_at': failed_at.isoformat(), 'error': error})\
            .eq('id', notification_id)\
            .eq('processed', False)\
            .eq('failed', False)\
            .execute()
        return bool(response.data)

    # SMS daily counter
    async def get_sms_count(self, user_id: str, day: date) -> int:
        response = self.client.table('sms_daily_counts')\
            .select('count')\
            .eq('user_id', user_id)\
            .eq('date', day.isoformat())\
            .execute()

        if response.data:
            return response.data[0].get('count') or 0
        return 0

    async def increment_sms_count(self, user_id: str, day: date) -> int:
        count = await self.get_sms_count(user_id, day) + 1
        self.client.table('sms_daily_counts')\
            .upsert({
                'user_id': user_id,
                'date': day.isoformat(),
                'count': count,
                'last_sent': datetime.now(timezone.utc).isoformat()
            }, on_conflict='user_id,date')\
            .execute()
        return count

    # Analytics
    async def record_analytics_event(self, user_id: str, event_type: str, payload: Dict[str, Any]):
        self.client.table('analytics_events').insert({
            'user_id': user_id,
            'event_type': event_type,
            'data': payload,
            'timestamp': datetime.now(timezone.utc).isoformat()
        }).execute()

    # Health check method
    async def health_check(self) -> Dict[str, Any]:
        """Check if Supabase connection is working"""
        try:
            self.client.table('notification_preferences').select('user_id').limit(1).execute()

            return {
                "status": "healthy",
                "message": "Supabase connection working",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }

        except Exception as e:
            return {
                "status": "unhealthy",
                "message": f"Supabase connection failed: {str(e)}",
                "timestamp": datetime.now(timezone.utc).isoformat()
            }
