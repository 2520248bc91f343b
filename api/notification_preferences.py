# api/notification_preferences.py
# Backend API for notification preferences

from fastapi import APIRouter, HTTPException, Depends, Request
from models.notification_schemas import NotificationPreferences

router = APIRouter(prefix="/api/notification-preferences", tags=["notification-preferences"])

def get_store(request: Request):
    return request.app.state.store

@router.post("/save")
async def save_notification_preferences(prefs: NotificationPreferences, store=Depends(get_store)):
    """Save user's notification preferences to database"""
    try:
        saved = await store.save_preferences(prefs)

        print(f"✅ Notification preferences saved for user {prefs.user_id}")

        return {
            "success": True,
            "message": "Notification preferences saved successfully",
            "data": saved
        }

    except Exception as e:
        print(f"❌ Error saving notification preferences: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.get("/{user_id}")
async def get_notification_preferences(user_id: str, store=Depends(get_store)):
    """Get user's notification preferences"""
    try:
        prefs = await store.get_preferences(user_id)

        if prefs is not None:
            return {
                "success": True,
                "preferences": prefs.model_dump(mode='json'),
                "is_default": False
            }

        # Not saved yet, show what the settings screen should start from
        return {
            "success": True,
            "preferences": NotificationPreferences(user_id=user_id).model_dump(mode='json'),
            "is_default": True
        }

    except Exception as e:
        print(f"❌ Error getting notification preferences: {e}")
        raise HTTPException(status_code=500, detail=str(e))

@router.delete("/{user_id}")
async def delete_notification_preferences(user_id: str, store=Depends(get_store)):
    """Delete user's notification preferences (reset to defaults)"""
    try:
        await store.delete_preferences(user_id)

        return {
            "success": True,
            "message": "Notification preferences reset to defaults"
        }

    except Exception as e:
        print(f"❌ Error deleting notification preferences: {e}")
        raise HTTPException(status_code=500, detail=str(e))
