# main.py
from fastapi.middleware.cors import CORSMiddleware
import os
from dotenv import load_dotenv

from fastapi import FastAPI
from api import reminders, notification_preferences
from services.supabase_service import SupabaseService
from services.openai_service import OpenAIService
from services.fcm_service import FCMService
from services.sms_service import SMSService
from services.message_composer import MessageComposer
from services.delivery_dispatcher import DeliveryDispatcher
from services.milestone_tracker import MilestoneTracker
from services.reminder_orchestrator import ReminderOrchestrator
from services.background_tasks import ScheduledNotificationRunner, setup_notification_scheduler

# Load environment variables
load_dotenv()

# Initialize FastAPI app
app = FastAPI(
    title="Hydration Reminder Backend",
    description="Adaptive hydration reminders with push and SMS delivery",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize services on startup
@app.on_event("startup")
async def startup_event():
    """Build every collaborator once and share it through app.state"""
    print("🚀 Starting Hydration Reminder Backend...")

    try:
        store = SupabaseService()
        print("✅ Supabase service initialized")

        try:
            generator = OpenAIService()
        except ValueError as e:
            print(f"⚠️ {e} - using fallback messages only")
            generator = None

        push_service = FCMService()
        sms_service = SMSService()

        composer = MessageComposer(generator)
        dispatcher = DeliveryDispatcher(push_service, sms_service, store)

        app.state.store = store
        app.state.generator = generator
        app.state.push_service = push_service
        app.state.sms_service = sms_service
        app.state.reminder_orchestrator = ReminderOrchestrator(
            store, composer, dispatcher, MilestoneTracker(store)
        )
        app.state.notification_runner = ScheduledNotificationRunner(store, composer, dispatcher)

        if os.getenv("DISABLE_NOTIFICATION_SCHEDULER", "").lower() not in ("1", "true", "yes"):
            app.state.scheduler = setup_notification_scheduler(app.state.notification_runner)
        else:
            app.state.scheduler = None
            print("⚠️ Notification scheduler disabled")

        print("🎉 Backend startup complete!")

    except Exception as e:
        print(f"❌ Error during startup: {e}")
        raise

@app.on_event("shutdown")
async def shutdown_event():
    scheduler = getattr(app.state, "scheduler", None)
    if scheduler is not None:
        scheduler.shutdown(wait=False)
        print("🛑 Notification scheduler stopped")

# Include API routers
app.include_router(reminders.router)
app.include_router(notification_preferences.router)

# Root endpoint
@app.get("/")
async def root():
    return {
        "message": "Hydration Reminder Backend API",
        "version": "1.0.0",
        "status": "running",
        "features": ["adaptive_reminders", "milestones", "streaks", "push", "sms", "scheduled_notifications"]
    }

# Health check endpoint
@app.get("/health")
async def health_check():
    try:
        supabase_health = await app.state.store.health_check()

        return {
            "status": "healthy",
            "services": {
                "api": "healthy",
                "supabase": supabase_health,
                "text_generation": "configured" if app.state.generator else "fallback_only",
                "push": "configured" if app.state.push_service.configured else "not_configured",
                "sms": "configured" if app.state.sms_service.configured else "not_configured",
            },
            "message": "All services are running"
        }

    except Exception as e:
        return {
            "status": "unhealthy",
            "error": str(e),
            "message": "Some services are down"
        }

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("main:app", host="0.0.0.0", port=port, reload=True)
