# services/fcm_service.py
# Firebase Cloud Messaging push transport

import asyncio
import os
from typing import Dict, Optional
import firebase_admin
from firebase_admin import credentials, messaging
from services.errors import ConfigurationError, UpstreamError

VIBRATION_PATTERNS = {
    'light': '100,50,100',
    'medium': '200,100,200',
    'heavy': '300,100,300,100,300',
}

def initialize_firebase() -> bool:
    """Initialize Firebase Admin SDK. Returns False when no credentials exist."""
    try:
        # Check if already initialized
        firebase_admin.get_app()
        print("✅ Firebase already initialized")
        return True
    except ValueError:
        pass

    cred_path = os.getenv('FIREBASE_CREDENTIALS_PATH', 'firebase-credentials.json')

    if os.path.exists(cred_path):
        cred = credentials.Certificate(cred_path)
        firebase_admin.initialize_app(cred)
        print("✅ Firebase Admin initialized with credentials file")
        return True

    print("⚠️ Firebase credentials file not found, trying environment variables")
    cred_dict = {
        "type": "service_account",
        "project_id": os.getenv('FIREBASE_PROJECT_ID'),
        "private_key_id": os.getenv('FIREBASE_PRIVATE_KEY_ID'),
        "private_key": os.getenv('FIREBASE_PRIVATE_KEY', '').replace('\\n', '\n'),
        "client_email": os.getenv('FIREBASE_CLIENT_EMAIL'),
        "client_id": os.getenv('FIREBASE_CLIENT_ID'),
        "auth_uri": "https://accounts.google.com/o/oauth2/auth",
        "token_uri": "https://oauth2.googleapis.com/token",
        "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs",
    }

    if not cred_dict['project_id']:
        print("❌ Firebase credentials not found! Push notifications disabled")
        return False

    cred = credentials.Certificate(cred_dict)
    firebase_admin.initialize_app(cred)
    print("✅ Firebase Admin initialized with environment variables")
    return True

def get_vibration_pattern(intensity: Optional[str]) -> str:
    return VIBRATION_PATTERNS.get(intensity or 'medium', VIBRATION_PATTERNS['medium'])

def build_message(token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> messaging.Message:
    data = {k: str(v) for k, v in (data or {}).items()}
    return messaging.Message(
        notification=messaging.Notification(
            title=title,
            body=body,
        ),
        data=data,
        token=token,
        android=messaging.AndroidConfig(
            priority='high',
            notification=messaging.AndroidNotification(
                icon='ic_notification',
                color='#3B82F6',
                sound='default',
                channel_id='hydration_reminders',
                tag=data.get('type'),
            ),
        ),
        apns=messaging.APNSConfig(
            payload=messaging.APNSPayload(
                aps=messaging.Aps(
                    alert=messaging.ApsAlert(
                        title=title,
                        body=body,
                    ),
                    sound='default',
                    badge=1,
                ),
            ),
        ),
        webpush=messaging.WebpushConfig(
            notification=messaging.WebpushNotification(
                title=title,
                body=body,
                icon='/logo-192.png',
                badge='/logo-192.png',
            ),
        ),
    )

class FCMService:
    def __init__(self, configured: Optional[bool] = None):
        self.configured = initialize_firebase() if configured is None else configured

    async def send(self, token: str, title: str, body: str, data: Optional[Dict[str, str]] = None) -> str:
        """Send one push notification and return the FCM message id"""
        if not self.configured:
            raise ConfigurationError("Push service not configured")
        if not token:
            raise ConfigurationError("No FCM token registered")

        message = build_message(token, title, body, data)
        try:
            # firebase_admin is blocking
            message_id = await asyncio.to_thread(messaging.send, message)
        except Exception as e:
            raise UpstreamError(f"FCM send failed: {e}") from e

        print(f"✅ Push notification sent: {message_id}")
        return message_id
