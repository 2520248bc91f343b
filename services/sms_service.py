# services/sms_service.py
# SMS transport over the Twilio REST API

import asyncio
import os
import re
from typing import Optional
import aiohttp
from services.errors import ConfigurationError, UpstreamError, UpstreamTimeout

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
E164_PATTERN = re.compile(r'^\+[1-9]\d{1,14}$')

def is_e164(phone_number: Optional[str]) -> bool:
    return bool(phone_number) and bool(E164_PATTERN.match(phone_number))

class SMSService:
    def __init__(
        self,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        timeout: float = 10.0
    ):
        self.account_sid = account_sid or os.getenv("TWILIO_ACCOUNT_SID")
        self.auth_token = auth_token or os.getenv("TWILIO_AUTH_TOKEN")
        self.from_number = from_number or os.getenv("TWILIO_PHONE_NUMBER")
        self.timeout = timeout

        if self.configured:
            print("✅ SMS service initialized")
        else:
            print("⚠️ Twilio credentials not set, SMS reminders disabled")

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def send(self, to_number: str, body: str, from_number: Optional[str] = None) -> str:
        """Send an SMS and return the Twilio message SID"""
        if not self.configured:
            raise ConfigurationError("SMS service not configured")
        if not is_e164(to_number):
            raise ConfigurationError(f"Invalid phone number format: {to_number}. Must be E.164")

        url = f"{TWILIO_API_BASE}/Accounts/{self.account_sid}/Messages.json"
        payload = {
            'To': to_number,
            'From': from_number or self.from_number,
            'Body': body,
        }

        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(
                    url,
                    data=payload,
                    auth=aiohttp.BasicAuth(self.account_sid, self.auth_token)
                ) as response:
                    result = await response.json(content_type=None)
                    if response.status >= 400:
                        raise UpstreamError(
                            f"Twilio error: {result.get('message', response.status)} (Code: {result.get('code')})"
                        )
        except asyncio.TimeoutError as e:
            raise UpstreamTimeout("Twilio request timed out") from e
        except aiohttp.ClientError as e:
            raise UpstreamError(f"Twilio request failed: {e}") from e

        print(f"✅ SMS sent to {to_number}: {result.get('sid')}")
        return result.get('sid', '')
