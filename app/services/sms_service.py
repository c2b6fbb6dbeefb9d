import logging
from typing import Optional

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)


class SmsService:
    """SMS through the Twilio Messages REST endpoint."""

    def __init__(self, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.account_sid = settings.twilio_account_sid
        self.auth_token = settings.twilio_auth_token
        self.from_number = settings.twilio_from_number
        self.api_base = settings.twilio_api_base.rstrip("/")
        self.timeout = settings.sms_timeout_seconds
        self._transport = transport

    @property
    def enabled(self) -> bool:
        return settings.sms_enabled

    async def send_sms(self, to: str, body: str) -> bool:
        if not self.enabled:
            logger.warning("Twilio is not configured; SMS to %s not sent", to)
            return False
        url = f"{self.api_base}/Accounts/{self.account_sid}/Messages.json"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(
                    url,
                    data={"To": to, "From": self.from_number, "Body": body},
                    auth=(self.account_sid, self.auth_token),
                )
                response.raise_for_status()
            logger.info("SMS sent to %s: %s", to, response.json().get("sid"))
            return True
        except Exception as e:
            logger.error("Failed to send SMS to %s: %s", to, e, exc_info=True)
            return False
