"""
Payment reminder and receipt notifications over email and SMS.

Both send_* methods try every channel the contact has and return True when at
least one delivery succeeded. They never raise.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel
from starlette.concurrency import run_in_threadpool

from app.services.email_service import EmailService
from app.services.sms_service import SmsService

logger = logging.getLogger(__name__)

SIGNATURE = "Best regards,\nFee Management System"


class ContactInfo(BaseModel):
    email: Optional[str] = None
    phone: Optional[str] = None


def format_amount(amount, currency: str = "PKR") -> str:
    return f"{currency} {Decimal(str(amount)):,.2f}"


class NotificationDispatcher:
    def __init__(self, email_service: Optional[EmailService] = None, sms_service: Optional[SmsService] = None):
        self.email_service = email_service or EmailService()
        self.sms_service = sms_service or SmsService()

    async def _email(self, to: str, subject: str, body: str) -> bool:
        try:
            return await run_in_threadpool(self.email_service.send_email, to, subject, body)
        except Exception:
            logger.exception("Email channel failed for %s", to)
            return False

    async def _sms(self, to: str, body: str) -> bool:
        try:
            return await self.sms_service.send_sms(to, body)
        except Exception:
            logger.exception("SMS channel failed for %s", to)
            return False

    async def _deliver(self, contact: ContactInfo, subject: str, email_body: str, sms_body: str) -> bool:
        delivered = False
        if contact.email:
            delivered = await self._email(contact.email, subject, email_body) or delivered
        if contact.phone:
            delivered = await self._sms(contact.phone, sms_body) or delivered
        if not contact.email and not contact.phone:
            logger.warning("No email or phone on file; '%s' not sent", subject)
        return delivered

    async def send_reminder(
        self,
        contact: ContactInfo,
        student_name: str,
        amount,
        due_date: date,
        currency: str = "PKR",
    ) -> bool:
        amount_text = format_amount(amount, currency)
        due = due_date.isoformat()
        email_body = (
            f"Dear {student_name},\n\n"
            f"This is a reminder that your payment of {amount_text} is due on {due}.\n\n"
            "Please make the payment at your earliest convenience.\n\n"
            f"{SIGNATURE}"
        )
        sms_body = (
            f"Dear {student_name}, your payment of {amount_text} is due on {due}. "
            "Please make the payment at your earliest convenience."
        )
        return await self._deliver(contact, "Payment Reminder", email_body, sms_body)

    async def send_receipt(
        self,
        contact: ContactInfo,
        student_name: str,
        amount,
        receipt_url: str,
        currency: str = "PKR",
    ) -> bool:
        amount_text = format_amount(amount, currency)
        email_body = (
            f"Dear {student_name},\n\n"
            f"Thank you for your payment of {amount_text}.\n\n"
            f"You can download your receipt from: {receipt_url}\n\n"
            f"{SIGNATURE}"
        )
        sms_body = (
            f"Dear {student_name}, thank you for your payment of {amount_text}. "
            f"You can download your receipt from: {receipt_url}"
        )
        return await self._deliver(contact, "Payment Receipt", email_body, sms_body)


def get_notification_dispatcher() -> NotificationDispatcher:
    """FastAPI dependency; tests override it with a recording fake."""
    return NotificationDispatcher()
