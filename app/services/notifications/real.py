"""
Real Notification Service

Twilio carries SMS (login codes, order updates); SendGrid carries the
optional email copy of an order confirmation. Customer numbers are
stored as local 10-digit strings and get the configured country prefix
on the way out.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from typing import Optional

from python_http_client.exceptions import HTTPError as SendGridHTTPError
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail
from twilio.rest import Client as TwilioClient
from twilio.base.exceptions import TwilioException

from app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    mask_phone,
)
from app.core.config import get_settings

logger = logging.getLogger(__name__)


class RealNotificationService(BaseNotificationService):
    """Production notification service using Twilio and SendGrid."""

    def __init__(self):
        settings = get_settings()
        self.country_code = settings.sms_country_code
        self.sms_sender = settings.twilio_phone_number
        self.email_sender = settings.sendgrid_from_email

        self.twilio_client = None
        if settings.twilio_account_sid and settings.twilio_auth_token:
            self.twilio_client = TwilioClient(settings.twilio_account_sid, settings.twilio_auth_token)
        else:
            logger.warning("Twilio credentials not configured; OTP login will fail")

        self.sendgrid_client = None
        if settings.sendgrid_api_key:
            self.sendgrid_client = SendGridAPIClient(settings.sendgrid_api_key)
        else:
            logger.warning("SendGrid credentials not configured; confirmations go out by SMS only")

        logger.info("RealNotificationService initialized")

    @property
    def provider_name(self) -> str:
        return "real"

    def _to_e164(self, phone: str) -> str:
        if phone.startswith("+"):
            return phone
        return f"{self.country_code}{phone}"

    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        if self.twilio_client is None:
            return NotificationResult(success=False, error_message="Twilio not configured", provider="twilio")

        try:
            sent = self.twilio_client.messages.create(
                to=self._to_e164(to_phone),
                from_=self.sms_sender,
                body=message,
            )
        except TwilioException as e:
            logger.error(f"Twilio rejected SMS to {mask_phone(to_phone)}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="twilio")

        logger.info(f"SMS to {mask_phone(to_phone)} accepted by Twilio (sid={sent.sid})")
        return NotificationResult(success=True, message_id=sent.sid, provider="twilio")

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        if self.sendgrid_client is None:
            return NotificationResult(success=False, error_message="SendGrid not configured", provider="sendgrid")

        mail = Mail(
            from_email=self.email_sender,
            to_emails=to_email,
            subject=subject,
            html_content=body_html,
            plain_text_content=body_text,
        )
        try:
            response = self.sendgrid_client.send(mail)
        except SendGridHTTPError as e:
            logger.error(f"SendGrid rejected email to {to_email}: {e}")
            return NotificationResult(success=False, error_message=str(e), provider="sendgrid")

        accepted = response.status_code in (200, 201, 202)
        logger.info(f"Email to {to_email} -> SendGrid {response.status_code}")
        return NotificationResult(
            success=accepted,
            message_id=response.headers.get("X-Message-Id"),
            error_message=None if accepted else f"SendGrid status {response.status_code}",
            provider="sendgrid",
        )

    async def health_check(self) -> bool:
        """Healthy when Twilio answers; email is optional."""
        if self.twilio_client is None:
            return False
        try:
            self.twilio_client.api.accounts(self.twilio_client.account_sid).fetch()
        except TwilioException as e:
            logger.error(f"Twilio health check failed: {e}")
            return False
        return True
