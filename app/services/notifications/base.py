"""
Notification Service Abstract Base Class

Defines interface for sending SMS and Email notifications.
Supports both Mock (development) and Real (production) implementations.

Author: Khalil Bannouri
Version: 4.0.0
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from app.core.config import get_settings


def mask_phone(phone: str) -> str:
    """Keep the last four digits for log lines."""
    return f"{'*' * max(len(phone) - 4, 0)}{phone[-4:]}"


@dataclass
class NotificationResult:
    """Result from sending a notification."""
    success: bool
    message_id: Optional[str] = None
    error_message: Optional[str] = None
    provider: str = "unknown"


class BaseNotificationService(ABC):
    """Abstract base class for notification services."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Return the provider name."""
        pass

    @abstractmethod
    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        """Send an SMS message."""
        pass

    @abstractmethod
    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        """Send an email."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check service connectivity."""
        pass

    async def send_otp(self, to_phone: str, code: str, expiry_minutes: int) -> NotificationResult:
        """Send a login code by SMS."""
        brand = get_settings().brand_name
        message = (
            f"{code} is your {brand} login code. "
            f"It expires in {expiry_minutes} minutes. Do not share it with anyone."
        )
        return await self.send_sms(to_phone, message)

    async def send_order_confirmation(
        self,
        order_id: int,
        customer_phone: str,
        total: Decimal,
        order_mode: str,
        kitchen_name: str,
        customer_name: Optional[str] = None,
        customer_email: Optional[str] = None,
        delivery_address: Optional[str] = None,
        delivery_window: Optional[str] = None,
    ) -> NotificationResult:
        """Send order confirmation via SMS, plus email when we have one."""
        settings = get_settings()

        if order_mode == "delivery":
            details = f"Delivery to: {delivery_address}"
            if delivery_window:
                details += f" ({delivery_window})"
        elif order_mode == "dine_in":
            details = f"Dine-in at {kitchen_name}"
        else:
            details = f"Takeaway from {kitchen_name}"

        greeting = f"Hi {customer_name}! " if customer_name else ""
        message = (
            f"{greeting}Your order #{order_id} has been placed.\n"
            f"{details}\n"
            f"Total: {settings.currency} {total}\n"
            f"Thank you for ordering from {settings.brand_name}!"
        )

        sms_result = await self.send_sms(customer_phone, message)

        email_result = None
        if customer_email:
            email_result = await self.send_email(
                to_email=customer_email,
                subject=f"Order #{order_id} placed - {settings.brand_name}",
                body_html=self._order_email_html(order_id, details, total, settings.currency),
                body_text=message,
            )

        return NotificationResult(
            success=sms_result.success or bool(email_result and email_result.success),
            message_id=sms_result.message_id,
            error_message=sms_result.error_message,
            provider=self.provider_name,
        )

    @staticmethod
    def _order_email_html(order_id: int, details: str, total: Decimal, currency: str) -> str:
        brand = get_settings().brand_name
        return f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #c0392b;">Order Placed!</h1>
                <p>Your order <strong>#{order_id}</strong> is with the kitchen.</p>
                <div style="background: #f8f9fa; padding: 15px; border-radius: 8px; margin: 20px 0;">
                    <p><strong>{details}</strong></p>
                    <p>Total: <strong>{currency} {total}</strong></p>
                </div>
                <p>Thank you for ordering from {brand}!</p>
            </div>
            """
