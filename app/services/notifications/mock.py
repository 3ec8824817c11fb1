"""
Mock Notification Service

Keeps every outgoing SMS and email in an in-memory outbox instead of
handing it to a gateway. Tests and the simulator read `sent_messages`
to pick up OTP codes and order confirmations.

Author: Khalil Bannouri
Version: 4.0.0
"""

import asyncio
import random
import uuid
import logging
from typing import Optional

from app.services.notifications.base import (
    BaseNotificationService,
    NotificationResult,
    mask_phone,
)

logger = logging.getLogger(__name__)


class MockNotificationService(BaseNotificationService):
    """
    Outbox-backed notification service for development.

    Attributes:
        failure_rate: Probability (0.0-1.0) that a send is refused
        min_latency / max_latency: Simulated gateway round trip in seconds
        sent_messages: Delivered messages, oldest first
    """

    def __init__(
        self,
        failure_rate: float = 0.05,
        min_latency: float = 0.1,
        max_latency: float = 0.3,
    ):
        self.failure_rate = failure_rate
        self.min_latency = min_latency
        self.max_latency = max_latency
        self.sent_messages: list[dict] = []
        logger.info(f"MockNotificationService initialized (failure_rate={failure_rate:.0%})")

    @property
    def provider_name(self) -> str:
        return "mock"

    async def _deliver(self, channel: str, to: str, body: str) -> NotificationResult:
        await asyncio.sleep(random.uniform(self.min_latency, self.max_latency))

        if random.random() < self.failure_rate:
            return NotificationResult(
                success=False,
                error_message=f"Simulated {channel} gateway failure",
                provider=self.provider_name,
            )

        message_id = f"{channel}_mock_{uuid.uuid4().hex[:12]}"
        self.sent_messages.append({"channel": channel, "to": to, "body": body, "id": message_id})
        return NotificationResult(success=True, message_id=message_id, provider=self.provider_name)

    def messages_to(self, recipient: str) -> list[dict]:
        """Outbox entries addressed to one phone number or email."""
        return [m for m in self.sent_messages if m["to"] == recipient]

    async def send_sms(
        self,
        to_phone: str,
        message: str,
    ) -> NotificationResult:
        result = await self._deliver("sms", to_phone, message)
        if result.success:
            # Body may carry a login code; only its size goes to the log
            logger.info(f"Mock SMS queued for {mask_phone(to_phone)} ({len(message)} chars, ID: {result.message_id})")
        else:
            logger.warning(f"Mock SMS to {mask_phone(to_phone)} refused: {result.error_message}")
        return result

    async def send_email(
        self,
        to_email: str,
        subject: str,
        body_html: str,
        body_text: Optional[str] = None,
    ) -> NotificationResult:
        result = await self._deliver("email", to_email, subject)
        if result.success:
            logger.info(f"Mock email queued for {to_email}: {subject} (ID: {result.message_id})")
        else:
            logger.warning(f"Mock email to {to_email} refused: {result.error_message}")
        return result

    async def health_check(self) -> bool:
        return True
