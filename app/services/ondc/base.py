"""
ONDC Service Base

Abstract interface for answering ONDC (Open Network for Digital
Commerce) seller-side actions. Each action returns an OndcResult that
the router sends back as-is.

Author: Khalil Bannouri
Version: 4.0.0
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import OrderStatus, User
from app.services.ondc.schemas import (
    OndcContext,
    OndcOrderIdRequest,
    OndcOrderRequest,
    OndcSearchRequest,
    OndcSelectRequest,
)

# Local order status -> ONDC order state
ORDER_STATES: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Created",
    OrderStatus.CONFIRMED: "Accepted",
    OrderStatus.PREPARING: "In-progress",
    OrderStatus.READY: "In-progress",
    OrderStatus.OUT_FOR_DELIVERY: "In-progress",
    OrderStatus.DELIVERED: "Completed",
    OrderStatus.COMPLETED: "Completed",
    OrderStatus.CANCELLED: "Cancelled",
}

# Local order status -> fulfillment state code
FULFILLMENT_STATES: dict[OrderStatus, str] = {
    OrderStatus.PENDING: "Pending",
    OrderStatus.CONFIRMED: "Pending",
    OrderStatus.PREPARING: "Order-Processing",
    OrderStatus.READY: "Packed",
    OrderStatus.OUT_FOR_DELIVERY: "Out-for-delivery",
    OrderStatus.DELIVERED: "Order-delivered",
    OrderStatus.COMPLETED: "Order-delivered",
    OrderStatus.CANCELLED: "Cancelled",
}


@dataclass
class OndcResult:
    """
    Outcome of one ONDC action.

    Attributes:
        status_code: HTTP status to answer with
        body: JSON body (an ack envelope or an error)
    """
    status_code: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status_code < 400


def ondc_error(message: str, status_code: int = 400, error: str = "Invalid request format") -> OndcResult:
    return OndcResult(status_code=status_code, body={"error": error, "message": message})


def response_context(context: OndcContext, action: str) -> dict[str, Any]:
    """
    Echo the caller's context back, stamped for the on_<action> reply.

    The transaction id is kept when the caller sent one so the buyer
    app can correlate the reply.
    """
    settings = get_settings()
    now_ms = int(time.time() * 1000)
    ctx = context.model_dump(exclude_none=True)
    ctx.setdefault("domain", settings.ondc_domain)
    ctx.update({
        "action": f"on_{action}",
        "bpp_id": settings.ondc_bpp_id,
        "bpp_uri": settings.ondc_bpp_uri,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "message_id": f"{now_ms}-{action}",
        "transaction_id": context.transaction_id or f"tr-{now_ms}",
    })
    return ctx


def new_ondc_order_id() -> str:
    return f"ondc-{uuid.uuid4().hex[:12]}"


class BaseOndcService(ABC):
    """Seller-side ONDC action handlers."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        pass

    @abstractmethod
    async def search(self, request: OndcSearchRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        """Publish the catalog."""
        pass

    @abstractmethod
    async def select(self, request: OndcSelectRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        """Quote the selected items."""
        pass

    @abstractmethod
    async def init(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        """Draft order with quote and payment terms."""
        pass

    @abstractmethod
    async def confirm(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        pass

    @abstractmethod
    async def status(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        """State of one of the customer's orders."""
        pass

    @abstractmethod
    async def cancel(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        pass

    @abstractmethod
    async def update(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        pass

    async def health_check(self) -> bool:
        return True
