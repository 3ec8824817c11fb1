"""
Pydantic models for ONDC (Beckn protocol) request bodies.

ONDC payloads are snake_case and carry many optional protocol fields,
so every model allows extra keys and only the fields the kitchen acts
on are declared.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class OndcModel(BaseModel):
    model_config = ConfigDict(extra="allow")


class OndcContext(OndcModel):
    domain: Optional[str] = None
    action: Optional[str] = None
    transaction_id: Optional[str] = None
    message_id: Optional[str] = None
    bap_id: Optional[str] = None
    bap_uri: Optional[str] = None
    timestamp: Optional[str] = None


class OndcSearchContext(OndcContext):
    domain: str = Field(..., min_length=1)
    action: str = Field(..., min_length=1)


class OndcQuantity(OndcModel):
    count: int = Field(1, ge=1)


class OndcItem(OndcModel):
    id: str
    quantity: OndcQuantity = Field(default_factory=OndcQuantity)


class OndcOrder(OndcModel):
    id: Optional[str] = None
    provider: Optional[dict[str, Any]] = None
    items: list[OndcItem] = Field(default_factory=list)
    billing: Optional[dict[str, Any]] = None
    fulfillment: Optional[dict[str, Any]] = None


class OndcSelectOrder(OndcOrder):
    items: list[OndcItem] = Field(..., min_length=1)


# =============================================================================
# MESSAGES
# =============================================================================

class OndcSearchMessage(OndcModel):
    intent: Optional[dict[str, Any]] = None


class OndcSelectMessage(OndcModel):
    order: OndcSelectOrder


class OndcOrderMessage(OndcModel):
    order: OndcOrder


class OndcOrderIdMessage(OndcModel):
    order_id: str = Field(..., min_length=1)
    cancellation_reason_id: Optional[str] = None


# =============================================================================
# REQUESTS
# =============================================================================

class OndcSearchRequest(OndcModel):
    context: OndcSearchContext
    message: OndcSearchMessage = Field(default_factory=OndcSearchMessage)


class OndcSelectRequest(OndcModel):
    context: OndcContext
    message: OndcSelectMessage


class OndcOrderRequest(OndcModel):
    """Body for init, confirm and update."""
    context: OndcContext
    message: OndcOrderMessage


class OndcOrderIdRequest(OndcModel):
    """Body for status and cancel."""
    context: OndcContext
    message: OndcOrderIdMessage
