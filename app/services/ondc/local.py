"""
Local ONDC Service

Answers ONDC actions straight from the kitchen's own database: search
publishes the live catalog, select/init/confirm quote against live
prices, and status/cancel operate on the calling customer's own
orders.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from collections import defaultdict
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import Order, OrderStatus, Product, User
from app.services import catalog
from app.services.ondc.base import (
    FULFILLMENT_STATES,
    ORDER_STATES,
    BaseOndcService,
    OndcResult,
    new_ondc_order_id,
    ondc_error,
    response_context,
)
from app.services.ondc.schemas import (
    OndcItem,
    OndcOrderIdRequest,
    OndcOrderRequest,
    OndcSearchRequest,
    OndcSelectRequest,
)
from app.services.orders import cancel_order, get_order
from app.services.pricing import money

logger = logging.getLogger(__name__)

# No per-item stock counts are tracked; in-stock items advertise the max basket quantity
AVAILABLE_COUNT = 99


def _price(value: Union[Decimal, int, str]) -> dict[str, str]:
    return {"currency": get_settings().currency, "value": str(money(value))}


def _breakup(title: str, value: Union[Decimal, int, str]) -> dict[str, Any]:
    return {"title": title, "price": _price(value)}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _payment_terms() -> dict[str, str]:
    return {"type": "ON-ORDER", "status": "NOT-PAID"}


def _catalog_item(product: Product) -> dict[str, Any]:
    return {
        "id": str(product.id),
        "descriptor": {
            "name": product.name,
            "short_desc": product.description or product.name,
            "long_desc": product.description or product.name,
            "images": [product.image_url] if product.image_url else [],
        },
        "price": _price(product.price),
        "category_id": product.category_slug,
        "quantity": {"available": {"count": AVAILABLE_COUNT}},
    }


def _search_term(request: OndcSearchRequest) -> Optional[str]:
    """Item name the buyer searched for, if any."""
    node: Any = request.message.intent
    for key in ("item", "descriptor", "name"):
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node.strip().lower() if isinstance(node, str) and node.strip() else None


class LocalOndcService(BaseOndcService):
    """ONDC seller endpoints backed by the local catalog and orders."""

    @property
    def provider_name(self) -> str:
        return "Local catalog"

    def _session(self, db: Optional[AsyncSession]) -> AsyncSession:
        if db is None:
            raise RuntimeError("LocalOndcService needs a database session")
        return db

    # -------------------------------------------------------------------------
    # Catalog & quotes
    # -------------------------------------------------------------------------

    async def search(self, request: OndcSearchRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        db = self._session(db)
        settings = get_settings()
        term = _search_term(request)

        kitchens = await catalog.list_kitchens(db)
        products = await catalog.list_products(db, in_stock_only=True)

        by_kitchen: dict[int, list[Product]] = defaultdict(list)
        for product in products:
            if product.kitchen_id is None:
                continue
            if term and term not in product.name.lower():
                continue
            by_kitchen[product.kitchen_id].append(product)

        providers = []
        for kitchen in kitchens:
            location: dict[str, Any] = {
                "id": f"loc-{kitchen.id}",
                "address": {"area": kitchen.area, "city": kitchen.city},
            }
            if kitchen.latitude and kitchen.longitude:
                location["gps"] = f"{kitchen.latitude},{kitchen.longitude}"
            providers.append({
                "id": str(kitchen.id),
                "descriptor": {"name": kitchen.name},
                "time": {"range": {"start": kitchen.open_time, "end": kitchen.close_time}},
                "locations": [location],
                "items": [_catalog_item(p) for p in by_kitchen.get(kitchen.id, [])],
            })

        logger.info(
            f"ONDC search ({request.context.domain}): "
            f"{sum(len(p['items']) for p in providers)} items across {len(providers)} kitchens"
        )

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "search"),
            "message": {
                "catalog": {
                    "bpp/descriptor": {
                        "name": settings.brand_name,
                        "short_desc": f"{settings.brand_name} cloud kitchen",
                    },
                    "bpp/providers": providers,
                },
            },
        })

    async def _quote(
        self, db: AsyncSession, items: list[OndcItem]
    ) -> Union[OndcResult, tuple[list[dict[str, Any]], dict[str, Any]]]:
        """
        Price items against the live catalog.

        Returns (priced items, quote) or an OndcResult error when an
        item is unknown or out of stock.
        """
        priced = []
        item_total = Decimal("0")

        for item in items:
            try:
                product_id = int(item.id)
            except ValueError:
                return ondc_error(f"Unknown item: {item.id}")
            product = await db.get(Product, product_id)
            if product is None:
                return ondc_error(f"Unknown item: {item.id}")
            if not product.in_stock:
                return ondc_error(f"Item not available: {product.name}")

            line_total = product.price * item.quantity.count
            item_total += line_total
            priced.append({
                "id": item.id,
                "quantity": {"count": item.quantity.count},
                "price": _price(product.price),
            })

        delivery = get_settings().delivery_fee if items else Decimal("0")
        quote = {
            "price": _price(item_total + delivery),
            "breakup": [
                _breakup("Item Total", item_total),
                _breakup("Delivery Charges", delivery),
            ],
            "ttl": "P1D",
        }
        return priced, quote

    async def select(self, request: OndcSelectRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        db = self._session(db)
        quoted = await self._quote(db, request.message.order.items)
        if isinstance(quoted, OndcResult):
            return quoted
        items, quote = quoted

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "select"),
            "message": {
                "order": {
                    "provider": request.message.order.provider,
                    "items": items,
                    "quote": quote,
                },
            },
        })

    async def init(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        db = self._session(db)
        order = request.message.order
        quoted = await self._quote(db, order.items)
        if isinstance(quoted, OndcResult):
            return quoted
        items, quote = quoted

        draft = order.model_dump(exclude_none=True)
        draft.update({"items": items, "quote": quote, "payment": _payment_terms()})

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "init"),
            "message": {"order": draft},
        })

    async def confirm(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        db = self._session(db)
        order = request.message.order
        quoted = await self._quote(db, order.items)
        if isinstance(quoted, OndcResult):
            return quoted
        items, quote = quoted

        now = _now()
        confirmed = order.model_dump(exclude_none=True)
        confirmed.update({
            "id": order.id or new_ondc_order_id(),
            "state": "Created",
            "items": items,
            "quote": quote,
            "payment": _payment_terms(),
            "created_at": now,
            "updated_at": now,
        })
        logger.info(f"ONDC order confirmed: {confirmed['id']}")

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "confirm"),
            "message": {"order": confirmed},
        })

    # -------------------------------------------------------------------------
    # Post-order
    # -------------------------------------------------------------------------

    async def _load_order(self, db: AsyncSession, order_id: str, customer: Optional[User]) -> Optional[Order]:
        """A local order owned by the customer; anyone else's reads as missing."""
        if customer is None:
            return None
        try:
            local_id = int(order_id)
        except ValueError:
            return None
        return await get_order(db, local_id, user_id=customer.id)

    async def status(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        db = self._session(db)
        order_id = request.message.order_id
        order = await self._load_order(db, order_id, customer)
        if order is None:
            return ondc_error(f"Order not found: {order_id}", status_code=404, error="Not found")

        breakup = [
            _breakup("Item Total", order.subtotal),
            _breakup("Delivery Charges", order.delivery_fee),
        ]
        if order.service_fee:
            breakup.append(_breakup("Service Fee", order.service_fee))

        updated = order.updated_at or order.created_at
        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "status"),
            "message": {
                "order": {
                    "id": str(order.id),
                    "state": ORDER_STATES[order.order_status],
                    "provider": {"id": str(order.kitchen_id)},
                    "items": [
                        {
                            "id": str(item.product_id),
                            "quantity": {"count": item.quantity},
                            "price": _price(item.price),
                        }
                        for item in order.items
                    ],
                    "fulfillment": {
                        "type": order.order_mode.value,
                        "state": {"descriptor": {"code": FULFILLMENT_STATES[order.order_status]}},
                    },
                    "quote": {"price": _price(order.total), "breakup": breakup},
                    "updated_at": updated.isoformat() if updated else _now(),
                },
            },
        })

    async def cancel(
        self,
        request: OndcOrderIdRequest,
        db: Optional[AsyncSession] = None,
        customer: Optional[User] = None,
    ) -> OndcResult:
        db = self._session(db)
        order_id = request.message.order_id
        order = await self._load_order(db, order_id, customer)
        if order is None:
            return ondc_error(f"Order not found: {order_id}", status_code=404, error="Not found")

        result = await cancel_order(db, order)
        if not result.success:
            return ondc_error(result.error_message, status_code=409, error="Conflict")

        cancellation: dict[str, Any] = {"cancelled_by": request.context.bap_id or "buyer"}
        if request.message.cancellation_reason_id:
            cancellation["reason"] = {"id": request.message.cancellation_reason_id}

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "cancel"),
            "message": {
                "order": {
                    "id": str(order.id),
                    "state": ORDER_STATES[OrderStatus.CANCELLED],
                    "cancellation": cancellation,
                    "updated_at": _now(),
                },
            },
        })

    async def update(self, request: OndcOrderRequest, db: Optional[AsyncSession] = None) -> OndcResult:
        updated = request.message.order.model_dump(exclude_none=True)
        updated["updated_at"] = _now()

        return OndcResult(status_code=200, body={
            "context": response_context(request.context, "update"),
            "message": {"order": updated},
        })
