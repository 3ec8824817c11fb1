"""
Order Service

Checkout, order queries and the status workflow.

Placement runs in one transaction: the order row, its item rows (with
unit prices snapshotted from the live catalog) and the delivery-slot
booking either all persist or none do. The slot booking is a guarded
UPDATE that only succeeds while booked_count < capacity, so concurrent
checkouts cannot overbook a slot. Cancelling an order gives its slot
booking back.

Author: Khalil Bannouri
Version: 4.0.0
"""

import json
import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Optional

from kombu.exceptions import OperationalError as BrokerError
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.models import (
    DeliverySlot,
    Kitchen,
    Order,
    OrderItem,
    OrderMode,
    OrderStatus,
    Product,
    User,
)
from app.schemas import OrderCreate
from app.services.pricing import compute_order_totals
from app.tasks import export_order_to_excel, send_order_confirmation

logger = logging.getLogger(__name__)


# =============================================================================
# STATUS WORKFLOW
# =============================================================================

ALLOWED_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.PENDING: frozenset({OrderStatus.CONFIRMED, OrderStatus.CANCELLED}),
    OrderStatus.CONFIRMED: frozenset({OrderStatus.PREPARING, OrderStatus.CANCELLED}),
    OrderStatus.PREPARING: frozenset({OrderStatus.READY, OrderStatus.CANCELLED}),
    OrderStatus.READY: frozenset({
        OrderStatus.OUT_FOR_DELIVERY,
        OrderStatus.COMPLETED,
        OrderStatus.CANCELLED,
    }),
    OrderStatus.OUT_FOR_DELIVERY: frozenset({OrderStatus.DELIVERED, OrderStatus.CANCELLED}),
    OrderStatus.DELIVERED: frozenset(),
    OrderStatus.COMPLETED: frozenset(),
    OrderStatus.CANCELLED: frozenset(),
}

CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def can_transition(mode: OrderMode, current: OrderStatus, new: OrderStatus) -> bool:
    """Whether an order in ``mode`` may move from ``current`` to ``new``."""
    if new not in ALLOWED_TRANSITIONS[current]:
        return False
    # Only delivery orders go out for delivery; the rest complete at the counter
    if current == OrderStatus.READY:
        if new == OrderStatus.OUT_FOR_DELIVERY:
            return mode == OrderMode.DELIVERY
        if new == OrderStatus.COMPLETED:
            return mode != OrderMode.DELIVERY
    return True


# =============================================================================
# RESULTS
# =============================================================================

@dataclass
class OrderPlacementResult:
    """
    Result from placing an order.

    error_code is one of: invalid_kitchen, address_required,
    invalid_slot, product_not_found, product_unavailable,
    wrong_kitchen, slot_full.
    """
    success: bool
    order: Optional[Order] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


@dataclass
class StatusChangeResult:
    success: bool
    order: Optional[Order] = None
    error_message: Optional[str] = None
    error_code: Optional[str] = None


def _rejected(message: str, code: str) -> OrderPlacementResult:
    logger.info(f"Order rejected ({code}): {message}")
    return OrderPlacementResult(success=False, error_message=message, error_code=code)


# =============================================================================
# QUERIES
# =============================================================================

def order_load_options(include_user: bool = False) -> list:
    options = [
        selectinload(Order.items).selectinload(OrderItem.product),
        selectinload(Order.kitchen),
        selectinload(Order.delivery_slot),
    ]
    if include_user:
        options.append(selectinload(Order.user))
    return options


async def get_order(
    db: AsyncSession,
    order_id: int,
    user_id: Optional[int] = None,
    include_user: bool = False,
) -> Optional[Order]:
    """Load an order with its relations; scoped to ``user_id`` when given."""
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(*order_load_options(include_user))
        .execution_options(populate_existing=True)
    )
    if user_id is not None:
        query = query.where(Order.user_id == user_id)
    result = await db.execute(query)
    return result.scalar_one_or_none()


async def list_user_orders(db: AsyncSession, user_id: int) -> list[Order]:
    result = await db.execute(
        select(Order)
        .where(Order.user_id == user_id)
        .options(*order_load_options())
        .order_by(Order.created_at.desc(), Order.id.desc())
    )
    return list(result.scalars().all())


async def list_orders(
    db: AsyncSession,
    status: Optional[OrderStatus] = None,
    kitchen_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[int, list[Order]]:
    """Paginated admin listing, newest first."""
    query = select(Order).options(*order_load_options(include_user=True))
    count_query = select(func.count(Order.id))

    if status is not None:
        query = query.where(Order.order_status == status)
        count_query = count_query.where(Order.order_status == status)
    if kitchen_id is not None:
        query = query.where(Order.kitchen_id == kitchen_id)
        count_query = count_query.where(Order.kitchen_id == kitchen_id)

    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Order.created_at.desc(), Order.id.desc()).offset(skip).limit(limit)
    result = await db.execute(query)
    return total, list(result.scalars().all())


# =============================================================================
# PLACEMENT
# =============================================================================

async def place_order(db: AsyncSession, user: User, data: OrderCreate) -> OrderPlacementResult:
    """
    Validate a checkout request, price it server-side and persist it.

    Nothing is written unless every check passes and the slot (if any)
    still has room.
    """
    kitchen = await db.get(Kitchen, data.kitchen_id)
    if kitchen is None or not kitchen.is_active:
        return _rejected(f"Kitchen {data.kitchen_id} is not available", "invalid_kitchen")

    delivery_address = (data.delivery_address or "").strip() or None
    if data.order_mode == OrderMode.DELIVERY and not delivery_address:
        return _rejected("Delivery address is required for delivery orders", "address_required")

    slot = None
    if data.delivery_slot_id is not None:
        if data.order_mode != OrderMode.DELIVERY:
            return _rejected("Delivery slots only apply to delivery orders", "invalid_slot")
        slot = await db.get(DeliverySlot, data.delivery_slot_id)
        if slot is None or slot.kitchen_id != kitchen.id:
            return _rejected(f"Delivery slot {data.delivery_slot_id} not found", "invalid_slot")

    product_ids = {item.product_id for item in data.items}
    product_rows = await db.execute(select(Product).where(Product.id.in_(product_ids)))
    products = {p.id: p for p in product_rows.scalars().all()}

    subtotal = Decimal("0")
    for item in data.items:
        product = products.get(item.product_id)
        if product is None:
            return _rejected(f"Product {item.product_id} not found", "product_not_found")
        if not product.in_stock:
            return _rejected(f"{product.name} is out of stock", "product_unavailable")
        if product.kitchen_id is not None and product.kitchen_id != kitchen.id:
            return _rejected(f"{product.name} is not served by {kitchen.name}", "wrong_kitchen")
        subtotal += Decimal(product.price) * item.quantity

    totals = compute_order_totals(subtotal, data.order_mode)

    order = Order(
        user_id=user.id,
        kitchen_id=kitchen.id,
        order_mode=data.order_mode,
        order_status=OrderStatus.PENDING,
        delivery_slot_id=slot.id if slot else None,
        delivery_address=delivery_address,
        subtotal=totals.subtotal,
        delivery_fee=totals.delivery_fee,
        service_fee=totals.service_fee,
        total=totals.total,
        items=[
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                price=products[item.product_id].price,
                notes=item.notes,
            )
            for item in data.items
        ],
    )

    try:
        db.add(order)
        await db.flush()

        if slot is not None:
            booked = await db.execute(
                update(DeliverySlot)
                .where(
                    DeliverySlot.id == slot.id,
                    DeliverySlot.booked_count < DeliverySlot.capacity,
                )
                .values(booked_count=DeliverySlot.booked_count + 1)
                .execution_options(synchronize_session=False)
            )
            if booked.rowcount != 1:
                await db.rollback()
                return _rejected("Delivery slot is full", "slot_full")

        await db.commit()
    except SQLAlchemyError:
        await db.rollback()
        logger.exception(f"Error placing order for user #{user.id}")
        raise

    logger.info(
        f"Order #{order.id} placed by user #{user.id} "
        f"({order.order_mode.value}, total {order.total})"
    )

    return OrderPlacementResult(success=True, order=await get_order(db, order.id, include_user=True))


# =============================================================================
# STATUS CHANGES
# =============================================================================

async def release_slot(db: AsyncSession, slot_id: int) -> None:
    """Give back one booking; never goes below zero."""
    await db.execute(
        update(DeliverySlot)
        .where(DeliverySlot.id == slot_id, DeliverySlot.booked_count > 0)
        .values(booked_count=DeliverySlot.booked_count - 1)
        .execution_options(synchronize_session=False)
    )


async def change_status(db: AsyncSession, order: Order, new_status: OrderStatus) -> StatusChangeResult:
    """
    Move an order along the workflow.

    The write is conditional on the status we validated against, so of two
    concurrent changes from the same status only one lands (and only that
    one gives a cancelled order's slot booking back).
    """
    current = order.order_status
    rejected = StatusChangeResult(
        success=False,
        order=order,
        error_message=f"Cannot move order from {current.value} to {new_status.value}",
        error_code="invalid_transition",
    )
    if not can_transition(order.order_mode, current, new_status):
        return rejected

    moved = await db.execute(
        update(Order)
        .where(Order.id == order.id, Order.order_status == current)
        .values(order_status=new_status)
        .execution_options(synchronize_session=False)
    )
    if moved.rowcount != 1:
        await db.rollback()
        logger.warning(f"Order #{order.id}: status changed concurrently, {new_status.value} not applied")
        return rejected

    if new_status == OrderStatus.CANCELLED and order.delivery_slot_id is not None:
        await release_slot(db, order.delivery_slot_id)

    await db.commit()
    logger.info(f"Order #{order.id}: {current.value} -> {new_status.value}")

    return StatusChangeResult(success=True, order=await get_order(db, order.id, include_user=True))


async def cancel_order(db: AsyncSession, order: Order) -> StatusChangeResult:
    """Customer-initiated cancellation, allowed before the kitchen starts cooking."""
    if order.order_status not in CUSTOMER_CANCELLABLE:
        return StatusChangeResult(
            success=False,
            order=order,
            error_message=f"Order #{order.id} can no longer be cancelled",
            error_code="invalid_transition",
        )
    return await change_status(db, order, OrderStatus.CANCELLED)


# =============================================================================
# BACKGROUND SIDE EFFECTS
# =============================================================================

def order_export_payload(order: Order) -> dict[str, Any]:
    """Flatten an order (relations loaded) for the Excel export task."""
    slot = order.delivery_slot
    return {
        "order_id": order.id,
        "created_at": order.created_at.isoformat() if order.created_at else None,
        "user_phone": order.user.phone if order.user else None,
        "kitchen_name": order.kitchen.name if order.kitchen else None,
        "order_mode": order.order_mode.value,
        "order_status": order.order_status.value,
        "delivery_address": order.delivery_address,
        "delivery_slot": (
            f"{slot.start_time.isoformat()} - {slot.end_time.isoformat()}" if slot else None
        ),
        "items": json.dumps([
            {
                "product": item.product.name if item.product else item.product_id,
                "quantity": item.quantity,
                "price": str(item.price),
            }
            for item in order.items
        ]),
        "subtotal": str(order.subtotal),
        "delivery_fee": str(order.delivery_fee),
        "service_fee": str(order.service_fee),
        "total": str(order.total),
    }


def queue_order_tasks(order: Order) -> None:
    """Queue the Excel export and the confirmation SMS for a placed order."""
    payload = order_export_payload(order)
    try:
        export_order_to_excel.delay(payload)
        send_order_confirmation.delay({
            "order_id": order.id,
            "customer_phone": order.user.phone,
            "customer_name": order.user.name,
            "customer_email": order.user.email,
            "total": payload["total"],
            "order_mode": payload["order_mode"],
            "kitchen_name": payload["kitchen_name"],
            "delivery_address": payload["delivery_address"],
            "delivery_window": payload["delivery_slot"],
        })
    except BrokerError as e:
        # The order is committed; a missed export is recoverable from the DB
        logger.error(f"Could not queue tasks for Order #{order.id}: {e}")
