"""
Admin dashboard aggregates, computed live from the database.
"""

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models import Order, OrderStatus, Product, User
from app.schemas import (
    CustomerStats,
    DashboardStats,
    OrderStats,
    ProductStats,
    RevenueStats,
)
from app.services.pricing import money


def _today_start() -> datetime:
    return datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)


async def _scalar(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


async def dashboard_stats(db: AsyncSession) -> DashboardStats:
    today = _today_start()
    count_orders = select(func.count(Order.id))

    total_orders = await _scalar(db, count_orders)
    pending = await _scalar(db, count_orders.where(Order.order_status == OrderStatus.PENDING))
    delivered = await _scalar(
        db,
        count_orders.where(Order.order_status.in_([OrderStatus.DELIVERED, OrderStatus.COMPLETED])),
    )
    cancelled = await _scalar(db, count_orders.where(Order.order_status == OrderStatus.CANCELLED))

    # Revenue excludes cancelled orders
    billable = Order.order_status != OrderStatus.CANCELLED
    revenue_total = await _scalar(db, select(func.sum(Order.total)).where(billable))
    revenue_today = await _scalar(
        db, select(func.sum(Order.total)).where(billable, Order.created_at >= today)
    )
    billable_count = await _scalar(db, count_orders.where(billable))
    average = Decimal(revenue_total) / billable_count if billable_count else Decimal("0")

    count_products = select(func.count(Product.id))
    products_total = await _scalar(db, count_products)
    products_in_stock = await _scalar(db, count_products.where(Product.in_stock.is_(True)))

    # Admin accounts are staff, not customers
    count_customers = select(func.count(User.id)).where(User.is_admin.is_(False))
    customers_total = await _scalar(db, count_customers)
    customers_today = await _scalar(db, count_customers.where(User.created_at >= today))

    return DashboardStats(
        orders=OrderStats(
            total=total_orders,
            pending=pending,
            delivered=delivered,
            cancelled=cancelled,
        ),
        revenue=RevenueStats(
            total=money(revenue_total),
            today=money(revenue_today),
            average_order_value=money(average),
        ),
        products=ProductStats(
            total=products_total,
            in_stock=products_in_stock,
            out_of_stock=products_total - products_in_stock,
        ),
        customers=CustomerStats(
            total=customers_total,
            new_today=customers_today,
        ),
    )
