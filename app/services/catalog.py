"""
Catalog queries shared by the storefront, admin and ONDC routes.
"""

import logging
from collections import defaultdict
from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import get_settings
from app.models import Category, DeliverySlot, Kitchen, Product, utcnow
from app.services.geo import NearestKitchen, find_nearest_kitchen

logger = logging.getLogger(__name__)

FEATURED_CATEGORY_SLUGS = ("bestseller", "chef-special")


async def list_kitchens(db: AsyncSession, active_only: bool = True) -> Sequence[Kitchen]:
    query = select(Kitchen).order_by(Kitchen.id)
    if active_only:
        query = query.where(Kitchen.is_active.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


async def nearest_kitchen(db: AsyncSession, lat: float, lng: float) -> NearestKitchen:
    """Closest active kitchen within the configured delivery radius."""
    kitchens = await list_kitchens(db)
    nearest = find_nearest_kitchen(lat, lng, kitchens, get_settings().max_delivery_radius_km)
    logger.debug(f"Nearest kitchen to ({lat}, {lng}): {nearest}")
    return nearest


async def list_categories(db: AsyncSession) -> Sequence[Category]:
    result = await db.execute(select(Category).order_by(Category.id))
    return result.scalars().all()


async def get_category_by_slug(db: AsyncSession, slug: str) -> Optional[Category]:
    result = await db.execute(select(Category).where(Category.slug == slug))
    return result.scalar_one_or_none()


async def list_products(
    db: AsyncSession,
    kitchen_id: Optional[int] = None,
    category_slug: Optional[str] = None,
    in_stock_only: bool = False,
) -> Sequence[Product]:
    """Products filtered by kitchen and/or category slug (AND)."""
    query = select(Product).order_by(Product.id)
    if kitchen_id is not None:
        query = query.where(Product.kitchen_id == kitchen_id)
    if category_slug:
        query = query.where(Product.category_slug == category_slug)
    if in_stock_only:
        query = query.where(Product.in_stock.is_(True))
    result = await db.execute(query)
    return result.scalars().all()


async def featured_products(db: AsyncSession) -> Sequence[Product]:
    result = await db.execute(
        select(Product)
        .where(Product.category_slug.in_(FEATURED_CATEGORY_SLUGS))
        .order_by(Product.id)
    )
    return result.scalars().all()


async def products_by_category(db: AsyncSession) -> dict[int, list[Product]]:
    """Group products under their category id; uncategorised ones are left out."""
    result = await db.execute(
        select(Product).where(Product.category_id.is_not(None)).order_by(Product.id)
    )
    grouped: dict[int, list[Product]] = defaultdict(list)
    for product in result.scalars().all():
        grouped[product.category_id].append(product)
    return dict(grouped)


async def related_products(db: AsyncSession, product: Product, limit: int = 8) -> Sequence[Product]:
    """Other products in the same category."""
    if product.category_id is None:
        return []
    result = await db.execute(
        select(Product)
        .where(Product.category_id == product.category_id, Product.id != product.id)
        .order_by(Product.id)
        .limit(limit)
    )
    return result.scalars().all()


async def list_upcoming_slots(db: AsyncSession, kitchen_id: Optional[int] = None) -> Sequence[DeliverySlot]:
    """Slots that have not started yet, soonest first."""
    query = select(DeliverySlot).where(DeliverySlot.start_time >= utcnow())
    if kitchen_id is not None:
        query = query.where(DeliverySlot.kitchen_id == kitchen_id)
    result = await db.execute(query.order_by(DeliverySlot.start_time, DeliverySlot.id))
    return result.scalars().all()
