"""
Public catalog: categories, products and delivery slots.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import DeliverySlot, Product
from app.schemas import (
    CategoryResponse,
    DeliverySlotResponse,
    ErrorResponse,
    ProductResponse,
)
from app.services import catalog

router = APIRouter(prefix="/api", tags=["Catalog"])


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", response_model=list[CategoryResponse])
async def list_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await catalog.list_categories(db)]


@router.get(
    "/categories/{slug}",
    response_model=CategoryResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_category(slug: str, db: AsyncSession = Depends(get_db)) -> CategoryResponse:
    category = await catalog.get_category_by_slug(db, slug)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category '{slug}' not found")
    return CategoryResponse.model_validate(category)


# =============================================================================
# PRODUCTS
# =============================================================================

@router.get("/products", response_model=list[ProductResponse], summary="List Products")
async def list_products(
    kitchen_id: Optional[int] = Query(None, alias="kitchenId"),
    category_slug: Optional[str] = Query(None, alias="categorySlug"),
    db: AsyncSession = Depends(get_db),
) -> list[ProductResponse]:
    """Filters combine: kitchenId AND categorySlug."""
    products = await catalog.list_products(db, kitchen_id=kitchen_id, category_slug=category_slug)
    return [ProductResponse.model_validate(p) for p in products]


@router.get("/products/featured", response_model=list[ProductResponse])
async def featured_products(db: AsyncSession = Depends(get_db)) -> list[ProductResponse]:
    return [ProductResponse.model_validate(p) for p in await catalog.featured_products(db)]


@router.get("/products/by-category", response_model=dict[int, list[ProductResponse]])
async def products_by_category(db: AsyncSession = Depends(get_db)) -> dict[int, list[ProductResponse]]:
    grouped = await catalog.products_by_category(db)
    return {
        category_id: [ProductResponse.model_validate(p) for p in products]
        for category_id, products in grouped.items()
    }


async def _product_or_404(db: AsyncSession, product_id: int) -> Product:
    product = await db.get(Product, product_id)
    if product is None:
        raise HTTPException(status_code=404, detail=f"Product #{product_id} not found")
    return product


@router.get(
    "/products/{product_id}",
    response_model=ProductResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)) -> ProductResponse:
    return ProductResponse.model_validate(await _product_or_404(db, product_id))


@router.get(
    "/products/{product_id}/related",
    response_model=list[ProductResponse],
    responses={404: {"model": ErrorResponse}},
)
async def related_products(product_id: int, db: AsyncSession = Depends(get_db)) -> list[ProductResponse]:
    product = await _product_or_404(db, product_id)
    return [ProductResponse.model_validate(p) for p in await catalog.related_products(db, product)]


# =============================================================================
# DELIVERY SLOTS
# =============================================================================

@router.get("/delivery-slots", response_model=list[DeliverySlotResponse], summary="Upcoming Delivery Slots")
async def list_delivery_slots(
    kitchen_id: Optional[int] = Query(None, alias="kitchenId"),
    db: AsyncSession = Depends(get_db),
) -> list[DeliverySlotResponse]:
    slots = await catalog.list_upcoming_slots(db, kitchen_id)
    return [DeliverySlotResponse.model_validate(s) for s in slots]


@router.get(
    "/delivery-slots/{slot_id}",
    response_model=DeliverySlotResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_delivery_slot(slot_id: int, db: AsyncSession = Depends(get_db)) -> DeliverySlotResponse:
    slot = await db.get(DeliverySlot, slot_id)
    if slot is None:
        raise HTTPException(status_code=404, detail=f"Delivery slot #{slot_id} not found")
    return DeliverySlotResponse.model_validate(slot)
