"""
Admin API

Catalog CRUD, order management and the live dashboard. Every route is
gated by require_admin (401 without a valid token, 403 for non-admins).

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional, Type

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import Base, get_db
from app.dependencies import require_admin
from app.models import (
    Category,
    DeliverySlot,
    Kitchen,
    Order,
    OrderItem,
    OrderStatus,
    Product,
)
from app.schemas import (
    AdminOrderResponse,
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    DashboardStats,
    DeliverySlotCreate,
    DeliverySlotResponse,
    DeliverySlotUpdate,
    ErrorResponse,
    KitchenCreate,
    KitchenResponse,
    KitchenUpdate,
    OrderListResponse,
    OrderStatusUpdate,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
)
from app.services import catalog
from app.services import orders as order_service
from app.services.dashboard import dashboard_stats

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(require_admin)],
    responses={401: {"model": ErrorResponse}, 403: {"model": ErrorResponse}},
)


# =============================================================================
# HELPERS
# =============================================================================

async def _get_or_404(db: AsyncSession, model: Type[Base], row_id: int, label: str) -> Any:
    row = await db.get(model, row_id)
    if row is None:
        raise HTTPException(status_code=404, detail=f"{label} #{row_id} not found")
    return row


async def _count(db: AsyncSession, query) -> int:
    return (await db.execute(query)).scalar() or 0


async def _require_kitchen(db: AsyncSession, kitchen_id: Optional[int]) -> None:
    if kitchen_id is not None and await db.get(Kitchen, kitchen_id) is None:
        raise HTTPException(status_code=400, detail=f"Kitchen #{kitchen_id} does not exist")


async def _category_slug_for(db: AsyncSession, category_id: Optional[int]) -> Optional[str]:
    if category_id is None:
        return None
    category = await db.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=400, detail=f"Category #{category_id} does not exist")
    return category.slug


async def _ensure_slug_free(db: AsyncSession, slug: str, exclude_id: Optional[int] = None) -> None:
    query = select(Category.id).where(Category.slug == slug)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise HTTPException(status_code=409, detail=f"Category slug '{slug}' already exists")


def _aware(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; they are stored as UTC
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


async def _save(db: AsyncSession, row: Any) -> Any:
    await db.commit()
    await db.refresh(row)
    return row


# =============================================================================
# KITCHENS
# =============================================================================

@router.get("/kitchens", response_model=list[KitchenResponse])
async def admin_list_kitchens(db: AsyncSession = Depends(get_db)) -> list[KitchenResponse]:
    kitchens = await catalog.list_kitchens(db, active_only=False)
    return [KitchenResponse.model_validate(k) for k in kitchens]


@router.post("/kitchens", status_code=201, response_model=KitchenResponse)
async def create_kitchen(data: KitchenCreate, db: AsyncSession = Depends(get_db)) -> KitchenResponse:
    kitchen = Kitchen(**data.model_dump())
    db.add(kitchen)
    await _save(db, kitchen)
    logger.info(f"Admin: created kitchen #{kitchen.id} ({kitchen.name})")
    return KitchenResponse.model_validate(kitchen)


@router.get("/kitchens/{kitchen_id}", response_model=KitchenResponse)
async def admin_get_kitchen(kitchen_id: int, db: AsyncSession = Depends(get_db)) -> KitchenResponse:
    return KitchenResponse.model_validate(await _get_or_404(db, Kitchen, kitchen_id, "Kitchen"))


@router.put("/kitchens/{kitchen_id}", response_model=KitchenResponse)
async def update_kitchen(
    kitchen_id: int,
    data: KitchenUpdate,
    db: AsyncSession = Depends(get_db),
) -> KitchenResponse:
    kitchen = await _get_or_404(db, Kitchen, kitchen_id, "Kitchen")
    for field, value in data.model_dump(exclude_unset=True).items():
        setattr(kitchen, field, value)
    return KitchenResponse.model_validate(await _save(db, kitchen))


@router.delete("/kitchens/{kitchen_id}", status_code=204, responses={409: {"model": ErrorResponse}})
async def delete_kitchen(kitchen_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    kitchen = await _get_or_404(db, Kitchen, kitchen_id, "Kitchen")

    if await _count(db, select(func.count(Order.id)).where(Order.kitchen_id == kitchen_id)):
        raise HTTPException(
            status_code=409,
            detail="Kitchen has orders; deactivate it instead of deleting",
        )

    await db.execute(
        update(Product).where(Product.kitchen_id == kitchen_id).values(kitchen_id=None)
    )
    await db.execute(delete(DeliverySlot).where(DeliverySlot.kitchen_id == kitchen_id))
    await db.delete(kitchen)
    await db.commit()
    logger.info(f"Admin: deleted kitchen #{kitchen_id}")
    return Response(status_code=204)


# =============================================================================
# CATEGORIES
# =============================================================================

@router.get("/categories", response_model=list[CategoryResponse])
async def admin_list_categories(db: AsyncSession = Depends(get_db)) -> list[CategoryResponse]:
    return [CategoryResponse.model_validate(c) for c in await catalog.list_categories(db)]


@router.post(
    "/categories",
    status_code=201,
    response_model=CategoryResponse,
    responses={409: {"model": ErrorResponse}},
)
async def create_category(data: CategoryCreate, db: AsyncSession = Depends(get_db)) -> CategoryResponse:
    await _ensure_slug_free(db, data.slug)
    category = Category(**data.model_dump())
    db.add(category)
    await _save(db, category)
    logger.info(f"Admin: created category '{category.slug}'")
    return CategoryResponse.model_validate(category)


@router.get("/categories/{category_id}", response_model=CategoryResponse)
async def admin_get_category(category_id: int, db: AsyncSession = Depends(get_db)) -> CategoryResponse:
    return CategoryResponse.model_validate(await _get_or_404(db, Category, category_id, "Category"))


@router.put(
    "/categories/{category_id}",
    response_model=CategoryResponse,
    responses={409: {"model": ErrorResponse}},
)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    db: AsyncSession = Depends(get_db),
) -> CategoryResponse:
    category = await _get_or_404(db, Category, category_id, "Category")
    changes = data.model_dump(exclude_unset=True)

    new_slug = changes.get("slug")
    if new_slug and new_slug != category.slug:
        await _ensure_slug_free(db, new_slug, exclude_id=category_id)
        # Products carry the slug for filtering
        await db.execute(
            update(Product).where(Product.category_id == category_id).values(category_slug=new_slug)
        )

    for field, value in changes.items():
        setattr(category, field, value)
    return CategoryResponse.model_validate(await _save(db, category))


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(category_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    category = await _get_or_404(db, Category, category_id, "Category")
    await db.execute(
        update(Product)
        .where(Product.category_id == category_id)
        .values(category_id=None, category_slug=None)
    )
    await db.delete(category)
    await db.commit()
    logger.info(f"Admin: deleted category #{category_id}")
    return Response(status_code=204)


# =============================================================================
# PRODUCTS
# =============================================================================

@router.get("/products", response_model=list[ProductResponse])
async def admin_list_products(
    kitchen_id: Optional[int] = Query(None, alias="kitchenId"),
    db: AsyncSession = Depends(get_db),
) -> list[ProductResponse]:
    products = await catalog.list_products(db, kitchen_id=kitchen_id)
    return [ProductResponse.model_validate(p) for p in products]


@router.post(
    "/products",
    status_code=201,
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}},
)
async def create_product(data: ProductCreate, db: AsyncSession = Depends(get_db)) -> ProductResponse:
    await _require_kitchen(db, data.kitchen_id)
    slug = await _category_slug_for(db, data.category_id)

    product = Product(**data.model_dump(), category_slug=slug)
    db.add(product)
    await _save(db, product)
    logger.info(f"Admin: created product #{product.id} ({product.name})")
    return ProductResponse.model_validate(product)


@router.get("/products/{product_id}", response_model=ProductResponse)
async def admin_get_product(product_id: int, db: AsyncSession = Depends(get_db)) -> ProductResponse:
    return ProductResponse.model_validate(await _get_or_404(db, Product, product_id, "Product"))


@router.put(
    "/products/{product_id}",
    response_model=ProductResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_product(
    product_id: int,
    data: ProductUpdate,
    db: AsyncSession = Depends(get_db),
) -> ProductResponse:
    product = await _get_or_404(db, Product, product_id, "Product")
    changes = data.model_dump(exclude_unset=True)

    if "kitchen_id" in changes:
        await _require_kitchen(db, changes["kitchen_id"])
    if "category_id" in changes:
        product.category_slug = await _category_slug_for(db, changes["category_id"])

    for field, value in changes.items():
        setattr(product, field, value)
    return ProductResponse.model_validate(await _save(db, product))


@router.delete("/products/{product_id}", status_code=204, responses={409: {"model": ErrorResponse}})
async def delete_product(product_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    product = await _get_or_404(db, Product, product_id, "Product")

    if await _count(db, select(func.count(OrderItem.id)).where(OrderItem.product_id == product_id)):
        raise HTTPException(
            status_code=409,
            detail="Product appears in orders; mark it out of stock instead",
        )

    await db.delete(product)
    await db.commit()
    logger.info(f"Admin: deleted product #{product_id}")
    return Response(status_code=204)


# =============================================================================
# DELIVERY SLOTS
# =============================================================================

@router.get("/delivery-slots", response_model=list[DeliverySlotResponse])
async def admin_list_slots(
    kitchen_id: Optional[int] = Query(None, alias="kitchenId"),
    db: AsyncSession = Depends(get_db),
) -> list[DeliverySlotResponse]:
    query = select(DeliverySlot).order_by(DeliverySlot.start_time, DeliverySlot.id)
    if kitchen_id is not None:
        query = query.where(DeliverySlot.kitchen_id == kitchen_id)
    slots = (await db.execute(query)).scalars().all()
    return [DeliverySlotResponse.model_validate(s) for s in slots]


@router.post(
    "/delivery-slots",
    status_code=201,
    response_model=DeliverySlotResponse,
    responses={400: {"model": ErrorResponse}},
)
async def create_slot(data: DeliverySlotCreate, db: AsyncSession = Depends(get_db)) -> DeliverySlotResponse:
    await _require_kitchen(db, data.kitchen_id)
    slot = DeliverySlot(**data.model_dump(), booked_count=0)
    db.add(slot)
    await _save(db, slot)
    logger.info(f"Admin: created delivery slot #{slot.id} for kitchen #{slot.kitchen_id}")
    return DeliverySlotResponse.model_validate(slot)


@router.get("/delivery-slots/{slot_id}", response_model=DeliverySlotResponse)
async def admin_get_slot(slot_id: int, db: AsyncSession = Depends(get_db)) -> DeliverySlotResponse:
    return DeliverySlotResponse.model_validate(
        await _get_or_404(db, DeliverySlot, slot_id, "Delivery slot")
    )


@router.put(
    "/delivery-slots/{slot_id}",
    response_model=DeliverySlotResponse,
    responses={400: {"model": ErrorResponse}},
)
async def update_slot(
    slot_id: int,
    data: DeliverySlotUpdate,
    db: AsyncSession = Depends(get_db),
) -> DeliverySlotResponse:
    slot = await _get_or_404(db, DeliverySlot, slot_id, "Delivery slot")
    changes = data.model_dump(exclude_unset=True)

    if "kitchen_id" in changes:
        if changes["kitchen_id"] is None:
            raise HTTPException(status_code=400, detail="kitchenId cannot be null")
        await _require_kitchen(db, changes["kitchen_id"])

    start = changes.get("start_time", slot.start_time)
    end = changes.get("end_time", slot.end_time)
    if _aware(end) <= _aware(start):
        raise HTTPException(status_code=400, detail="endTime must be after startTime")

    capacity = changes.get("capacity")
    if capacity is not None and capacity < slot.booked_count:
        raise HTTPException(
            status_code=400,
            detail=f"Capacity cannot drop below the {slot.booked_count} seats already booked",
        )

    for field, value in changes.items():
        setattr(slot, field, value)
    return DeliverySlotResponse.model_validate(await _save(db, slot))


@router.delete("/delivery-slots/{slot_id}", status_code=204, responses={409: {"model": ErrorResponse}})
async def delete_slot(slot_id: int, db: AsyncSession = Depends(get_db)) -> Response:
    slot = await _get_or_404(db, DeliverySlot, slot_id, "Delivery slot")

    if await _count(db, select(func.count(Order.id)).where(Order.delivery_slot_id == slot_id)):
        raise HTTPException(status_code=409, detail="Delivery slot has orders")

    await db.delete(slot)
    await db.commit()
    logger.info(f"Admin: deleted delivery slot #{slot_id}")
    return Response(status_code=204)


# =============================================================================
# ORDERS
# =============================================================================

@router.get("/orders", response_model=OrderListResponse, summary="List All Orders")
async def admin_list_orders(
    status: Optional[OrderStatus] = Query(None),
    kitchen_id: Optional[int] = Query(None, alias="kitchenId"),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
) -> OrderListResponse:
    total, orders = await order_service.list_orders(
        db, status=status, kitchen_id=kitchen_id, skip=skip, limit=limit
    )
    return OrderListResponse(
        total=total,
        orders=[AdminOrderResponse.model_validate(o) for o in orders],
    )


@router.get("/orders/{order_id}", response_model=AdminOrderResponse)
async def admin_get_order(order_id: int, db: AsyncSession = Depends(get_db)) -> AdminOrderResponse:
    order = await order_service.get_order(db, order_id, include_user=True)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return AdminOrderResponse.model_validate(order)


@router.patch(
    "/orders/{order_id}/status",
    response_model=AdminOrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Change Order Status",
)
async def update_order_status(
    order_id: int,
    data: OrderStatusUpdate,
    db: AsyncSession = Depends(get_db),
) -> AdminOrderResponse:
    order = await order_service.get_order(db, order_id, include_user=True)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    result = await order_service.change_status(db, order, data.status)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.error_message)

    return AdminOrderResponse.model_validate(result.order)


# =============================================================================
# DASHBOARD
# =============================================================================

@router.get("/dashboard", response_model=DashboardStats, summary="Dashboard Statistics")
async def dashboard(db: AsyncSession = Depends(get_db)) -> DashboardStats:
    return await dashboard_stats(db)
