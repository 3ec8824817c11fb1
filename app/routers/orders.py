"""
Customer checkout and order history.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.dependencies import get_current_user
from app.models import User
from app.schemas import (
    ErrorResponse,
    OrderCreate,
    OrderCreateResponse,
    OrderResponse,
)
from app.services import orders as order_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/orders", tags=["Orders"])

# Placement error codes that are conflicts rather than bad input
CONFLICT_CODES = {"slot_full"}


@router.post(
    "",
    status_code=201,
    response_model=OrderCreateResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
    },
    summary="Place Order",
)
async def create_order(
    data: OrderCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderCreateResponse:
    """
    Check out the basket.

    Prices come from the catalog, not the client. The order, its items
    and the delivery-slot booking are written in one transaction; a
    full slot answers 409 and leaves nothing behind.
    """
    logger.info(f"Creating order for user #{user.id} at kitchen #{data.kitchen_id}")

    result = await order_service.place_order(db, user, data)

    if not result.success:
        status_code = 409 if result.error_code in CONFLICT_CODES else 400
        raise HTTPException(status_code=status_code, detail=result.error_message)

    order_service.queue_order_tasks(result.order)

    return OrderCreateResponse(
        success=True,
        order=OrderResponse.model_validate(result.order),
        message="Order placed successfully!",
    )


@router.get("", response_model=list[OrderResponse], summary="My Orders")
async def list_my_orders(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> list[OrderResponse]:
    orders = await order_service.list_user_orders(db, user.id)
    return [OrderResponse.model_validate(o) for o in orders]


@router.get(
    "/{order_id}",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_my_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await order_service.get_order(db, order_id, user_id=user.id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")
    return OrderResponse.model_validate(order)


@router.post(
    "/{order_id}/cancel",
    response_model=OrderResponse,
    responses={404: {"model": ErrorResponse}, 409: {"model": ErrorResponse}},
    summary="Cancel My Order",
)
async def cancel_my_order(
    order_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> OrderResponse:
    order = await order_service.get_order(db, order_id, user_id=user.id)
    if order is None:
        raise HTTPException(status_code=404, detail=f"Order #{order_id} not found")

    result = await order_service.cancel_order(db, order)
    if not result.success:
        raise HTTPException(status_code=409, detail=result.error_message)

    return OrderResponse.model_validate(result.order)
