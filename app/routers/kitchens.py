"""
Kitchen listing and nearest-kitchen lookup.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.models import Kitchen
from app.schemas import (
    AddressLookupRequest,
    ErrorResponse,
    KitchenResponse,
    NearestKitchenResponse,
)
from app.services import catalog
from app.services.geo import NearestKitchen, get_geo_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/kitchens", tags=["Kitchens"])

NO_KITCHEN_MESSAGE = "No kitchen delivers to this location"


def _nearest_or_404(nearest: NearestKitchen) -> NearestKitchenResponse:
    if nearest.kitchen is None:
        detail = NO_KITCHEN_MESSAGE
        if nearest.distance_km is not None:
            detail = f"{NO_KITCHEN_MESSAGE} (nearest kitchen is {nearest.distance_km:.1f} km away)"
        raise HTTPException(status_code=404, detail=detail)

    return NearestKitchenResponse(
        kitchen=KitchenResponse.model_validate(nearest.kitchen),
        distance_km=round(nearest.distance_km, 2),
    )


@router.get("", response_model=list[KitchenResponse], summary="List Active Kitchens")
async def list_kitchens(db: AsyncSession = Depends(get_db)) -> list[KitchenResponse]:
    kitchens = await catalog.list_kitchens(db)
    return [KitchenResponse.model_validate(k) for k in kitchens]


@router.get(
    "/nearest",
    response_model=NearestKitchenResponse,
    responses={404: {"model": ErrorResponse}},
    summary="Nearest Kitchen by Coordinates",
)
async def nearest_kitchen(
    lat: float = Query(..., ge=-90, le=90),
    lng: float = Query(..., ge=-180, le=180),
    db: AsyncSession = Depends(get_db),
) -> NearestKitchenResponse:
    return _nearest_or_404(await catalog.nearest_kitchen(db, lat, lng))


@router.post(
    "/nearest",
    response_model=NearestKitchenResponse,
    responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
    summary="Nearest Kitchen by Address",
)
async def nearest_kitchen_by_address(
    data: AddressLookupRequest,
    db: AsyncSession = Depends(get_db),
) -> NearestKitchenResponse:
    """Geocode the address, then resolve the nearest kitchen."""
    geo_result = await get_geo_service().geocode_address(data.address, data.city)

    if not geo_result.success:
        raise HTTPException(
            status_code=400,
            detail=geo_result.error_message or "Could not locate address",
        )

    nearest = await catalog.nearest_kitchen(db, geo_result.latitude, geo_result.longitude)
    return _nearest_or_404(nearest)


@router.get(
    "/{kitchen_id}",
    response_model=KitchenResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_kitchen(kitchen_id: int, db: AsyncSession = Depends(get_db)) -> KitchenResponse:
    kitchen = await db.get(Kitchen, kitchen_id)
    if kitchen is None:
        raise HTTPException(status_code=404, detail=f"Kitchen #{kitchen_id} not found")
    return KitchenResponse.model_validate(kitchen)
