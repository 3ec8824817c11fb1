"""
Distance-based delivery fee quote.
"""

from fastapi import APIRouter

from app.schemas import DeliveryFeeRequest, DeliveryFeeResponse
from app.services.pricing import PLATFORM_FEE, calculate_distance_delivery_fee

router = APIRouter(prefix="/api", tags=["Pricing"])


@router.post("/delivery-fee", response_model=DeliveryFeeResponse, summary="Quote Delivery Fee")
async def delivery_fee(data: DeliveryFeeRequest) -> DeliveryFeeResponse:
    fee = calculate_distance_delivery_fee(data.distance, data.order_value, data.has_subscription)
    return DeliveryFeeResponse(
        delivery_fee=fee,
        distance=data.distance,
        free_delivery=fee <= PLATFORM_FEE,
    )
