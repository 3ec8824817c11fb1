"""
Order pricing.

All money is Decimal. The service fee rounds to whole currency units,
half up, then is carried at two decimal places like every other amount.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional, Union

from app.core.config import get_settings
from app.models import OrderMode

CENT = Decimal("0.01")
WHOLE = Decimal("1")

# Distance-based fee table: (max km, fee)
BASE_FREE_RADIUS_KM = 1.0
PLATFORM_FEE = Decimal("2")
DISTANCE_ZONES = [
    (3.0, Decimal("25")),
    (5.0, Decimal("40")),
    (8.0, Decimal("60")),
    (12.0, Decimal("75")),
]
MAX_ZONE_FEE = Decimal("75")


@dataclass
class OrderTotals:
    subtotal: Decimal
    delivery_fee: Decimal
    service_fee: Decimal
    total: Decimal

    def to_dict(self) -> dict:
        return {
            "subtotal": str(self.subtotal),
            "delivery_fee": str(self.delivery_fee),
            "service_fee": str(self.service_fee),
            "total": str(self.total),
        }


def money(value: Union[Decimal, int, float, str]) -> Decimal:
    """Coerce to a two-place Decimal."""
    return Decimal(str(value)).quantize(CENT, rounding=ROUND_HALF_UP)


def delivery_fee_for(mode: Union[OrderMode, str], flat_fee: Optional[Decimal] = None) -> Decimal:
    """Flat fee for delivery orders, zero for takeaway and dine-in."""
    if OrderMode(mode) != OrderMode.DELIVERY:
        return money(0)
    if flat_fee is None:
        flat_fee = get_settings().delivery_fee
    return money(flat_fee)


def service_fee_for(subtotal: Decimal, rate: Optional[Decimal] = None) -> Decimal:
    if rate is None:
        rate = get_settings().service_fee_rate
    fee = (Decimal(subtotal) * Decimal(str(rate))).quantize(WHOLE, rounding=ROUND_HALF_UP)
    return money(fee)


def compute_order_totals(subtotal: Decimal, mode: Union[OrderMode, str]) -> OrderTotals:
    """total = subtotal + delivery fee (by mode) + rounded service fee."""
    subtotal = money(subtotal)
    delivery_fee = delivery_fee_for(mode)
    service_fee = service_fee_for(subtotal)
    return OrderTotals(
        subtotal=subtotal,
        delivery_fee=delivery_fee,
        service_fee=service_fee,
        total=subtotal + delivery_fee + service_fee,
    )


def _zone_fee(distance_km: float) -> Decimal:
    for max_km, fee in DISTANCE_ZONES:
        if distance_km <= max_km:
            return fee
    return MAX_ZONE_FEE


def calculate_distance_delivery_fee(
    distance_km: float,
    order_value: Decimal,
    has_subscription: bool = False,
) -> Decimal:
    """
    Distance-based delivery quote.

    Inside the free radius only the platform fee applies. Beyond it,
    subscribers and larger baskets get reduced rates within 5 km and a
    capped rate further out; everyone else pays the zone rate.
    """
    order_value = Decimal(order_value)
    fee = Decimal("0")

    if distance_km > BASE_FREE_RADIUS_KM:
        near = distance_km <= 5.0
        if has_subscription and near:
            fee = Decimal("0")
        elif order_value >= 500:
            fee = Decimal("0") if near else Decimal("45")
        elif order_value >= 300:
            fee = Decimal("15") if near else Decimal("50")
        else:
            fee = _zone_fee(distance_km)

    return money(fee + PLATFORM_FEE)
