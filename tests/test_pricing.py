from decimal import Decimal

import pytest

from app.models import OrderMode
from app.services.pricing import (
    calculate_distance_delivery_fee,
    compute_order_totals,
    delivery_fee_for,
    service_fee_for,
)


def test_delivery_totals():
    totals = compute_order_totals(Decimal("570.00"), OrderMode.DELIVERY)

    assert totals.subtotal == Decimal("570.00")
    assert totals.delivery_fee == Decimal("49.00")
    # 570 * 5% = 28.5 -> 29
    assert totals.service_fee == Decimal("29.00")
    assert totals.total == Decimal("648.00")


@pytest.mark.parametrize("mode", [OrderMode.TAKEAWAY, OrderMode.DINE_IN])
def test_no_delivery_fee_outside_delivery(mode):
    totals = compute_order_totals(Decimal("320.00"), mode)

    assert totals.delivery_fee == 0
    assert totals.service_fee == Decimal("16.00")
    assert totals.total == Decimal("336.00")


def test_total_identity_holds():
    for cents in (0, 1, 999, 12345, 99999):
        subtotal = Decimal(cents) / 100
        for mode in OrderMode:
            t = compute_order_totals(subtotal, mode)
            assert t.total == t.subtotal + t.delivery_fee + t.service_fee


def test_service_fee_rounds_half_up_to_whole_units():
    assert service_fee_for(Decimal("10")) == Decimal("1.00")  # 0.5 -> 1
    assert service_fee_for(Decimal("9")) == Decimal("0.00")   # 0.45 -> 0
    assert service_fee_for(Decimal("250"), rate=Decimal("0.10")) == Decimal("25.00")


def test_delivery_fee_accepts_mode_strings():
    assert delivery_fee_for("delivery") == Decimal("49.00")
    assert delivery_fee_for("takeaway") == 0
    assert delivery_fee_for("delivery", flat_fee=Decimal("30")) == Decimal("30.00")


@pytest.mark.parametrize(
    "distance, order_value, subscribed, expected",
    [
        (0.5, 100, False, "2"),     # inside free radius: platform fee only
        (1.0, 100, False, "2"),
        (2.5, 100, False, "27"),    # <=3 km zone
        (4.0, 100, False, "42"),    # <=5 km zone
        (7.0, 100, False, "62"),    # <=8 km zone
        (11.0, 100, False, "77"),
        (20.0, 100, False, "77"),
        (4.0, 100, True, "2"),      # subscriber nearby
        (7.0, 100, True, "62"),     # subscriber far pays the zone rate
        (4.0, 500, False, "2"),
        (7.0, 500, False, "47"),
        (4.0, 300, False, "17"),
        (7.0, 300, False, "52"),
        (7.0, 299, False, "62"),
    ],
)
def test_distance_delivery_fee_zones(distance, order_value, subscribed, expected):
    fee = calculate_distance_delivery_fee(distance, Decimal(order_value), subscribed)
    assert fee == Decimal(expected)


async def test_delivery_fee_endpoint(client):
    r = await client.post(
        "/api/delivery-fee",
        json={"distance": 4.0, "orderValue": "350", "hasSubscription": False},
    )
    assert r.status_code == 200
    body = r.json()
    assert Decimal(body["deliveryFee"]) == Decimal("17")
    assert body["freeDelivery"] is False

    r = await client.post("/api/delivery-fee", json={"distance": 0.8, "orderValue": 120})
    assert r.json()["freeDelivery"] is True


async def test_delivery_fee_rejects_negative_distance(client):
    r = await client.post("/api/delivery-fee", json={"distance": -1, "orderValue": 100})
    assert r.status_code == 400
    assert r.json()["error"] == "Validation error"
