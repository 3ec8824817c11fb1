from decimal import Decimal

from sqlalchemy import func, select, update

from app.database import async_session_maker
from app.models import DeliverySlot, Order, OrderItem, OrderStatus
from app.services import orders as order_service

from conftest import bearer, login


def checkout(catalog, *lines, mode="delivery", slot=True, address="House 12, Zoo Road"):
    body = {
        "kitchenId": catalog["central"].id,
        "orderMode": mode,
        "items": [{"productId": catalog[name].id, "quantity": qty} for name, qty in lines],
    }
    if slot:
        body["deliverySlotId"] = catalog["slot"].id
    if address is not None:
        body["deliveryAddress"] = address
    return body


async def booked(session, slot_id):
    return (await session.execute(
        select(DeliverySlot.booked_count).where(DeliverySlot.id == slot_id)
    )).scalar_one()


async def rows(session, model):
    return (await session.execute(select(func.count()).select_from(model))).scalar()


async def test_place_delivery_order(client, catalog, session, queued):
    token = await login(client)

    r = await client.post(
        "/api/orders",
        json=checkout(catalog, ("duck", 1), ("tenga", 1)),
        headers=bearer(token),
    )

    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "Order placed successfully!"
    order = body["order"]
    assert order["orderStatus"] == "pending"
    assert Decimal(order["subtotal"]) == Decimal("570")
    assert Decimal(order["deliveryFee"]) == Decimal("49")
    assert Decimal(order["serviceFee"]) == Decimal("29")
    assert Decimal(order["total"]) == Decimal("648")
    assert {Decimal(i["price"]) for i in order["items"]} == {Decimal("320"), Decimal("250")}

    assert await booked(session, catalog["slot"].id) == 1

    # Side effects are queued, not run inline
    assert [p["order_id"] for p in queued["export"]] == [order["id"]]
    assert queued["export"][0]["user_phone"] == "9876543210"
    assert queued["confirmation"][0]["customer_phone"] == "9876543210"


async def test_prices_come_from_catalog_not_client(client, catalog):
    token = await login(client)
    body = checkout(catalog, ("duck", 2), mode="takeaway", slot=False, address=None)
    body["items"][0]["price"] = "1.00"

    r = await client.post("/api/orders", json=body, headers=bearer(token))

    assert r.status_code == 201
    order = r.json()["order"]
    assert Decimal(order["subtotal"]) == Decimal("640")
    assert Decimal(order["deliveryFee"]) == 0
    assert order["deliverySlotId"] is None


async def test_full_slot_is_rejected_without_side_effects(client, catalog, session, queued):
    token = await login(client)
    slot_id = catalog["slot"].id

    for _ in range(2):
        r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)), headers=bearer(token))
        assert r.status_code == 201

    r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)), headers=bearer(token))

    assert r.status_code == 409
    assert r.json()["detail"] == "Delivery slot is full"
    assert await booked(session, slot_id) == 2
    assert await rows(session, Order) == 2
    assert await rows(session, OrderItem) == 2
    assert len(queued["export"]) == 2


async def test_missing_product_writes_nothing(client, catalog, session):
    token = await login(client)
    body = checkout(catalog, ("duck", 1))
    body["items"].append({"productId": 9999, "quantity": 1})

    r = await client.post("/api/orders", json=body, headers=bearer(token))

    assert r.status_code == 400
    assert "9999" in r.json()["detail"]
    assert await rows(session, Order) == 0
    assert await booked(session, catalog["slot"].id) == 0


async def test_checkout_rejections(client, catalog):
    token = await login(client)
    cases = [
        checkout(catalog, ("pabda", 1)),                          # out of stock
        checkout(catalog, ("river_special", 1)),                  # other kitchen's dish
        checkout(catalog, ("duck", 1), address=None),             # delivery without address
        checkout(catalog, ("duck", 1), address="   "),
        checkout(catalog, ("duck", 1), mode="takeaway"),          # slot on a takeaway order
        checkout(catalog, ("duck", 0)),
        {**checkout(catalog, ("duck", 1)), "items": []},
        {**checkout(catalog, ("duck", 1)), "kitchenId": 9999},
        {**checkout(catalog, ("duck", 1)), "deliverySlotId": 9999},
    ]
    for body in cases:
        r = await client.post("/api/orders", json=body, headers=bearer(token))
        assert r.status_code == 400, body


async def test_slot_must_belong_to_kitchen(client, catalog):
    token = await login(client)
    body = checkout(catalog, ("river_special", 1))
    body["kitchenId"] = catalog["riverside"].id

    r = await client.post("/api/orders", json=body, headers=bearer(token))
    assert r.status_code == 400


async def test_checkout_requires_login(client, catalog):
    r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)))
    assert r.status_code == 401


async def test_order_history_is_per_user_newest_first(client, catalog):
    alice = await login(client, "9000000001")
    bob = await login(client, "9000000002")

    first = await client.post(
        "/api/orders", json=checkout(catalog, ("duck", 1), slot=False), headers=bearer(alice)
    )
    second = await client.post(
        "/api/orders", json=checkout(catalog, ("tenga", 1), slot=False), headers=bearer(alice)
    )

    r = await client.get("/api/orders", headers=bearer(alice))
    assert [o["id"] for o in r.json()] == [second.json()["order"]["id"], first.json()["order"]["id"]]
    assert r.json()[0]["items"][0]["product"]["name"] == "Masor Tenga"

    r = await client.get("/api/orders", headers=bearer(bob))
    assert r.json() == []

    order_id = first.json()["order"]["id"]
    assert (await client.get(f"/api/orders/{order_id}", headers=bearer(alice))).status_code == 200
    assert (await client.get(f"/api/orders/{order_id}", headers=bearer(bob))).status_code == 404


async def test_cancel_releases_slot(client, catalog, session):
    token = await login(client)
    r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)), headers=bearer(token))
    order_id = r.json()["order"]["id"]
    assert await booked(session, catalog["slot"].id) == 1

    r = await client.post(f"/api/orders/{order_id}/cancel", headers=bearer(token))

    assert r.status_code == 200
    assert r.json()["orderStatus"] == "cancelled"
    assert await booked(session, catalog["slot"].id) == 0

    # Already cancelled
    r = await client.post(f"/api/orders/{order_id}/cancel", headers=bearer(token))
    assert r.status_code == 409


async def test_cannot_cancel_once_kitchen_is_cooking(client, catalog, session):
    token = await login(client)
    r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)), headers=bearer(token))
    order_id = r.json()["order"]["id"]

    await session.execute(
        update(Order).where(Order.id == order_id).values(order_status=OrderStatus.PREPARING)
    )
    await session.commit()

    r = await client.post(f"/api/orders/{order_id}/cancel", headers=bearer(token))
    assert r.status_code == 409
    assert await booked(session, catalog["slot"].id) == 1


async def test_stale_double_cancel_releases_one_booking(client, catalog, session):
    token = await login(client)
    ids = []
    for _ in range(2):
        r = await client.post("/api/orders", json=checkout(catalog, ("duck", 1)), headers=bearer(token))
        ids.append(r.json()["order"]["id"])
    assert await booked(session, catalog["slot"].id) == 2

    # Both sessions see the order as pending before either writes
    async with async_session_maker() as db_a, async_session_maker() as db_b:
        order_a = await order_service.get_order(db_a, ids[0])
        order_b = await order_service.get_order(db_b, ids[0])

        first = await order_service.change_status(db_a, order_a, OrderStatus.CANCELLED)
        second = await order_service.change_status(db_b, order_b, OrderStatus.CANCELLED)

    assert first.success
    assert not second.success
    assert second.error_code == "invalid_transition"
    assert await booked(session, catalog["slot"].id) == 1
