from sqlalchemy import update

from app.models import Order, OrderStatus
from app.services.ondc import get_ondc_service
from app.services.ondc.local import LocalOndcService

from conftest import bearer, login

CONTEXT = {
    "domain": "ONDC:RET11",
    "action": "search",
    "bap_id": "buyer.example.com",
    "transaction_id": "txn-001",
}


def ctx(action):
    return {**CONTEXT, "action": action}


def breakup(body):
    quote = body["message"]["order"]["quote"]
    return {line["title"]: line["price"]["value"] for line in quote["breakup"]}


def test_development_uses_local_catalog():
    assert isinstance(get_ondc_service(), LocalOndcService)


async def test_search_requires_domain_and_action(client):
    r = await client.post("/api/ondc/search", json={"context": {"action": "search"}})

    assert r.status_code == 400
    assert r.json() == {
        "error": "Invalid request format",
        "message": "Required fields missing: context.domain and context.action are required",
    }


async def test_search_rejects_non_json(client):
    r = await client.post(
        "/api/ondc/search", content=b"not json", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request format"


async def test_search_publishes_in_stock_catalog(client, catalog):
    r = await client.post("/api/ondc/search", json={"context": CONTEXT, "message": {}})

    assert r.status_code == 200
    body = r.json()
    assert body["context"]["action"] == "on_search"
    assert body["context"]["transaction_id"] == "txn-001"
    assert body["context"]["bap_id"] == "buyer.example.com"
    assert body["context"]["bpp_id"]

    providers = {p["descriptor"]["name"]: p for p in body["message"]["catalog"]["bpp/providers"]}
    central = providers["Aamis Central Kitchen"]
    assert [i["descriptor"]["name"] for i in central["items"]] == ["Assamese Duck Curry", "Masor Tenga"]
    assert central["items"][0]["price"] == {"currency": "INR", "value": "320.00"}
    assert central["locations"][0]["gps"] == "26.1445,91.7362"
    assert [i["id"] for i in providers["Aamis Riverside"]["items"]] == [str(catalog["river_special"].id)]


async def test_search_by_item_name(client, catalog):
    intent = {"item": {"descriptor": {"name": "tenga"}}}
    r = await client.post("/api/ondc/search", json={"context": CONTEXT, "message": {"intent": intent}})

    items = [
        item["descriptor"]["name"]
        for provider in r.json()["message"]["catalog"]["bpp/providers"]
        for item in provider["items"]
    ]
    assert items == ["Masor Tenga"]


async def test_search_without_transaction_id_gets_one(client, catalog):
    r = await client.post("/api/ondc/search", json={"context": {"domain": "ONDC:RET11", "action": "search"}})
    assert r.json()["context"]["transaction_id"].startswith("tr-")


async def test_select_quotes_live_prices(client, catalog):
    order = {
        "provider": {"id": str(catalog["central"].id)},
        "items": [
            {"id": str(catalog["duck"].id), "quantity": {"count": 2}},
            {"id": str(catalog["tenga"].id)},
        ],
    }
    r = await client.post("/api/ondc/select", json={"context": ctx("select"), "message": {"order": order}})

    assert r.status_code == 200
    body = r.json()
    assert body["context"]["action"] == "on_select"
    assert breakup(body) == {"Item Total": "890.00", "Delivery Charges": "49.00"}
    assert body["message"]["order"]["quote"]["price"]["value"] == "939.00"
    assert body["message"]["order"]["items"][1]["quantity"] == {"count": 1}


async def test_select_validation_and_unknown_items(client, catalog):
    r = await client.post("/api/ondc/select", json={"context": ctx("select"), "message": {"order": {"items": []}}})
    assert r.status_code == 400
    assert r.json()["message"] == "Required fields missing: context, message.order.items"

    r = await client.post(
        "/api/ondc/select",
        json={"context": ctx("select"), "message": {"order": {"items": [{"id": "9999"}]}}},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Unknown item: 9999"

    r = await client.post(
        "/api/ondc/select",
        json={"context": ctx("select"), "message": {"order": {"items": [{"id": str(catalog["pabda"].id)}]}}},
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Item not available: Pabda Fish Curry"


async def test_init_adds_payment_terms(client, catalog):
    order = {
        "items": [{"id": str(catalog["duck"].id)}],
        "billing": {"name": "Buyer", "phone": "9876543210"},
    }
    r = await client.post("/api/ondc/init", json={"context": ctx("init"), "message": {"order": order}})

    assert r.status_code == 200
    draft = r.json()["message"]["order"]
    assert draft["payment"] == {"type": "ON-ORDER", "status": "NOT-PAID"}
    assert draft["billing"]["name"] == "Buyer"
    assert breakup(r.json())["Item Total"] == "320.00"


async def test_init_requires_order(client):
    r = await client.post("/api/ondc/init", json={"context": ctx("init"), "message": {}})
    assert r.status_code == 400
    assert r.json()["message"] == "Required fields missing: context, message.order"


async def test_confirm_assigns_network_order_id(client, catalog):
    order = {"items": [{"id": str(catalog["duck"].id)}]}
    r = await client.post("/api/ondc/confirm", json={"context": ctx("confirm"), "message": {"order": order}})

    confirmed = r.json()["message"]["order"]
    assert confirmed["id"].startswith("ondc-")
    assert confirmed["state"] == "Created"
    assert confirmed["created_at"] == confirmed["updated_at"]


async def test_status_and_cancel_of_local_order(client, catalog):
    token = await login(client)
    r = await client.post(
        "/api/orders",
        json={
            "kitchenId": catalog["central"].id,
            "orderMode": "delivery",
            "deliveryAddress": "House 12, Zoo Road",
            "deliverySlotId": catalog["slot"].id,
            "items": [{"productId": catalog["duck"].id, "quantity": 1}],
        },
        headers=bearer(token),
    )
    order_id = str(r.json()["order"]["id"])

    r = await client.post(
        "/api/ondc/status",
        json={"context": ctx("status"), "message": {"order_id": order_id}},
        headers=bearer(token),
    )
    assert r.status_code == 200
    status = r.json()["message"]["order"]
    assert status["state"] == "Created"
    assert status["fulfillment"]["state"]["descriptor"]["code"] == "Pending"
    assert breakup(r.json()) == {
        "Item Total": "320.00",
        "Delivery Charges": "49.00",
        "Service Fee": "16.00",
    }
    assert status["quote"]["price"]["value"] == "385.00"

    r = await client.post(
        "/api/ondc/cancel",
        json={"context": ctx("cancel"), "message": {"order_id": order_id, "cancellation_reason_id": "001"}},
        headers=bearer(token),
    )
    assert r.status_code == 200
    cancelled = r.json()["message"]["order"]
    assert cancelled["state"] == "Cancelled"
    assert cancelled["cancellation"] == {"cancelled_by": "buyer.example.com", "reason": {"id": "001"}}

    r = await client.get(f"/api/delivery-slots/{catalog['slot'].id}")
    assert r.json()["bookedCount"] == 0

    # Terminal state
    r = await client.post(
        "/api/ondc/cancel",
        json={"context": ctx("cancel"), "message": {"order_id": order_id}},
        headers=bearer(token),
    )
    assert r.status_code == 409
    assert r.json()["error"] == "Conflict"


async def test_status_unknown_order(client):
    token = await login(client)
    for order_id in ("9999", "ondc-abc"):
        r = await client.post(
            "/api/ondc/status",
            json={"context": ctx("status"), "message": {"order_id": order_id}},
            headers=bearer(token),
        )
        assert r.status_code == 404
        assert r.json()["error"] == "Not found"

    r = await client.post(
        "/api/ondc/status", json={"context": ctx("status"), "message": {}}, headers=bearer(token)
    )
    assert r.status_code == 400
    assert r.json()["message"] == "Required fields missing: context, message.order_id"


async def test_update_echoes_order(client):
    order = {"id": "ondc-123", "fulfillment": {"type": "Delivery"}}
    r = await client.post("/api/ondc/update", json={"context": ctx("update"), "message": {"order": order}})

    assert r.status_code == 200
    updated = r.json()["message"]["order"]
    assert updated["id"] == "ondc-123"
    assert updated["fulfillment"] == {"type": "Delivery"}
    assert "updated_at" in updated


async def place_order(client, catalog, token):
    r = await client.post(
        "/api/orders",
        json={
            "kitchenId": catalog["central"].id,
            "orderMode": "delivery",
            "deliveryAddress": "House 12, Zoo Road",
            "deliverySlotId": catalog["slot"].id,
            "items": [{"productId": catalog["duck"].id, "quantity": 1}],
        },
        headers=bearer(token),
    )
    return str(r.json()["order"]["id"])


async def test_status_and_cancel_need_login(client, catalog):
    order_id = await place_order(client, catalog, await login(client))

    for action in ("status", "cancel"):
        r = await client.post(f"/api/ondc/{action}", json={"context": ctx(action), "message": {"order_id": order_id}})
        assert r.status_code == 401

    r = await client.get(f"/api/delivery-slots/{catalog['slot'].id}")
    assert r.json()["bookedCount"] == 1


async def test_other_customers_orders_read_as_missing(client, catalog):
    order_id = await place_order(client, catalog, await login(client, "9876543210"))
    stranger = await login(client, "9123456780")

    for action in ("status", "cancel"):
        r = await client.post(
            f"/api/ondc/{action}",
            json={"context": ctx(action), "message": {"order_id": order_id}},
            headers=bearer(stranger),
        )
        assert r.status_code == 404


async def test_cancel_follows_customer_rule(client, catalog, session):
    token = await login(client)
    order_id = await place_order(client, catalog, token)
    await session.execute(
        update(Order).where(Order.id == int(order_id)).values(order_status=OrderStatus.OUT_FOR_DELIVERY)
    )
    await session.commit()

    r = await client.post(
        "/api/ondc/cancel",
        json={"context": ctx("cancel"), "message": {"order_id": order_id}},
        headers=bearer(token),
    )
    assert r.status_code == 409
    r = await client.get(f"/api/orders/{order_id}", headers=bearer(token))
    assert r.json()["orderStatus"] == "out_for_delivery"


async def test_search_tolerates_odd_intent_shapes(client, catalog):
    for intent in ({"item": "biryani"}, {"item": {"descriptor": "tenga"}}, {"item": {"descriptor": {"name": 5}}}):
        r = await client.post("/api/ondc/search", json={"context": CONTEXT, "message": {"intent": intent}})
        assert r.status_code == 200, intent
        assert r.json()["message"]["catalog"]["bpp/providers"]


async def test_search_rejects_undecodable_body(client):
    r = await client.post(
        "/api/ondc/search", content=b"\xff\xfe\xfa", headers={"Content-Type": "application/json"}
    )
    assert r.status_code == 400
    assert r.json()["error"] == "Invalid request format"
