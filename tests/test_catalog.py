from datetime import timedelta
from decimal import Decimal

from app.models import DeliverySlot, utcnow

from conftest import bearer, login


def names(products):
    return [p["name"] for p in products]


async def test_kitchens_list_only_active(client, catalog, session):
    catalog["riverside"].is_active = False
    await session.commit()

    r = await client.get("/api/kitchens")
    assert r.status_code == 200
    assert [k["name"] for k in r.json()] == ["Aamis Central Kitchen"]

    r = await client.get(f"/api/kitchens/{catalog['central'].id}")
    assert r.json()["openTime"] == "10:00 AM"
    assert (await client.get("/api/kitchens/9999")).status_code == 404


async def test_categories(client, catalog):
    r = await client.get("/api/categories")
    assert [c["slug"] for c in r.json()] == ["bestseller", "fish"]

    r = await client.get("/api/categories/fish")
    assert r.json()["name"] == "Fish Specialties"

    r = await client.get("/api/categories/desserts")
    assert r.status_code == 404


async def test_products_filters_combine(client, catalog):
    r = await client.get("/api/products")
    assert len(r.json()) == 4

    r = await client.get("/api/products", params={"categorySlug": "fish"})
    assert names(r.json()) == ["Masor Tenga", "Pabda Fish Curry"]

    r = await client.get("/api/products", params={"kitchenId": catalog["riverside"].id})
    assert names(r.json()) == ["River Special"]

    r = await client.get(
        "/api/products",
        params={"kitchenId": catalog["riverside"].id, "categorySlug": "fish"},
    )
    assert r.json() == []


async def test_product_detail_and_related(client, catalog):
    tenga = catalog["tenga"]

    r = await client.get(f"/api/products/{tenga.id}")
    assert r.status_code == 200
    assert Decimal(r.json()["price"]) == Decimal("250")
    assert r.json()["categorySlug"] == "fish"

    r = await client.get(f"/api/products/{tenga.id}/related")
    assert names(r.json()) == ["Pabda Fish Curry"]

    r = await client.get(f"/api/products/{catalog['river_special'].id}/related")
    assert r.json() == []

    assert (await client.get("/api/products/9999")).status_code == 404
    assert (await client.get("/api/products/9999/related")).status_code == 404


async def test_featured_and_grouped(client, catalog):
    r = await client.get("/api/products/featured")
    assert names(r.json()) == ["Assamese Duck Curry"]

    r = await client.get("/api/products/by-category")
    grouped = r.json()
    # JSON object keys are strings
    assert set(grouped) == {str(catalog["bestseller"].id), str(catalog["fish"].id)}
    assert len(grouped[str(catalog["fish"].id)]) == 2


async def test_delivery_slots_upcoming_only(client, catalog, session):
    central = catalog["central"]
    past = utcnow() - timedelta(hours=3)
    later = utcnow() + timedelta(days=2)
    session.add_all([
        DeliverySlot(start_time=past, end_time=past + timedelta(minutes=30),
                     capacity=5, booked_count=0, kitchen_id=central.id),
        DeliverySlot(start_time=later, end_time=later + timedelta(minutes=30),
                     capacity=5, booked_count=5, kitchen_id=central.id),
    ])
    await session.commit()

    r = await client.get("/api/delivery-slots", params={"kitchenId": central.id})
    slots = r.json()
    assert len(slots) == 2
    assert slots[0]["id"] == catalog["slot"].id
    assert slots[0]["available"] == 2
    assert slots[1]["available"] == 0

    r = await client.get("/api/delivery-slots", params={"kitchenId": catalog["riverside"].id})
    assert r.json() == []

    r = await client.get(f"/api/delivery-slots/{catalog['slot'].id}")
    assert r.json()["capacity"] == 2
    assert (await client.get("/api/delivery-slots/9999")).status_code == 404


async def test_profile_update_keeps_unset_fields(client):
    token = await login(client)
    await client.put("/api/users/me", json={"name": "Priya", "address": "Zoo Road"}, headers=bearer(token))

    r = await client.put("/api/users/me", json={"address": "Uzanbazar"}, headers=bearer(token))
    assert r.json()["name"] == "Priya"
    assert r.json()["address"] == "Uzanbazar"

    r = await client.put("/api/users/me", json={"email": "nope"}, headers=bearer(token))
    assert r.status_code == 400


async def test_root_and_health(client):
    r = await client.get("/")
    assert r.json()["documentation"] == "/docs"

    r = await client.get("/health")
    assert r.status_code == 200
    body = r.json()
    assert body["database"] == "healthy"
    # No Redis on the test port
    assert body["status"] in ("operational", "degraded")
