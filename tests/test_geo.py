from types import SimpleNamespace

import pytest

from app.services.geo import find_nearest_kitchen, haversine_km
from app.services.geo.distance import parse_coordinates


def kitchen(name, lat, lng):
    return SimpleNamespace(name=name, latitude=lat, longitude=lng)


def test_haversine_zero_and_symmetric():
    assert haversine_km(26.1445, 91.7362, 26.1445, 91.7362) == 0
    a = haversine_km(26.1445, 91.7362, 26.1890, 91.7465)
    b = haversine_km(26.1890, 91.7465, 26.1445, 91.7362)
    assert a == pytest.approx(b)
    # Ganeshguri to Uzanbazar is roughly 5 km
    assert 4.5 < a < 5.5


def test_one_degree_latitude_is_about_111_km():
    assert haversine_km(0, 0, 1, 0) == pytest.approx(111.19, abs=0.1)


def test_nearest_picks_minimum_distance():
    kitchens = [
        kitchen("riverside", "26.1890", "91.7465"),
        kitchen("central", "26.1445", "91.7362"),
        kitchen("downtown", "26.1429", "91.7414"),
    ]
    result = find_nearest_kitchen(26.1446, 91.7363, kitchens)

    assert result.kitchen.name == "central"
    assert result.in_range
    assert result.distance_km == min(
        haversine_km(26.1446, 91.7363, float(k.latitude), float(k.longitude)) for k in kitchens
    )


def test_out_of_range_reports_distance_without_kitchen():
    kitchens = [kitchen("central", "26.1445", "91.7362")]
    # Siliguri is a few hundred km away
    result = find_nearest_kitchen(26.7271, 88.3953, kitchens)

    assert result.kitchen is None
    assert not result.in_range
    assert result.distance_km > 300


def test_radius_boundary_is_inclusive():
    k = kitchen("central", "0", "0")
    exact = haversine_km(0.05, 0, 0.0, 0.0)

    assert find_nearest_kitchen(0.05, 0, [k], max_radius_km=exact).kitchen is k
    assert find_nearest_kitchen(0.05, 0, [k], max_radius_km=exact - 0.001).kitchen is None


def test_kitchens_without_coordinates_are_skipped():
    kitchens = [
        kitchen("no-coords", None, None),
        kitchen("garbage", "north", "east"),
        kitchen("nan", "nan", "91.7"),
        kitchen("infinite", "inf", "91.7"),
        kitchen("off-globe", "500", "91.7"),
        kitchen("central", "26.1445", "91.7362"),
    ]
    result = find_nearest_kitchen(26.1445, 91.7362, kitchens)
    assert result.kitchen.name == "central"


def test_no_usable_kitchens():
    result = find_nearest_kitchen(26.1, 91.7, [kitchen("blank", "", "")])
    assert result.kitchen is None
    assert result.distance_km is None

    assert find_nearest_kitchen(26.1, 91.7, []).distance_km is None


def test_parse_coordinates():
    assert parse_coordinates("26.1445", "91.7362") == (26.1445, 91.7362)
    assert parse_coordinates(None, "91.7") is None
    assert parse_coordinates("x", "91.7") is None
    assert parse_coordinates("inf", "91.7") is None
    assert parse_coordinates("26.1", "-inf") is None
    assert parse_coordinates("500", "91.7") is None
    assert parse_coordinates("26.1", "180.01") is None
    assert parse_coordinates("-90", "180") == (-90.0, 180.0)


async def test_nearest_endpoint(client, catalog):
    r = await client.get("/api/kitchens/nearest", params={"lat": 26.1446, "lng": 91.7363})
    assert r.status_code == 200
    body = r.json()
    assert body["kitchen"]["name"] == "Aamis Central Kitchen"
    assert body["distanceKm"] < 0.1


async def test_nearest_endpoint_out_of_range(client, catalog):
    r = await client.get("/api/kitchens/nearest", params={"lat": 26.7271, "lng": 88.3953})
    assert r.status_code == 404
    assert "No kitchen delivers to this location" in r.json()["detail"]
    assert "km away" in r.json()["detail"]


async def test_nearest_ignores_inactive_kitchens(client, catalog, session):
    central = catalog["central"]
    central.is_active = False
    session.add(central)
    await session.commit()

    r = await client.get("/api/kitchens/nearest", params={"lat": 26.1445, "lng": 91.7362})
    assert r.status_code == 200
    assert r.json()["kitchen"]["name"] == "Aamis Riverside"


async def test_nearest_by_address_uses_geocoder(client, catalog):
    # Mock geocoder answers within ~2 km of Ganeshguri
    r = await client.post("/api/kitchens/nearest", json={"address": "Zoo Road", "city": "Guwahati"})
    assert r.status_code == 200
    assert r.json()["kitchen"]["city"] == "Guwahati"
