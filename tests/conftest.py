import os
import tempfile
from datetime import timedelta
from decimal import Decimal
from pathlib import Path

_TMP = Path(tempfile.mkdtemp(prefix="kitchen-tests-"))

# Settings are read once at import time, so the environment goes first
os.environ.update({
    "ENV_MODE": "development",
    "DEBUG": "false",
    "DATABASE_URL": f"sqlite+aiosqlite:///{_TMP / 'test.db'}",
    "REDIS_URL": "redis://localhost:6399/15",
    "JWT_SECRET_KEY": "test-secret",
    "OTP_DEBUG_ECHO": "false",
    "MOCK_FAILURE_RATE": "0",
    "MOCK_MIN_LATENCY": "0",
    "MOCK_MAX_LATENCY": "0",
    "DATA_DIRECTORY": str(_TMP / "data"),
})

import httpx
import pytest
from sqlalchemy import select

from app.database import Base, async_session_maker, engine
from app.main import app
from app.models import Category, DeliverySlot, Kitchen, Product, User, utcnow
from app.services import otp as otp_service
from app.tasks import export_order_to_excel, send_order_confirmation

TEST_OTP = "123456"


@pytest.fixture(autouse=True)
async def database():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield
    # Connections are tied to the test's event loop
    await engine.dispose()


@pytest.fixture(autouse=True)
def fixed_otp(monkeypatch):
    monkeypatch.setattr(otp_service, "generate_otp", lambda length=None: TEST_OTP)


@pytest.fixture(autouse=True)
def queued(monkeypatch):
    """Capture Celery .delay() calls instead of talking to a broker."""
    calls = {"export": [], "confirmation": []}
    monkeypatch.setattr(export_order_to_excel, "delay", lambda data: calls["export"].append(data))
    monkeypatch.setattr(send_order_confirmation, "delay", lambda data: calls["confirmation"].append(data))
    return calls


@pytest.fixture
async def session():
    async with async_session_maker() as db:
        yield db


@pytest.fixture
async def client():
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
async def catalog(session):
    """Two kitchens, a small menu and one upcoming slot at the central kitchen."""
    central = Kitchen(
        name="Aamis Central Kitchen", area="Ganeshguri", city="Guwahati",
        open_time="10:00 AM", close_time="10:00 PM",
        latitude="26.1445", longitude="91.7362",
    )
    riverside = Kitchen(
        name="Aamis Riverside", area="Uzanbazar", city="Guwahati",
        open_time="9:30 AM", close_time="9:30 PM",
        latitude="26.1890", longitude="91.7465",
    )
    bestseller = Category(name="Bestseller", slug="bestseller")
    fish = Category(name="Fish Specialties", slug="fish")
    session.add_all([central, riverside, bestseller, fish])
    await session.flush()

    duck = Product(
        name="Assamese Duck Curry", price=Decimal("320.00"), in_stock=True,
        category_id=bestseller.id, category_slug="bestseller", kitchen_id=central.id,
    )
    tenga = Product(
        name="Masor Tenga", price=Decimal("250.00"), in_stock=True,
        category_id=fish.id, category_slug="fish", kitchen_id=central.id,
    )
    pabda = Product(
        name="Pabda Fish Curry", price=Decimal("290.00"), in_stock=False,
        category_id=fish.id, category_slug="fish", kitchen_id=central.id,
    )
    river_special = Product(
        name="River Special", price=Decimal("199.00"), in_stock=True,
        kitchen_id=riverside.id,
    )
    start = utcnow() + timedelta(days=1)
    slot = DeliverySlot(
        start_time=start, end_time=start + timedelta(minutes=30),
        capacity=2, booked_count=0, kitchen_id=central.id,
    )
    session.add_all([duck, tenga, pabda, river_special, slot])
    await session.commit()

    return {
        "central": central,
        "riverside": riverside,
        "bestseller": bestseller,
        "fish": fish,
        "duck": duck,
        "tenga": tenga,
        "pabda": pabda,
        "river_special": river_special,
        "slot": slot,
    }


async def login(client: httpx.AsyncClient, phone: str = "9876543210") -> str:
    r = await client.post("/api/auth/send-otp", json={"phone": phone})
    assert r.status_code == 200, r.text
    r = await client.post("/api/auth/verify-otp", json={"phone": phone, "otp": TEST_OTP})
    assert r.status_code == 200, r.text
    return r.json()["token"]


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def make_admin(phone: str) -> None:
    async with async_session_maker() as db:
        user = (await db.execute(select(User).where(User.phone == phone))).scalar_one()
        user.is_admin = True
        await db.commit()
