"""
Database Seed Script

Loads the Aamis kitchens, menu and tomorrow's lunch delivery slots.
Run from project root: python scripts/seed.py [--reset] [--admin-phone 9876543210]

Author: Khalil Bannouri
Version: 4.0.0
"""

import argparse
import asyncio
import os
import sys
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Optional
from zoneinfo import ZoneInfo

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

from sqlalchemy import func, select

from app.database import Base, async_session_maker, engine, init_db
from app.models import Category, DeliverySlot, Kitchen, Product, User

KITCHEN_TZ = ZoneInfo("Asia/Kolkata")

KITCHENS = [
    {"name": "Aamis Central Kitchen", "area": "Ganeshguri", "city": "Guwahati",
     "open_time": "10:00 AM", "close_time": "10:00 PM", "latitude": "26.1445", "longitude": "91.7362"},
    {"name": "Aamis Downtown", "area": "Zoo Road", "city": "Guwahati",
     "open_time": "9:00 AM", "close_time": "11:00 PM", "latitude": "26.1429", "longitude": "91.7414"},
    {"name": "Aamis Riverside", "area": "Uzanbazar", "city": "Guwahati",
     "open_time": "9:30 AM", "close_time": "9:30 PM", "latitude": "26.1890", "longitude": "91.7465"},
]

CATEGORIES = [
    {"name": "Duck & Chicken", "slug": "duck-chicken",
     "description": "Traditional Assamese duck and chicken preparations"},
    {"name": "Fish Specialties", "slug": "fish",
     "description": "Fresh fish dishes prepared in authentic Assamese style"},
    {"name": "Pork Dishes", "slug": "pork", "description": "Flavorful pork dishes from Assam"},
    {"name": "Vegetarian", "slug": "vegetarian",
     "description": "Authentic vegetarian options from Assamese cuisine"},
    {"name": "Rice & Breads", "slug": "rice-breads", "description": "Traditional rice and bread selections"},
    {"name": "Bestseller", "slug": "bestseller", "description": "Our most popular dishes"},
    {"name": "Chef's Special", "slug": "chef-special",
     "description": "Special dishes prepared by our master chef"},
]

# (name, description, price, category slug)
PRODUCTS = [
    ("Assamese Duck Curry", "Traditional duck curry with bamboo shoot and spices", "320.00", "bestseller"),
    ("Bamboo Shoot Pork", "Pork cooked with fermented bamboo shoot", "280.00", "pork"),
    ("Masor Tenga", "Traditional sour fish curry with tomato and lemon", "250.00", "chef-special"),
    ("Khar", "Traditional starter made with raw papaya and lentils", "180.00", "vegetarian"),
    ("Chicken with Ash Gourd", "Tender chicken pieces cooked with ash gourd", "260.00", "duck-chicken"),
    ("Pabda Fish Curry", "Delicate pabda fish in a light mustard curry", "290.00", "fish"),
    ("Joha Rice", "Aromatic short-grain Assamese rice", "90.00", "rice-breads"),
]

# Tomorrow's lunch windows (local time) and seats already taken
SLOT_STARTS = [((12, 30), 3), ((13, 0), 1), ((13, 30), 2), ((14, 0), 0)]
SLOT_MINUTES = 30
SLOT_CAPACITY = 10


def lunch_slots(kitchen_id: int) -> list[DeliverySlot]:
    tomorrow = datetime.now(KITCHEN_TZ).date() + timedelta(days=1)
    slots = []
    for (hour, minute), booked in SLOT_STARTS:
        start = datetime(tomorrow.year, tomorrow.month, tomorrow.day, hour, minute, tzinfo=KITCHEN_TZ)
        slots.append(DeliverySlot(
            start_time=start,
            end_time=start + timedelta(minutes=SLOT_MINUTES),
            capacity=SLOT_CAPACITY,
            booked_count=booked,
            kitchen_id=kitchen_id,
        ))
    return slots


async def seed(reset: bool, admin_phone: Optional[str]) -> None:
    if reset:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        print("🗑️ Dropped all tables")

    await init_db()

    async with async_session_maker() as db:
        existing = (await db.execute(select(func.count(Kitchen.id)))).scalar() or 0
        if existing:
            print(f"ℹ️ {existing} kitchens already present; use --reset to reseed")
        else:
            kitchens = [Kitchen(**data) for data in KITCHENS]
            categories = {data["slug"]: Category(**data) for data in CATEGORIES}
            db.add_all(kitchens + list(categories.values()))
            await db.flush()
            print(f"✅ Inserted {len(kitchens)} kitchens, {len(categories)} categories")

            central = kitchens[0]
            products = [
                Product(
                    name=name,
                    description=description,
                    price=Decimal(price),
                    category_id=categories[slug].id,
                    category_slug=slug,
                    kitchen_id=central.id,
                    in_stock=True,
                )
                for name, description, price, slug in PRODUCTS
            ]
            slots = lunch_slots(central.id)
            db.add_all(products + slots)
            print(f"✅ Inserted {len(products)} products, {len(slots)} delivery slots")

        if admin_phone:
            user = (await db.execute(select(User).where(User.phone == admin_phone))).scalar_one_or_none()
            if user is None:
                user = User(phone=admin_phone, name="Admin")
                db.add(user)
            user.is_admin = True
            print(f"✅ {admin_phone} is an admin")

        await db.commit()

    await engine.dispose()
    print("✅ Seeding completed successfully!")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the storefront database")
    parser.add_argument("--reset", action="store_true", help="Drop all tables first")
    parser.add_argument("--admin-phone", default=None, help="Phone number to grant admin rights")
    args = parser.parse_args()

    asyncio.run(seed(args.reset, args.admin_phone))
