"""
Slot Rush Simulation Script

Fires concurrent checkouts at a single delivery slot to prove that the
slot can never be overbooked. Each simulated customer signs in by OTP
first, so the API must run in development with OTP_DEBUG_ECHO=true.

Run from project root: python scripts/simulate.py --orders 25

Author: Khalil Bannouri
Version: 4.0.0
"""

import argparse
import asyncio
import os
import random
import sys
import time
from typing import Any, Optional

import httpx
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 25

STREETS = ["Zoo Road", "GS Road", "Chandmari", "Beltola", "Hatigaon", "Ganeshguri", "Six Mile"]


def random_phone() -> str:
    return f"9{random.randint(100000000, 999999999)}"


def random_address() -> str:
    return f"House {random.randint(1, 300)}, {random.choice(STREETS)}, Guwahati"


# =============================================================================
# API HELPERS
# =============================================================================

async def login(client: httpx.AsyncClient, phone: str) -> Optional[str]:
    """OTP login; returns a bearer token or None."""
    response = await client.post("/api/auth/send-otp", json={"phone": phone})
    otp = response.json().get("otp") if response.status_code == 200 else None
    if not otp:
        print(f"   ⚠️ No OTP echoed for {phone}; is OTP_DEBUG_ECHO=true?")
        return None

    response = await client.post("/api/auth/verify-otp", json={"phone": phone, "otp": otp})
    if response.status_code != 200:
        print(f"   ❌ Login failed for {phone}: {response.text[:100]}")
        return None
    return response.json()["token"]


async def pick_target(client: httpx.AsyncClient, kitchen_id: Optional[int]) -> Optional[dict[str, Any]]:
    """Choose a kitchen, its first upcoming slot, and an in-stock product."""
    kitchens = (await client.get("/api/kitchens")).json()
    if not kitchens:
        print("❌ No active kitchens. Seed the database first: python scripts/seed.py")
        return None
    kitchen = next((k for k in kitchens if k["id"] == kitchen_id), kitchens[0])

    slots = (await client.get("/api/delivery-slots", params={"kitchenId": kitchen["id"]})).json()
    products = (await client.get("/api/products", params={"kitchenId": kitchen["id"]})).json()
    products = [p for p in products if p["inStock"]]

    if not slots or not products:
        print(f"❌ Kitchen #{kitchen['id']} needs an upcoming slot and an in-stock product")
        return None

    return {"kitchen": kitchen, "slot": slots[0], "products": products}


async def place_order(
    client: httpx.AsyncClient,
    token: str,
    target: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    product = random.choice(target["products"])
    payload = {
        "kitchenId": target["kitchen"]["id"],
        "orderMode": "delivery",
        "deliverySlotId": target["slot"]["id"],
        "deliveryAddress": random_address(),
        "items": [{"productId": product["id"], "quantity": random.randint(1, 3)}],
    }

    start_time = time.time()
    try:
        response = await client.post(
            "/api/orders",
            json=payload,
            headers={"Authorization": f"Bearer {token}"},
        )
    except httpx.HTTPError as e:
        return {"order_num": order_num, "status": None, "error": str(e), "time": 0}

    return {
        "order_num": order_num,
        "status": response.status_code,
        "order_id": response.json().get("order", {}).get("id") if response.status_code == 201 else None,
        "time": round(time.time() - start_time, 3),
    }


# =============================================================================
# SIMULATION
# =============================================================================

async def run_simulation(base_url: str, total_orders: int, kitchen_id: Optional[int]) -> bool:
    print("=" * 70)
    print("🔥 SLOT RUSH SIMULATION")
    print("=" * 70)

    async with httpx.AsyncClient(base_url=base_url, timeout=30.0) as client:
        target = await pick_target(client, kitchen_id)
        if target is None:
            return False

        slot = target["slot"]
        print(f"🏠 Kitchen: {target['kitchen']['name']} (#{target['kitchen']['id']})")
        print(f"🕒 Slot #{slot['id']}: {slot['startTime']} "
              f"({slot['bookedCount']}/{slot['capacity']} booked)")
        print(f"🛒 Orders: {total_orders}")

        print("\n🔑 Signing in customers...")
        tokens = await asyncio.gather(*(login(client, random_phone()) for _ in range(total_orders)))
        tokens = [t for t in tokens if t]
        if not tokens:
            return False

        print(f"🚀 Firing {len(tokens)} concurrent checkouts...")
        start = time.time()
        results = await asyncio.gather(
            *(place_order(client, token, target, i) for i, token in enumerate(tokens, 1))
        )
        elapsed = round(time.time() - start, 2)

        after = (await client.get(f"/api/delivery-slots/{slot['id']}")).json()

    placed = [r for r in results if r["status"] == 201]
    full = [r for r in results if r["status"] == 409]
    other = [r for r in results if r["status"] not in (201, 409)]
    expected = min(len(tokens), slot["capacity"] - slot["bookedCount"])

    print("\n" + "=" * 70)
    print("📊 RESULTS")
    print("=" * 70)
    print(f"   ✅ Placed:        {len(placed)}")
    print(f"   🚫 Slot full:     {len(full)}")
    print(f"   ⚠️ Other errors:  {len(other)}")
    print(f"   ⏱️ Elapsed:       {elapsed}s")
    print(f"   🕒 Slot now:      {after['bookedCount']}/{after['capacity']} booked")

    ok = after["bookedCount"] <= after["capacity"] and len(placed) == expected
    print("\n" + ("✅ No overbooking" if ok else "❌ Slot accounting mismatch"))
    print("=" * 70)
    return ok


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Slot Rush Simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of concurrent orders")
    parser.add_argument("--kitchen", type=int, default=None, help="Kitchen id (default: first active)")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    success = asyncio.run(run_simulation(args.base_url, args.orders, args.kitchen))
    sys.exit(0 if success else 1)
