"""
Concurrency Simulation Script

Fires many simultaneous orders at one business to check that order
numbers come back distinct and sequential, then settles every order with
two payments and checks the payment status ends up PAID.

Run from project root, with the API running:
    python scripts/simulate.py --seed --orders 50
"""

import asyncio
import os
import random
import sys
import time
import argparse
from datetime import datetime
from decimal import Decimal
from typing import Any

import httpx

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from orderflow.core.config import get_settings
from orderflow.database import build_engine, build_session_maker, init_db
from orderflow.models import Business, MenuItem, MenuItemOption, MenuItemOptionVariant

# Configuration
API_BASE_URL = f"http://localhost:{get_settings().api_port}"
TOTAL_ORDERS = 50
DEMO_BUSINESS_ID = "demo-business"

MENU_ITEMS = [
    ("demo-margherita", "Pizza Margherita", Decimal("14.99")),
    ("demo-pepperoni", "Pepperoni Pizza", Decimal("16.99")),
    ("demo-caesar", "Caesar Salad", Decimal("8.99")),
    ("demo-garlic-bread", "Garlic Bread", Decimal("5.99")),
    ("demo-tiramisu", "Tiramisu", Decimal("7.99")),
]
SIZE_VARIANTS = [
    ("small", Decimal("0.00")),
    ("large", Decimal("2.50")),
]
ORDER_TYPES = ["dine_in", "takeaway", "delivery"]
PAYMENT_METHODS = ["cash", "card", "digital_wallet"]


# =============================================================================
# SEEDING
# =============================================================================

async def seed_demo_business() -> None:
    """Create the demo business and its menu if they do not exist yet."""
    settings = get_settings()
    engine = build_engine(settings.database_url)
    await init_db(engine)
    session_maker = build_session_maker(engine)

    async with session_maker() as session:
        async with session.begin():
            if await session.get(Business, DEMO_BUSINESS_ID) is None:
                session.add(Business(
                    id=DEMO_BUSINESS_ID,
                    name="Demo Pizza Palace",
                    tax_rate=Decimal("0.0888"),
                    order_counter=0,
                    currency="USD",
                ))
                for item_id, name, price in MENU_ITEMS:
                    option = MenuItemOption(id=f"{item_id}-size", name="Size", variants=[
                        MenuItemOptionVariant(id=f"{item_id}-size-{label}", name=label.title(), price=extra)
                        for label, extra in SIZE_VARIANTS
                    ])
                    session.add(MenuItem(
                        id=item_id,
                        business_id=DEMO_BUSINESS_ID,
                        name=name,
                        price=price,
                        options=[option],
                    ))
                print(f"🌱 Seeded business {DEMO_BUSINESS_ID} with {len(MENU_ITEMS)} items")
            else:
                print(f"🌱 Business {DEMO_BUSINESS_ID} already seeded")

    await engine.dispose()


# =============================================================================
# ORDER TRAFFIC
# =============================================================================

def generate_order_payload() -> dict[str, Any]:
    """Random order against the demo menu. No prices: the API prices from the catalog."""
    lines = []
    for _ in range(random.randint(1, 4)):
        item_id = random.choice(MENU_ITEMS)[0]
        label = random.choice(SIZE_VARIANTS)[0]
        lines.append({
            "item_id": item_id,
            "quantity": random.randint(1, 3),
            "options": [{
                "option_id": f"{item_id}-size",
                "variants": [{"variant_id": f"{item_id}-size-{label}"}],
            }],
        })

    return {
        "business_id": DEMO_BUSINESS_ID,
        "type": random.choice(ORDER_TYPES),
        "order_items": lines,
        "tip_amount": random.choice(["0", "1.00", "2.50"]),
        "customer_name": random.choice(["John Smith", "Jane Garcia", "Amy Wilson", None]),
    }


async def send_order(client: httpx.AsyncClient, order_num: int) -> dict[str, Any]:
    start_time = time.time()
    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=generate_order_payload(),
            timeout=30.0,
        )
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data["id"],
                "order_number": data["order_number"],
                "total": Decimal(str(data["grand_total"])),
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
        }


async def settle_order(client: httpx.AsyncClient, result: dict[str, Any]) -> str:
    """Pay roughly half, then the remainder. Returns the final payment status."""
    total = result["total"]
    first = (total / 2).quantize(Decimal("0.01"))
    status = "pending"
    for amount in (first, total - first):
        if amount <= 0:
            continue
        response = await client.post(
            f"{API_BASE_URL}/api/orders/{result['order_id']}/payments",
            json={"amount": str(amount), "payment_method": random.choice(PAYMENT_METHODS)},
            timeout=30.0,
        )
        if response.status_code != 201:
            return f"error: {response.text[:80]}"
        status = response.json()["order_payment_status"]
    return status


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CONCURRENT ORDER SIMULATION")
    print("=" * 70)
    print(f"📋 Total Orders: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()
    async with httpx.AsyncClient() as client:
        results = await asyncio.gather(*[send_order(client, i + 1) for i in range(num_orders)])

        successful = [r for r in results if r["success"]]
        failed = [r for r in results if not r["success"]]

        print("\n💳 Settling orders...")
        statuses = await asyncio.gather(*[settle_order(client, r) for r in successful])

    total_time = round(time.time() - start_time, 2)

    numbers = sorted(int(r["order_number"].lstrip("#")) for r in successful)
    distinct = len(set(numbers)) == len(numbers)
    sequential = numbers == list(range(numbers[0], numbers[0] + len(numbers))) if numbers else True

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    print(f"\n✅ Successful Orders: {len(successful)}/{num_orders}")
    print(f"❌ Failed Orders: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")
    print(f"\n🔢 Order numbers distinct: {'yes' if distinct else 'NO'}")
    print(f"🔢 Order numbers sequential: {'yes' if sequential else 'NO'}")
    paid = sum(1 for s in statuses if s == "paid")
    print(f"💰 Fully paid: {paid}/{len(successful)}")

    if failed:
        print("\n⚠️  Failed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order {f['order_num']}: {f.get('error', 'Unknown error')}")

    print("=" * 70)
    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "numbers_distinct": distinct,
        "numbers_sequential": sequential,
        "fully_paid": paid,
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Concurrent order simulation")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--seed", action="store_true", help="Seed the demo business first")
    args = parser.parse_args()

    if args.seed:
        asyncio.run(seed_demo_business())

    summary = asyncio.run(run_simulation(args.orders))
    if not (summary["numbers_distinct"] and summary["numbers_sequential"]):
        sys.exit(1)
