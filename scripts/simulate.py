"""
Chaos Simulation Script

Fires concurrent table orders and AI set requests at a running API, then
walks some orders through the kitchen workflow.
Run from project root: python scripts/simulate.py
"""

import asyncio
import sys
import random
import time
import argparse
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8001"
TOTAL_ORDERS = 50

TABLES = [str(n) for n in range(1, 21)]
MENU_IDS = ["h1", "h2", "s1", "a1", "a2", "a3", "g1", "g2", "g3", "g4", "sl1", "sl2", "d1", "d2", "n1", "n2", "n3"]
COMMENTS = ["", "без лука", "побыстрее", "кальян покрепче", "счёт сразу"]
AI_MESSAGES = [
    "Нас двое, бюджет 20000",
    "Нас 4 человека, бюджет 40000, хотим кальян",
    "трое, до 25 тысяч, без свинины",
    "5 гостей, бюджет 60000 ₸, халяль",
    "хотим сет на 35000, поострее",
    "один человек, бюджет 8000, веган",
]


def generate_random_items() -> list[dict]:
    """Generate random cart lines."""
    return [
        {"id": item_id, "quantity": random.randint(1, 3)}
        for item_id in random.sample(MENU_IDS, random.randint(1, 4))
    ]


def generate_order_payload() -> dict[str, Any]:
    """Generate payload for /api/orders endpoint."""
    return {
        "table": random.choice(TABLES),
        "items": generate_random_items(),
        "comment": random.choice(COMMENTS),
    }


# =============================================================================
# TABLE ORDERS
# =============================================================================

async def send_order(
    client: httpx.AsyncClient,
    order_num: int
) -> dict[str, Any]:
    """Place one table order."""
    payload = generate_order_payload()
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/orders",
            json=payload,
            timeout=30.0
        )
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": "order"
        }

    elapsed = round(time.time() - start_time, 3)
    if response.status_code == 201:
        order = response.json()["order"]
        return {
            "order_num": order_num,
            "success": True,
            "order_id": order["id"],
            "total": order["total"],
            "time": elapsed,
            "mode": "order"
        }
    return {
        "order_num": order_num,
        "success": False,
        "error": response.text[:100],
        "time": elapsed,
        "mode": "order"
    }


# =============================================================================
# AI SET REQUESTS
# =============================================================================

async def send_ai_request(
    client: httpx.AsyncClient,
    order_num: int
) -> dict[str, Any]:
    """Ask the set builder for three bundles and check the budget ceiling."""
    message = random.choice(AI_MESSAGES)
    start_time = time.time()

    try:
        response = await client.post(
            f"{API_BASE_URL}/api/ai/sets",
            json={"message": message},
            timeout=30.0
        )
    except httpx.HTTPError as e:
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "mode": "ai"
        }

    elapsed = round(time.time() - start_time, 3)
    if response.status_code != 200:
        return {
            "order_num": order_num,
            "success": False,
            "error": response.text[:100],
            "time": elapsed,
            "mode": "ai"
        }

    data = response.json()
    budget = data["intent"]["budget"]
    over = [b["name"] for b in data["bundles"] if b["total"] > budget]
    return {
        "order_num": order_num,
        "success": not over and len(data["bundles"]) == 3,
        "error": f"over budget: {over}" if over else None,
        "total": 0,
        "time": elapsed,
        "mode": "ai"
    }


# =============================================================================
# KITCHEN WORKFLOW
# =============================================================================

async def advance_orders(client: httpx.AsyncClient, order_ids: list[str]) -> int:
    """Move each order new -> cooking -> served; returns how many got served."""
    served = 0
    for order_id in order_ids:
        for _ in range(2):
            response = await client.post(f"{API_BASE_URL}/api/orders/{order_id}/advance")
            if response.status_code != 200:
                print(f"   Order {order_id}: {response.status_code} {response.text[:80]}")
                break
        else:
            served += 1
    return served


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(
    mode: str = "both",
    num_orders: int = TOTAL_ORDERS
) -> dict[str, Any]:
    """
    Run the chaos simulation.

    Args:
        mode: "orders", "ai", or "both"
        num_orders: Number of requests to send
    """
    print("=" * 70)
    print("🔥 CHAOS SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"📋 Total Requests: {num_orders}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"🔧 Mode: {mode}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    start_time = time.time()

    async with httpx.AsyncClient() as client:
        tasks = []
        for i in range(num_orders):
            if mode == "orders" or (mode == "both" and i % 2 == 0):
                tasks.append(send_order(client, i + 1))
            else:
                tasks.append(send_ai_request(client, i + 1))
        results = await asyncio.gather(*tasks)

        created = [r["order_id"] for r in results if r["success"] and r["mode"] == "order"]
        served = await advance_orders(client, created[: len(created) // 2])

        board = (await client.get(f"{API_BASE_URL}/api/orders/board")).json()

    total_time = round(time.time() - start_time, 2)

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    order_results = [r for r in results if r["mode"] == "order"]
    ai_results = [r for r in results if r["mode"] == "ai"]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)

    print(f"\n✅ Successful: {len(successful)}/{num_orders}")
    print(f"❌ Failed: {len(failed)}/{num_orders}")
    print(f"⏱️  Total Time: {total_time}s")

    if order_results:
        ok = len([r for r in order_results if r["success"]])
        print(f"\n🧾 Table orders: {ok}/{len(order_results)} created, {served} served")
    if ai_results:
        ok = len([r for r in ai_results if r["success"]])
        print(f"🤖 AI sets: {ok}/{len(ai_results)} within budget")
    print(f"📺 Board version: {board.get('version')} ({len(board.get('orders', []))} orders)")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        revenue = sum(r.get("total", 0) for r in successful)
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   💰 Total Revenue: {revenue} ₸")

    if failed:
        print("\n⚠️  Failed Request Details (showing first 5):")
        for f in failed[:5]:
            print(f"   #{f['order_num']} [{f['mode']}]: {f.get('error', 'Unknown error')}")

    print("\n" + "=" * 70)
    print("🔍 VERIFICATION STEPS")
    print("=" * 70)
    print("1. Check Celery terminal - all export tasks should complete")
    print("2. Run: python scripts/verify.py")
    print("3. Open data/orders.xlsx: one row per order, served statuses updated")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "total_time": total_time,
        "results": results
    }


async def test_single_flows() -> bool:
    """Test individual flows before chaos simulation."""
    print("\n" + "=" * 70)
    print("🧪 TESTING INDIVIDUAL FLOWS")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Health Check...")
        response = await client.get(f"{API_BASE_URL}/health")
        if response.status_code != 200:
            print(f"   ❌ Failed: {response.text}")
            return False
        data = response.json()
        print(f"   ✅ Status: {data.get('status')}")
        print(f"   Database: {data.get('database')}")
        print(f"   Redis: {data.get('redis')}")
        print(f"   Voice: {data.get('voice_service')}")

        print("\n2️⃣ AI Sets...")
        response = await client.post(f"{API_BASE_URL}/api/ai/sets", json={"message": AI_MESSAGES[1]})
        if response.status_code == 200:
            print(f"   ✅ {response.json()['reply']}")
        else:
            print(f"   ❌ Failed: {response.text}")

        print("\n3️⃣ Single Table Order...")
        response = await client.post(f"{API_BASE_URL}/api/orders", json=generate_order_payload())
        if response.status_code == 201:
            order = response.json()["order"]
            print(f"   ✅ Order #{order['id']} created for table {order['table']}")
            print(f"   Total: {order['total']} ₸")
        else:
            print(f"   ⚠️ Response: {response.text[:100]}")

        print("\n4️⃣ Voice Credentials...")
        response = await client.get(f"{API_BASE_URL}/api/voice/signed-url", params={"mode": "foodinfo"})
        if response.status_code == 200:
            print(f"   ✅ Provider: {response.json().get('provider')}")
        else:
            print(f"   ⚠️ Response: {response.text[:100]}")

    print("\n" + "=" * 70)
    return True


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--orders-only", action="store_true", help="Table orders only")
    parser.add_argument("--ai-only", action="store_true", help="AI set requests only")
    parser.add_argument("--requests", type=int, default=TOTAL_ORDERS, help="Number of requests")
    parser.add_argument("--skip-tests", action="store_true", help="Skip individual tests")
    args = parser.parse_args()

    if args.orders_only:
        mode = "orders"
    elif args.ai_only:
        mode = "ai"
    else:
        mode = "both"

    if not args.skip_tests:
        if not asyncio.run(test_single_flows()):
            print("\n❌ Pre-flight tests failed. Fix issues before running simulation.")
            sys.exit(1)

        print("\n✅ Pre-flight tests passed!")
        input("\nPress Enter to start chaos simulation...")

    asyncio.run(run_simulation(mode=mode, num_orders=args.requests))
