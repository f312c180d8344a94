"""
Chaos Simulation Script

Fires concurrent orders at a running server and races two redemptions of
the same manager invite. Run from project root: python scripts/simulate.py

The server's rate limiter counts every request from this machine; raise
RATE_LIMIT_MAX_REQUESTS on the server before simulating large loads.
"""

import asyncio
import sys
import random
import time
import argparse
import uuid
from datetime import datetime
from typing import Any

import httpx

# Windows event loop fix
if sys.platform == "win32":
    asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())

# Configuration
API_BASE_URL = "http://localhost:8080"
TOTAL_ORDERS = 50
PASSWORD = "simulate-password-1"

CUSTOMER_NAMES = ["John", "Jane", "Mike", "Sarah", "Tom", "Emma", "David", "Lisa", None, "  "]
MENU = {
    "Pizzas": [("Pizza Margherita", 14.99), ("Pepperoni Pizza", 16.99)],
    "Starters": [("Caesar Salad", 8.99), ("Garlic Bread", 5.99)],
    "Desserts": [("Tiramisu", 7.99)],
    "Drinks": [("Coke", 2.99), ("Sparkling Water", 3.49)],
}


def auth_headers(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


def unique_email(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}@example.com"


# =============================================================================
# SETUP
# =============================================================================

async def setup_restaurant(client: httpx.AsyncClient, num_tables: int = 5) -> dict[str, Any]:
    """Register an owner, create a restaurant with a menu and some tables."""
    response = await client.post(
        f"{API_BASE_URL}/auth/register",
        json={"email": unique_email("owner"), "password": PASSWORD},
    )
    response.raise_for_status()
    token = response.json()["token"]
    headers = auth_headers(token)

    response = await client.post(
        f"{API_BASE_URL}/restaurants",
        json={"name": f"Simulation Bistro {datetime.now():%H%M%S}"},
        headers=headers,
    )
    response.raise_for_status()
    restaurant_id = response.json()["id"]

    prices: dict[str, float] = {}
    for section_name, items in MENU.items():
        response = await client.post(
            f"{API_BASE_URL}/restaurants/{restaurant_id}/menu/sections",
            json={"name": section_name},
            headers=headers,
        )
        response.raise_for_status()
        section_id = response.json()["id"]
        for name, price in items:
            response = await client.post(
                f"{API_BASE_URL}/restaurants/{restaurant_id}/menu/sections/{section_id}/items",
                json={"name": name, "price": price},
                headers=headers,
            )
            response.raise_for_status()
            prices[response.json()["id"]] = price

    codes = []
    for i in range(num_tables):
        response = await client.post(
            f"{API_BASE_URL}/restaurants/{restaurant_id}/tables",
            json={"name": f"Table {i + 1}"},
            headers=headers,
        )
        response.raise_for_status()
        codes.append(response.json()["unique_code"])

    return {
        "token": token,
        "restaurant_id": restaurant_id,
        "prices": prices,
        "table_codes": codes,
    }


# =============================================================================
# ORDER SIMULATION
# =============================================================================

def generate_order_payload(setup: dict[str, Any]) -> tuple[dict[str, Any], float]:
    """Random order plus the total the server is expected to compute."""
    item_ids = random.sample(list(setup["prices"]), k=random.randint(1, 4))
    items = []
    expected = 0.0
    for item_id in item_ids:
        quantity = random.randint(1, 3)
        items.append({
            "menu_item_id": item_id,
            "quantity": quantity,
            "special_requests": random.choice([None, "No onions", "Extra cheese", "Spicy"]),
        })
        expected += setup["prices"][item_id] * quantity

    payload = {
        "table_code": random.choice(setup["table_codes"]),
        "items": items,
        "customer_name": random.choice(CUSTOMER_NAMES),
    }
    return payload, round(expected, 2)


async def send_order(
    client: httpx.AsyncClient,
    setup: dict[str, Any],
    order_num: int,
) -> dict[str, Any]:
    payload, expected_total = generate_order_payload(setup)
    start_time = time.time()

    try:
        response = await client.post(f"{API_BASE_URL}/orders", json=payload, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)

        if response.status_code == 201:
            data = response.json()
            return {
                "order_num": order_num,
                "success": True,
                "order_id": data.get("order_id"),
                "total": data.get("total_amount"),
                "total_matches": abs(data.get("total_amount", 0) - expected_total) < 0.01,
                "time": elapsed,
            }
        return {
            "order_num": order_num,
            "success": False,
            "error": f"{response.status_code} {response.text[:100]}",
            "time": elapsed,
        }
    except httpx.HTTPError as e:
        elapsed = round(time.time() - start_time, 3)
        return {
            "order_num": order_num,
            "success": False,
            "error": str(e)[:100],
            "time": elapsed,
        }


# =============================================================================
# INVITE RACE
# =============================================================================

async def race_invite(client: httpx.AsyncClient, setup: dict[str, Any]) -> bool:
    """Redeem one invite twice at once; exactly one attempt may succeed."""
    email = unique_email("manager")
    response = await client.post(
        f"{API_BASE_URL}/restaurants/{setup['restaurant_id']}/managers/invite",
        json={"email": email, "can_manage_menu": True},
        headers=auth_headers(setup["token"]),
    )
    response.raise_for_status()
    invite_token = response.json()["invite_token"]

    join_url = f"{API_BASE_URL}/restaurants/{setup['restaurant_id']}/managers/join/{invite_token}"
    body = {"email": email, "password": PASSWORD}
    responses = await asyncio.gather(
        client.post(join_url, json=body),
        client.post(join_url, json=body),
    )
    statuses = sorted(r.status_code for r in responses)
    print(f"   Redemption statuses: {statuses}")

    response = await client.get(
        f"{API_BASE_URL}/restaurants/{setup['restaurant_id']}/managers",
        headers=auth_headers(setup["token"]),
    )
    response.raise_for_status()
    grants = [m for m in response.json() if m["email"] == email]
    print(f"   Grants for {email}: {len(grants)}")

    return statuses.count(200) == 1 and len(grants) == 1


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(num_orders: int = TOTAL_ORDERS, races: int = 3) -> dict[str, Any]:
    print("=" * 70)
    print("CHAOS SIMULATION - HIGH CONCURRENCY TEST")
    print("=" * 70)
    print(f"Total Orders: {num_orders}")
    print(f"Target: {API_BASE_URL}")
    print(f"Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        response = await client.get(f"{API_BASE_URL}/health")
        print(f"\nHealth: {response.json().get('status')}")

        setup = await setup_restaurant(client)
        print(f"Restaurant {setup['restaurant_id']} ready with {len(setup['table_codes'])} tables")

        print("\nFiring orders...\n")
        start_time = time.time()
        tasks = [send_order(client, setup, i + 1) for i in range(num_orders)]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start_time, 2)

        print("\nRacing invite redemptions...")
        race_results = []
        for _ in range(races):
            race_results.append(await race_invite(client, setup))

    successful = [r for r in results if r["success"]]
    failed = [r for r in results if not r["success"]]
    mismatched = [r for r in successful if not r["total_matches"]]

    print("\n" + "=" * 70)
    print("SIMULATION RESULTS")
    print("=" * 70)
    print(f"\nSuccessful Orders: {len(successful)}/{num_orders}")
    print(f"Failed Orders: {len(failed)}/{num_orders}")
    print(f"Totals not matching menu prices: {len(mismatched)}")
    print(f"Total Time: {total_time}s")

    if successful:
        avg_time = round(sum(r["time"] for r in successful) / len(successful), 3)
        print("\nPerformance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in successful)}s")
        print(f"   Slowest: {max(r['time'] for r in successful)}s")
        print(f"   Total Revenue: ${sum(r['total'] for r in successful):.2f}")

    if failed:
        print("\nFailed Order Details (showing first 5):")
        for f in failed[:5]:
            print(f"   Order #{f['order_num']}: {f.get('error', 'Unknown error')}")

    print(f"\nInvite races with exactly one winner: {sum(race_results)}/{len(race_results)}")
    print("=" * 70)

    return {
        "total": num_orders,
        "successful": len(successful),
        "failed": len(failed),
        "mismatched": len(mismatched),
        "races_ok": all(race_results),
        "total_time": total_time,
    }


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Chaos Simulation Script")
    parser.add_argument("--orders", type=int, default=TOTAL_ORDERS, help="Number of orders")
    parser.add_argument("--races", type=int, default=3, help="Number of invite races")
    parser.add_argument("--url", default=API_BASE_URL, help="Server base URL")
    args = parser.parse_args()

    API_BASE_URL = args.url.rstrip("/")
    summary = asyncio.run(run_simulation(args.orders, args.races))
    sys.exit(0 if summary["mismatched"] == 0 and summary["races_ok"] else 1)
