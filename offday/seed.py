"""Seed script for development data.

Run with:  python -m offday.seed
Point it at another server with OFFDAY_BASE_URL.
"""

from __future__ import annotations

import asyncio
import os
import sys
from datetime import date, timedelta

import httpx

BASE_URL = os.environ.get("OFFDAY_BASE_URL", "http://localhost:8000")

HEADERS = {
    "Content-Type": "application/json",
    "X-Editor": "seed",
}

PERSONNEL = ["Alice", "Bob"]


def _last_weekend_day(today: date, weekday: int) -> date:
    """Most recent Saturday (5) or Sunday (6) strictly before today."""
    candidate = today - timedelta(days=1)
    while candidate.weekday() != weekday:
        candidate -= timedelta(days=1)
    return candidate


def _next_weekday(today: date, days_ahead: int) -> date:
    candidate = today + timedelta(days=days_ahead)
    while candidate.weekday() >= 5:
        candidate += timedelta(days=1)
    return candidate


async def _safe_post(client: httpx.AsyncClient, url: str, json: dict, label: str) -> dict | None:
    """POST with 409-conflict tolerance for idempotency."""
    resp = await client.post(url, json=json, headers=HEADERS)
    if resp.status_code in (200, 201):
        print(f"  [OK] {label}")
        return resp.json()
    if resp.status_code == 409:
        print(f"  [SKIP] {label} (already exists)")
        return None
    print(f"  [ERROR] {label}: {resp.status_code} {resp.text[:200]}")
    return None


async def seed_personnel(client: httpx.AsyncClient) -> None:
    """Seed roster members."""
    print("\n--- Seeding personnel ---")
    for name in PERSONNEL:
        await _safe_post(client, f"{BASE_URL}/personnel", {"name": name}, f"Personnel: {name}")


async def _has_records(client: httpx.AsyncClient, name: str) -> bool:
    resp = await client.get(f"{BASE_URL}/personnel/{name}/grants", headers=HEADERS)
    return resp.status_code == 200 and resp.json()["total"] > 0


async def seed_grants(client: httpx.AsyncClient) -> dict[str, list[str]]:
    """Seed grants: an Ops full day and an Others half day per personnel."""
    print("\n--- Seeding grants ---")
    today = date.today()
    saturday = _last_weekend_day(today, 5)
    sunday = _last_weekend_day(today, 6)

    grant_ids: dict[str, list[str]] = {}
    for name in PERSONNEL:
        if await _has_records(client, name):
            print(f"  [SKIP] {name} already has grants")
            continue

        ids: list[str] = []
        ops = await _safe_post(
            client,
            f"{BASE_URL}/personnel/{name}/grants",
            {
                "granted_date": sunday.isoformat(),
                "duration_type": "FULL",
                "reason_type": "OPS",
                "weekend_ops_date": saturday.isoformat(),
            },
            f"Grant: {name} Weekend Ops full day",
        )
        if ops:
            ids.append(ops["id"])

        others = await _safe_post(
            client,
            f"{BASE_URL}/personnel/{name}/grants",
            {
                "granted_date": today.isoformat(),
                "duration_type": "HALF",
                "reason_type": "OTHERS",
                "other_details": "Quarter-end audit support",
                "provided_by": "Manager",
            },
            f"Grant: {name} Others half day",
        )
        if others:
            ids.append(others["id"])
        grant_ids[name] = ids
    return grant_ids


async def seed_usages(client: httpx.AsyncClient, grant_ids: dict[str, list[str]]) -> None:
    """Seed one usage per personnel drawing from the seeded grants."""
    print("\n--- Seeding usages ---")
    alice_ids = grant_ids.get("Alice", [])
    if alice_ids:
        await _safe_post(
            client,
            f"{BASE_URL}/personnel/Alice/usages",
            {
                "intended_date": _next_weekday(date.today(), 7).isoformat(),
                "session": "FULL",
                "grant_ids": alice_ids,
                "comments": "Long weekend",
            },
            "Usage: Alice full day",
        )

    bob_ids = grant_ids.get("Bob", [])
    if bob_ids:
        await _safe_post(
            client,
            f"{BASE_URL}/personnel/Bob/usages",
            {
                "intended_date": _next_weekday(date.today(), 3).isoformat(),
                "session": "AM",
                "grant_ids": bob_ids[-1:],
                "comments": "Dentist",
            },
            "Usage: Bob AM half day",
        )


async def main() -> None:
    print("=" * 60)
    print("  Off Day Tracker - Development Seed Script")
    print("=" * 60)

    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            resp = await client.get(f"{BASE_URL}/health")
            if resp.status_code != 200:
                print(f"API health check failed: {resp.status_code}")
                sys.exit(1)
            print("\n[OK] API is healthy")
        except httpx.ConnectError:
            print("ERROR: Cannot connect to API at", BASE_URL)
            print("Make sure the API is running (uvicorn offday.main:app)")
            sys.exit(1)

        await seed_personnel(client)
        grant_ids = await seed_grants(client)
        await seed_usages(client, grant_ids)

    print("\n" + "=" * 60)
    print("  Seed complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
