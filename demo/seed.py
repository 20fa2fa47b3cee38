#!/usr/bin/env python3
"""
Demo seed script: populates a running server with sample cards and sets.

!! NOT FOR PRODUCTION !!
This script registers users with known passwords. It is intended ONLY for
local demos and frontend development.

Everything goes through the public HTTP API, so the server applies its usual
validation, image normalization and ownership rules. Each user gets their own
httpx client (and therefore their own session cookie).

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Delete the local SQLite database and exit:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Login credentials after seeding:
    ┌──────────────────────────────┬───────────────────┐
    │ Email                        │ Password          │
    ├──────────────────────────────┼───────────────────┤
    │ alice.chen@example.com       │ AliceDemo123!     │
    │ bob.martinez@example.com     │ BobDemo123!       │
    └──────────────────────────────┴───────────────────┘
"""

import argparse
import asyncio
import io
import os
import random
import sys

import httpx
from PIL import Image, ImageDraw

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo data
# ---------------------------------------------------------------------------

USERS = [
    {
        "name": "Alice",
        "surname": "Chen",
        "email": "alice.chen@example.com",
        "password": "AliceDemo123!",
        "sets": {
            "Mono red aggro": ["Lightning Bolt", "Goblin Guide", "Monastery Swiftspear", "Mountain"],
            "Blue tempo": ["Counterspell", "Delver of Secrets", "Island"],
        },
    },
    {
        "name": "Bob",
        "surname": "Martinez",
        "email": "bob.martinez@example.com",
        "password": "BobDemo123!",
        "sets": {
            "Green ramp": ["Llanowar Elves", "Cultivate", "Forest"],
        },
    },
]

CARD_COLORS = {
    "Mountain": (176, 58, 46),
    "Island": (36, 113, 163),
    "Forest": (30, 132, 73),
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def render_card_art(name: str) -> bytes:
    """A placeholder card face: a colored rectangle with the card name."""
    color = CARD_COLORS.get(name, tuple(random.randint(40, 215) for _ in range(3)))
    img = Image.new("RGB", (488, 680), color)
    draw = ImageDraw.Draw(img)
    draw.rectangle((24, 24, 463, 655), outline=(240, 240, 240), width=6)
    draw.text((48, 48), name, fill=(255, 255, 255))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


async def register(client: httpx.AsyncClient, user: dict) -> dict:
    """Register a user; the client keeps the session cookie."""
    resp = await client.post(f"{BASE_URL}/register", json={
        "name": user["name"],
        "surname": user["surname"],
        "email": user["email"],
        "password": user["password"],
    })
    if resp.status_code == 409:
        # Already seeded once: log in instead
        resp = await client.post(f"{BASE_URL}/login", json={
            "email": user["email"],
            "password": user["password"],
        })
    resp.raise_for_status()
    return resp.json()["user"]


async def create_card(client: httpx.AsyncClient, name: str) -> int:
    resp = await client.post(f"{BASE_URL}/cards", json={"name": name})
    resp.raise_for_status()
    return resp.json()["card"]["id"]


async def upload_image(client: httpx.AsyncClient, card_id: int, name: str) -> str | None:
    resp = await client.post(
        f"{BASE_URL}/cards/{card_id}/image",
        files={"image": (f"{card_id}.png", render_card_art(name), "image/png")},
    )
    if resp.status_code != 200:
        return None
    return resp.json()["card"]["image"]["url"]


async def create_set(client: httpx.AsyncClient, name: str) -> int:
    resp = await client.post(f"{BASE_URL}/sets", json={"name": name})
    resp.raise_for_status()
    return resp.json()["set"]["id"]


async def add_cards(client: httpx.AsyncClient, set_id: int, card_ids: list[int]) -> dict:
    resp = await client.put(
        f"{BASE_URL}/sets/{set_id}/cards",
        json=[{"id": card_id} for card_id in card_ids],
    )
    resp.raise_for_status()
    return resp.json()


# ---------------------------------------------------------------------------
# Seed logic
# ---------------------------------------------------------------------------

async def seed(base_url: str) -> None:
    global BASE_URL
    BASE_URL = base_url

    print("\n========================================")
    print("  DEMO SEED - NOT FOR PRODUCTION")
    print("========================================\n")

    async with httpx.AsyncClient(timeout=30.0) as probe:
        try:
            health = await probe.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print("  Start the server first: uvicorn cardsets.main:app --reload\n")
            sys.exit(1)

    # Cards are global, so a name shared by two users' sets is created once
    card_ids: dict[str, int] = {}

    for user in USERS:
        async with httpx.AsyncClient(timeout=30.0) as client:
            print(f"Signing in {user['name']} {user['surname']}...")
            await register(client, user)
            log(f"Login: {user['email']} / {user['password']}")

            for set_name, card_names in user["sets"].items():
                for card_name in card_names:
                    if card_name in card_ids:
                        continue
                    card_id = await create_card(client, card_name)
                    card_ids[card_name] = card_id
                    url = await upload_image(client, card_id, card_name)
                    log(f"  Card #{card_id} {card_name}: {url or 'no image'}")

                set_id = await create_set(client, set_name)
                result = await add_cards(client, set_id, [card_ids[n] for n in card_names])
                log(f"  Set #{set_id} {set_name}: {result['inserted']} cards added")

    print("\n========================================")
    print("  SEED COMPLETE - Login Credentials")
    print("========================================")
    print(f"\n  {'Email':<30s} {'Password'}")
    print(f"  {'─' * 30} {'─' * 20}")
    for user in USERS:
        print(f"  {user['email']:<30s} {user['password']}")
    print()


def reset_database() -> None:
    """Delete the local SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "cardsets.db")
    db_path = os.path.normpath(db_path)

    if os.path.exists(db_path):
        os.remove(db_path)
        print(f"\n  Deleted {db_path}")
        print("  Restart the server to recreate empty tables.\n")
    else:
        print(f"\n  No database found at {db_path}\n")


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Demo seed script (NOT FOR PRODUCTION)",
        epilog="Creates sample users, cards with images, and sets for demos.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    parser.add_argument(
        "--reset", action="store_true",
        help="Delete the database file and exit (restart server to recreate)",
    )
    args = parser.parse_args()

    if args.reset:
        reset_database()
        return

    await seed(args.base_url)


if __name__ == "__main__":
    asyncio.run(main())
