#!/usr/bin/env python3
"""
Demo seed script - populates the database with sample users and cards.

!! NOT FOR PRODUCTION !!
Users normally come from the external identity provider. This script
inserts them straight into the database, mints bearer tokens for them
with the local SECRET_KEY, and then drives the running API: an admin
issues cards, members move money between their own cards, and one member
files a block request.

Usage:
    # With the API server running on localhost:8000:
    python demo/seed.py

    # Reset the database and re-seed:
    python demo/seed.py --reset

    # Custom server URL:
    python demo/seed.py --base-url http://localhost:9000

Tokens for every seeded user are printed at the end; paste one into
Swagger UI's "Authorize" dialog.
"""

import argparse
import asyncio
import os
import random
import sys

import httpx

BASE_URL = "http://localhost:8000"

# ---------------------------------------------------------------------------
# Demo users
# ---------------------------------------------------------------------------

ADMIN = {
    "email": "admin@bankdemo.com",
    "first_name": "Admin",
    "last_name": "User",
}

MEMBERS = [
    {
        "email": "alice.chen@example.com",
        "first_name": "Alice",
        "last_name": "Chen",
        "cards": ["850.00", "5000.00"],
    },
    {
        "email": "bob.martinez@example.com",
        "first_name": "Bob",
        "last_name": "Martinez",
        "cards": ["1200.00", "0.00"],
    },
    {
        "email": "carol.nguyen@example.com",
        "first_name": "Carol",
        "last_name": "Nguyen",
        "cards": ["3200.00"],
    },
]

TRANSFER_DESCRIPTIONS = [
    "Monthly savings",
    "Rent split",
    "Travel budget",
    "Move to spending card",
    None,
]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def log(msg: str) -> None:
    print(f"  {msg}")


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def create_users() -> dict[str, tuple[str, str]]:
    """
    Insert the demo users directly and return {email: (user_id, token)}.

    Stands in for the identity provider: there is no signup endpoint.
    """
    from sqlalchemy import select
    from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
    from app.config import settings
    from app.database import create_tables
    from app.domain.authorization import Role
    from app.models.user import User
    from app.security import create_access_token

    engine = create_async_engine(settings.DATABASE_URL)
    await create_tables(engine)
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    tokens: dict[str, tuple[str, str]] = {}
    async with session_factory() as session:
        for info, role in [(ADMIN, Role.ADMIN)] + [(m, Role.USER) for m in MEMBERS]:
            result = await session.execute(select(User).where(User.email == info["email"]))
            user = result.scalar_one_or_none()
            if user is None:
                user = User(
                    email=info["email"],
                    first_name=info["first_name"],
                    last_name=info["last_name"],
                    role=role,
                )
                session.add(user)
                await session.flush()
            token = create_access_token(
                {"sub": str(user.id), "email": user.email, "role": user.role.value},
            )
            tokens[user.email] = (str(user.id), token)
        await session.commit()

    await engine.dispose()
    return tokens


async def issue_card(client: httpx.AsyncClient, admin_token: str, user_id: str,
                     initial_balance: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/admin/cards",
        json={"user_id": user_id, "initial_balance": initial_balance},
        headers=auth_header(admin_token),
    )
    resp.raise_for_status()
    return resp.json()


async def do_transfer(client: httpx.AsyncClient, token: str,
                      from_id: str, to_id: str, amount: str,
                      description: str | None) -> dict:
    resp = await client.post(
        f"{BASE_URL}/transfers",
        json={
            "from_card_id": from_id,
            "to_card_id": to_id,
            "amount": amount,
            "description": description,
        },
        headers=auth_header(token),
    )
    return resp.json()


async def request_block(client: httpx.AsyncClient, token: str, card_id: str, reason: str) -> dict:
    resp = await client.post(
        f"{BASE_URL}/cards/{card_id}/block-requests",
        json={"reason": reason},
        headers=auth_header(token),
    )
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

    print("Creating users...")
    tokens = await create_users()
    _, admin_token = tokens[ADMIN["email"]]
    log(f"Admin: {ADMIN['email']}")

    async with httpx.AsyncClient(timeout=30.0) as client:
        # Health check
        try:
            health = await client.get(f"{BASE_URL}/health")
            health.raise_for_status()
        except (httpx.ConnectError, httpx.HTTPStatusError):
            print(f"  ERROR: Cannot connect to {BASE_URL}")
            print(f"  Start the server first: uvicorn app.main:app --reload\n")
            sys.exit(1)

        for member in MEMBERS:
            name = f"{member['first_name']} {member['last_name']}"
            print(f"\nIssuing cards for {name}...")
            user_id, token = tokens[member["email"]]

            cards = []
            for balance in member["cards"]:
                card = await issue_card(client, admin_token, user_id, balance)
                cards.append(card)
                log(f"{card['masked_number']} (exp {card['masked_expiration']}): {card['balance']}")

            if len(cards) < 2:
                continue

            # A few transfers in both directions between the member's cards
            for _ in range(random.randint(2, 5)):
                source, destination = random.sample(cards, 2)
                amount = f"{random.randint(5, 150)}.{random.randint(0, 99):02d}"
                result = await do_transfer(
                    client, token, source["id"], destination["id"],
                    amount, random.choice(TRANSFER_DESCRIPTIONS),
                )
                if "error_type" in result:
                    log(f"Declined {amount}: {result['detail']}")
                else:
                    log(f"{result['from_card_masked_number']} -> "
                        f"{result['to_card_masked_number']}: {result['amount']}")

        # --- Block request awaiting an admin ---
        print("\nFiling a block request...")
        _, bob_token = tokens["bob.martinez@example.com"]
        resp = await client.get(f"{BASE_URL}/cards", headers=auth_header(bob_token))
        resp.raise_for_status()
        bob_cards = resp.json()
        if bob_cards:
            result = await request_block(client, bob_token, bob_cards[-1]["id"], "Card lost while travelling")
            log(f"{result.get('card_masked_number')}: {result.get('status', result.get('detail'))}")

    # --- Summary ---
    print("\n========================================")
    print("  SEED COMPLETE - Bearer Tokens")
    print("========================================")
    print(f"\n  {'Email':<30s} {'Role':<6s} Token")
    print(f"  {'─' * 30} {'─' * 6} {'─' * 20}")
    print(f"  {ADMIN['email']:<30s} {'ADMIN':<6s} {admin_token}")
    for m in MEMBERS:
        print(f"  {m['email']:<30s} {'USER':<6s} {tokens[m['email']][1]}")
    print()


def reset_database() -> None:
    """Delete the SQLite database file so the server recreates it on restart."""
    db_path = os.path.join(os.path.dirname(__file__), "..", "data", "bank.db")
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
        description="Demo seed script - NOT FOR PRODUCTION",
        epilog="Creates sample users, cards, transfers and a block request for demos.",
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
