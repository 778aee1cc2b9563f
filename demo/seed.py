#!/usr/bin/env python3
"""
Demo seed script: populates the database with sample users and accounts.

!! NOT FOR PRODUCTION !!
User and account registration are not part of the ledger API, so this script
inserts them directly through SQLAlchemy. With --exercise it then drives the
running API (use, declined use, cancel, query) so the ledger has some history.

Usage:
    # Seed the database configured by DATABASE_URL / .env:
    python demo/seed.py

    # Drop and recreate all tables first:
    python demo/seed.py --reset

    # Also call the API running on localhost:8000:
    python demo/seed.py --exercise --base-url http://localhost:8000

Seeded data:
    ┌─────────┬────────┬────────────┬─────────┬──────────────┐
    │ User id │ Name   │ Account    │ Balance │ Status       │
    ├─────────┼────────┼────────────┼─────────┼──────────────┤
    │ 12      │ Pobi   │ 1000000012 │ 10000   │ IN_USE       │
    │ 12      │ Pobi   │ 1000000013 │ 100     │ IN_USE       │
    │ 13      │ Potter │ 1000000014 │ 50000   │ IN_USE       │
    │ 13      │ Potter │ 1000000015 │ 0       │ UNREGISTERED │
    └─────────┴────────┴────────────┴─────────┴──────────────┘
"""

import argparse
import asyncio
import sys
from pathlib import Path

import httpx
from sqlalchemy import select

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from ledger.database import AsyncSessionLocal, Base, engine  # noqa: E402
from ledger.models import Account, AccountStatus, User  # noqa: E402

BASE_URL = "http://localhost:8000"

USERS = [
    {"id": 12, "name": "Pobi"},
    {"id": 13, "name": "Potter"},
]

ACCOUNTS = [
    {"user_id": 12, "account_number": "1000000012", "balance": 10_000},
    {"user_id": 12, "account_number": "1000000013", "balance": 100},
    {"user_id": 13, "account_number": "1000000014", "balance": 50_000},
    {
        "user_id": 13,
        "account_number": "1000000015",
        "balance": 0,
        "account_status": AccountStatus.UNREGISTERED,
    },
]


async def seed_database(reset: bool) -> None:
    # Default DATABASE_URL points at ./data/ledger.db
    Path("data").mkdir(exist_ok=True)

    async with engine.begin() as conn:
        if reset:
            print("Dropping all tables...")
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        for data in USERS:
            if await session.get(User, data["id"]) is None:
                session.add(User(**data))
        await session.flush()
        existing = set(
            (await session.execute(select(Account.account_number))).scalars().all()
        )
        for data in ACCOUNTS:
            if data["account_number"] not in existing:
                session.add(Account(**data))
        await session.commit()
    print(f"Seeded {len(USERS)} users and {len(ACCOUNTS)} accounts")


async def exercise_api(base_url: str) -> None:
    async with httpx.AsyncClient(base_url=base_url, timeout=10) as client:
        used = await client.post(
            "/transaction/use",
            json={"user_id": 12, "account_number": "1000000012", "amount": 1000},
        )
        used.raise_for_status()
        used_body = used.json()
        print(f"  use      -> {used_body['transaction_id']} snapshot={used_body['balance_snapshot']}")

        declined = await client.post(
            "/transaction/use",
            json={"user_id": 12, "account_number": "1000000013", "amount": 1000},
        )
        print(f"  declined -> {declined.status_code} {declined.json()['error_code']}")

        cancelled = await client.post(
            "/transaction/cancel",
            json={
                "transaction_id": used_body["transaction_id"],
                "account_number": "1000000012",
                "amount": 1000,
            },
        )
        cancelled.raise_for_status()
        print(f"  cancel   -> snapshot={cancelled.json()['balance_snapshot']}")

        queried = await client.get(f"/transaction/{used_body['transaction_id']}")
        queried.raise_for_status()
        print(f"  query    -> {queried.json()}")


async def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the ledger database with demo data")
    parser.add_argument("--reset", action="store_true", help="Drop and recreate tables first")
    parser.add_argument("--exercise", action="store_true", help="Call the running API afterwards")
    parser.add_argument("--base-url", default=BASE_URL, help=f"API base URL (default: {BASE_URL})")
    args = parser.parse_args()

    await seed_database(args.reset)
    if args.exercise:
        print(f"Exercising API at {args.base_url}...")
        try:
            await exercise_api(args.base_url)
        except httpx.ConnectError:
            print(f"ERROR: Cannot connect to {args.base_url}. Is the server running?")
            sys.exit(1)
    await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
