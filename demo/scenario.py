#!/usr/bin/env python3
"""
Demo scenario script: walks a running server through a short story.

!! NOT FOR PRODUCTION !!
The first thing it does is POST /reset, which deletes every account.

Usage:
    # With the API server running on localhost:8000:
    python demo/scenario.py

    # Custom server URL:
    python demo/scenario.py --base-url http://localhost:9000

Steps:
    1. Reset the ledger
    2. Deposit 100 into alice
    3. Transfer 40 from alice to bob (bob is created)
    4. Try to withdraw 1000 from alice (rejected, balance unchanged)
    5. Print both balances
"""

import argparse
import asyncio
import sys

import httpx


def log(msg: str) -> None:
    print(f"  {msg}")


async def send_event(client: httpx.AsyncClient, body: dict) -> httpx.Response:
    response = await client.post("/event", json=body)
    log(f"{body['type']:<9} -> {response.status_code} {response.text}")
    return response


async def get_balance(client: httpx.AsyncClient, account_id: str) -> str:
    response = await client.get("/balance", params={"account_id": account_id})
    return response.text


async def run(base_url: str) -> int:
    async with httpx.AsyncClient(base_url=base_url, timeout=10.0) as client:
        try:
            response = await client.post("/reset")
        except httpx.ConnectError:
            print(f"\n  Cannot reach {base_url}. Is the server running?\n")
            return 1
        response.raise_for_status()
        log("reset     -> 200 OK")

        await send_event(client, {"type": "deposit", "destination": "alice", "amount": 100})
        await send_event(
            client,
            {"type": "transfer", "origin": "alice", "amount": 40, "destination": "bob"},
        )
        rejected = await send_event(
            client, {"type": "withdraw", "origin": "alice", "amount": 1000}
        )

        print()
        for account_id in ("alice", "bob"):
            log(f"balance({account_id}) = {await get_balance(client, account_id)}")
        print()

        return 0 if rejected.status_code == 400 else 1


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

async def main() -> int:
    parser = argparse.ArgumentParser(
        description="Demo scenario script, NOT FOR PRODUCTION",
        epilog="Resets the ledger, then runs deposit / transfer / withdraw events.",
    )
    parser.add_argument(
        "--base-url", default="http://localhost:8000",
        help="Base URL of the running API (default: http://localhost:8000)",
    )
    args = parser.parse_args()
    return await run(args.base_url)


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
