#!/usr/bin/env python3
"""
Print the persisted cart and wishlist of a shopper session.

Reads from the backend selected by VAXDOG_STORAGE_BACKEND.

Usage:
    python scripts/inspect_state.py --session abc123
    python scripts/inspect_state.py --session abc123 --json
    python scripts/inspect_state.py --session abc123 --wipe  # delete stored keys
"""

import argparse
import asyncio
import json
import sys

from vaxdog.commerce import create_engine, create_store
from vaxdog.config import StorageKeys
from vaxdog.money import format_money


async def wipe(session_id: str) -> None:
    store = create_store(session_id)
    for key in (StorageKeys.STATE, StorageKeys.CART, StorageKeys.WISHLIST):
        await store.delete(key)
    print(f"Wiped stored state for session {session_id}")


async def show(session_id: str, as_json: bool) -> None:
    engine = create_engine(session_id)
    await engine.initialize()

    if as_json:
        payload = {
            "cart": engine.cart_summary(),
            "wishlist": [entry.to_dict() for entry in engine.wishlist_items],
        }
        print(json.dumps(payload, indent=2, ensure_ascii=False))
        return

    print(f"=== CART ({engine.cart_item_count} items) ===")
    for line in engine.cart_items:
        limit = line.effective_stock_limit(engine.default_stock_limit)
        print(
            f"  {line.product_id:12s} {line.name[:30]:30s} x{line.quantity:<3d} "
            f"{format_money(line.line_total, engine.currency):>12s}  (max {limit})"
        )
    print(f"  Total: {format_money(engine.cart_total, engine.currency)}")

    print(f"\n=== WISHLIST ({engine.wishlist_count}) ===")
    for entry in engine.wishlist_items:
        stock = "" if entry.in_stock else "  [out of stock]"
        print(f"  {entry.product_id:12s} {entry.name[:30]:30s} {format_money(entry.unit_price, engine.currency):>12s}{stock}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Inspect persisted cart/wishlist state")
    parser.add_argument("--session", default="default", help="Shopper session id")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")
    parser.add_argument("--wipe", action="store_true", help="Delete the stored state for the session")
    args = parser.parse_args()

    try:
        if args.wipe:
            asyncio.run(wipe(args.session))
        else:
            asyncio.run(show(args.session, args.json))
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
