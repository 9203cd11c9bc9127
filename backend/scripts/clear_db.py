#!/usr/bin/env python3
"""
Delete every row from the room directory.

Ledger state is untouched; rooms stay on chain but disappear from listings.
"""
import argparse
import asyncio
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import create_postgres_pool, get_settings
from repositories import RoomRepository


async def clear(dry_run: bool):
    pool = await create_postgres_pool(get_settings())
    try:
        rooms = RoomRepository(pool)
        count = await rooms.count()
        print(f"Room directory holds {count} row(s)")

        if dry_run:
            print("Dry run - nothing deleted")
            return

        deleted = await rooms.delete_all()
        print(f"✅ Deleted {deleted} row(s)")
    finally:
        await pool.close()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Clear the room directory")
    parser.add_argument('--dry-run', action='store_true', help='Only report the row count')
    args = parser.parse_args()
    asyncio.run(clear(args.dry_run))
