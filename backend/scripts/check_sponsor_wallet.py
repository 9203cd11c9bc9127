#!/usr/bin/env python3
"""
Show the sponsor address and its SUI balance on the configured network.
"""
import asyncio
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import get_settings
from services.errors import LedgerError
from services.sponsor import SponsorIdentity, SponsorKeyError
from services.sui_client import SuiClient

MIST_PER_SUI = 1_000_000_000
LOW_BALANCE_SUI = 1.0


async def check():
    settings = get_settings()

    try:
        sponsor = SponsorIdentity.from_encoded(settings.sponsor_private_key)
    except SponsorKeyError as e:
        print(f"❌ {e}")
        return 1

    print(f"Network: {settings.network} ({settings.sui_rpc_url})")
    print(f"Sponsor: {sponsor.address}")

    client = SuiClient(settings.sui_rpc_url, timeout=settings.sui_rpc_timeout_seconds)
    try:
        mist = await client.get_balance(sponsor.address)
    except LedgerError as e:
        print(f"❌ Could not read balance: {e.message}")
        return 1
    finally:
        await client.close()

    sui = mist / MIST_PER_SUI
    print(f"Balance: {sui:.4f} SUI ({mist} MIST)")
    if sui < LOW_BALANCE_SUI:
        print("⚠️  Balance is low - sponsored transactions will start failing")
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(check()))
