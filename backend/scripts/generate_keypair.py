#!/usr/bin/env python3
"""
Generate a fresh Ed25519 sponsor keypair.

Prints the address and the private key in the bech32 export format
accepted by SPONSOR_PRIVATE_KEY. Fund the address with SUI before use.
"""
import argparse
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from services.sponsor import SponsorIdentity


def main(show_hex: bool = False):
    identity = SponsorIdentity.generate()

    print("=" * 60)
    print("New sponsor keypair")
    print("=" * 60)
    print(f"Address:     {identity.address}")
    print(f"Private key: {identity.export_private_key()}")
    if show_hex:
        print(f"Hex key:     {identity.export_private_key_hex()}")
    print("\nAdd to .env:")
    print(f"SPONSOR_PRIVATE_KEY={identity.export_private_key()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Generate a sponsor keypair")
    parser.add_argument('--hex', action='store_true', help='Also print the raw 0x hex secret')
    args = parser.parse_args()
    main(show_hex=args.hex)
