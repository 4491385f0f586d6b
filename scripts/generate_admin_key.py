#!/usr/bin/env python3
"""
Generate the administrative key pair for the minter.

This script generates:
- Admin payment signing key (admin.skey)
- Admin payment verification key (admin.vkey)
- The MINTER_ADMIN_ADDRESS value for each network
"""

import argparse
import json
from pathlib import Path

from pycardano import PaymentSigningKey, PaymentVerificationKey

from minter.config import NetworkType
from minter.service import AdminAuthority


def generate_admin_key(output_dir: str = "./keys") -> dict:
    """
    Generate a new admin key pair.

    Args:
        output_dir: Directory to save keys

    Returns:
        Dictionary with key info and admin addresses
    """
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    signing_key = PaymentSigningKey.generate()
    verification_key = PaymentVerificationKey.from_signing_key(signing_key)

    skey_path = output_path / "admin.skey"
    signing_key.save(str(skey_path))

    vkey_path = output_path / "admin.vkey"
    verification_key.save(str(vkey_path))

    info = {
        "signing_key_path": str(skey_path),
        "verification_key_path": str(vkey_path),
        "verification_key_hash": verification_key.hash().to_primitive().hex(),
        "admin_addresses": {
            network.value: AdminAuthority.from_verification_key(verification_key, network).address_str
            for network in (NetworkType.MAINNET, NetworkType.PREPROD, NetworkType.PREVIEW)
        },
    }

    info_path = output_path / "admin_info.json"
    with open(info_path, "w") as f:
        json.dump(info, f, indent=2)

    return info


def main():
    parser = argparse.ArgumentParser(description="Generate the minter admin key")
    parser.add_argument(
        "--output-dir", "-o",
        default="./keys",
        help="Output directory for keys (default: ./keys)"
    )
    parser.add_argument(
        "--network",
        choices=["mainnet", "preprod", "preview"],
        default="preprod",
        help="Network to print the admin address for (default: preprod)"
    )
    parser.add_argument(
        "--force", "-f",
        action="store_true",
        help="Overwrite existing keys"
    )

    args = parser.parse_args()

    skey_path = Path(args.output_dir) / "admin.skey"
    if skey_path.exists() and not args.force:
        print(f"Admin key already exists at {skey_path}")
        print("Use --force to overwrite")
        return

    info = generate_admin_key(args.output_dir)

    print(f"Admin key saved to: {args.output_dir}/")
    print("   - admin.skey (KEEP SECRET!)")
    print("   - admin.vkey")
    print("   - admin_info.json")
    print()
    print("Add to your .env:")
    print(f"   MINTER_NETWORK={args.network}")
    print(f"   MINTER_ADMIN_ADDRESS={info['admin_addresses'][args.network]}")


if __name__ == "__main__":
    main()
