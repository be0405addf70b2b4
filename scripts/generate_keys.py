#!/usr/bin/env python3
"""Generate the RSA keypair used to sign and verify tokens.

Usage:
    python scripts/generate_keys.py --out-dir ./certs
    python scripts/generate_keys.py --bits 3072 --force

Writes ``key.pem`` (PKCS8, unencrypted) and ``cert.pem`` (SubjectPublicKeyInfo)
matching the default PRIVATE_KEY_PATH / PUBLIC_KEY_PATH settings. Only the
issuing process needs ``key.pem``; verifiers need ``cert.pem`` alone.
"""
from __future__ import annotations

import argparse
import os
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def write_keypair(out_dir: Path, bits: int, force: bool = False) -> tuple[Path, Path]:
    from keuthlie.service.keys import generate_rsa_keypair

    private_path = out_dir / "key.pem"
    public_path = out_dir / "cert.pem"
    for path in (private_path, public_path):
        if path.exists() and not force:
            raise FileExistsError(f"{path} exists; pass --force to overwrite")

    private_pem, public_pem = generate_rsa_keypair(key_size=bits)
    out_dir.mkdir(parents=True, exist_ok=True)
    private_path.write_bytes(private_pem)
    os.chmod(private_path, 0o600)
    public_path.write_bytes(public_pem)
    return private_path, public_path


def main():
    parser = argparse.ArgumentParser(
        description="Generate the keuthlie token signing keypair",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--out-dir", default="./certs", help="Directory for the PEM files")
    parser.add_argument("--bits", type=int, default=4096, help="RSA modulus size")
    parser.add_argument("--force", action="store_true", help="Overwrite existing files")
    args = parser.parse_args()

    if args.bits < 2048:
        print("Error: --bits must be at least 2048")
        sys.exit(1)

    try:
        private_path, public_path = write_keypair(Path(args.out_dir), args.bits, args.force)
    except FileExistsError as e:
        print(f"Error: {e}")
        sys.exit(1)

    print(f"Private key: {private_path}")
    print(f"Public key:  {public_path}")


if __name__ == "__main__":
    main()
