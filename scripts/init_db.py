#!/usr/bin/env python3
"""Create the keuthlie_auth identity table.

Usage:
    DATABASE_URL=postgresql://localhost:5432/keuthlie python scripts/init_db.py
    python scripts/init_db.py --database-url postgresql://... --drop-existing
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def main():
    from keuthlie.config import Settings
    from keuthlie.storage.postgres import PostgresStore

    settings = Settings.from_env()
    parser = argparse.ArgumentParser(
        description="Create the keuthlie identity schema",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--database-url",
        default=settings.database_url,
        help="PostgreSQL connection string (or set DATABASE_URL env var)",
    )
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop the table first; destroys every stored identity",
    )
    args = parser.parse_args()

    store = PostgresStore(
        args.database_url,
        min_size=1,
        max_size=1,
        timeout=settings.db_pool_timeout_seconds,
        verify_schema=False,
    )
    try:
        store.create_schema(drop_existing=args.drop_existing)
    finally:
        store.close()
    print("Schema ready.")


if __name__ == "__main__":
    main()
