"""Pre-generate coupon batches into the configured database."""
from __future__ import annotations

import argparse
import sys

from rrc_coupons.core.settings import settings
from rrc_coupons.db.session import SessionLocal, create_tables
from rrc_coupons.services.pool import PoolError, PoolManager


def seed(batches: int, size: int) -> list[int]:
    """Store ``batches`` new batches of ``size`` codes each and return their ids."""
    db = SessionLocal()
    try:
        pool = PoolManager(db, batch_size=size)
        return [pool.replenish() for _ in range(batches)]
    finally:
        db.close()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Seed the available coupon pool")
    parser.add_argument(
        "--batches",
        type=int,
        default=1,
        help="Number of batches to create (default: 1)",
    )
    parser.add_argument(
        "--size",
        type=int,
        default=settings.coupon_batch_size,
        help="Coupons per batch (defaults to COUPON_BATCH_SIZE)",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before seeding.",
    )
    args = parser.parse_args(argv)

    if args.batches < 1 or args.size < 1:
        parser.error("--batches and --size must be positive")

    if args.create_tables:
        create_tables()

    try:
        batch_ids = seed(args.batches, args.size)
    except PoolError as exc:
        print(f"[seed_pool] ERROR ({exc.stage}): {exc}", file=sys.stderr)
        sys.exit(1)

    for batch_id in batch_ids:
        print(f"[seed_pool] stored batch {batch_id} with {args.size} coupons")


if __name__ == "__main__":
    main()
