"""
Seed the database with every possible 6-digit code, in random order.

Allocation only flips a flag on rows that already exist, which keeps it
fast; the price is this one-time job, which takes anywhere from a few
seconds to a minute.

    python -m tabletent.seed [--db PATH] [--batch-size N] [--force]
"""

import argparse
import logging
import random
import time

from . import db, models

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10000


def all_codes_shuffled():
    codes = [f"{n:06d}" for n in range(db.NUM_POSSIBLE_CODES)]
    random.shuffle(codes)
    return codes


def seed_database(batch_size: int = DEFAULT_BATCH_SIZE, force: bool = False) -> int:
    """
    Create the schema and insert all codes. Returns how many codes were
    inserted, 0 when the database was already initialized.
    """
    if not force and db.is_db_initialized():
        logger.info("Database is already initialized.")
        return 0
    if batch_size < 1:
        raise ValueError("batch_size must be positive")

    logger.info("Database not yet initialized. Initializing...")
    start = time.monotonic()

    db.delete_db()
    db.init_db()

    codes = all_codes_shuffled()
    inserted = 0
    for i in range(0, len(codes), batch_size):
        batch = codes[i:i + batch_size]
        added = models.add_unique_codes(batch)
        if added != len(batch):
            raise RuntimeError(
                f"Batch at offset {i} inserted {added} of {len(batch)} codes"
            )
        inserted += added

    logger.info(f"Database initialized in {time.monotonic() - start:.1f} secs.")
    return inserted


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__.strip().splitlines()[0])
    parser.add_argument("--db", help="path of the SQLite database file")
    parser.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    parser.add_argument(
        "--force", action="store_true", help="recreate even if already seeded"
    )
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    if args.db:
        db.DB_PATH = args.db

    seed_database(batch_size=args.batch_size, force=args.force)


if __name__ == "__main__":
    main()
