#!/usr/bin/env python3
"""
Price Range Backfill Script.

WHAT:
    Recomputes min_price_cents / max_price_cents for every product from its
    active variants.

WHY:
    Needed once after introducing the denormalized columns, and safe to run
    again any time (the sync is idempotent) to heal drift from writes made
    outside the variant services.

USAGE:
    cd backend
    python scripts/backfill_price_ranges.py

REFERENCES:
    - backend/catalogx/services/price_range_sync.py
"""

import logging
import os
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


def main() -> int:
    from catalogx.utils.env import load_env_file, require_env

    load_env_file()
    require_env("DATABASE_URL")

    # Imported late: the database module reads DATABASE_URL at import time
    from catalogx.database import get_sync_session
    from catalogx.services.price_range_sync import sync_all_product_price_ranges

    with get_sync_session() as db:
        result = sync_all_product_price_ranges(db)

    logger.info(f"Backfill complete: {result['updated']} updated, {result['empty']} without active variants")
    return 0


if __name__ == "__main__":
    sys.exit(main())
