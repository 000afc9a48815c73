"""Product price range synchronization.

WHAT: Recomputes a product's denormalized min/max price from its active variants
WHY: Marketplace price sorting reads products.min_price_cents / max_price_cents
     directly, never a live aggregate over variants
REFERENCES:
  - catalogx/services/catalog_variants.py: calls this after every variant mutation
  - catalogx/services/marketplace_query.py: price_asc / price_desc sorts
  - scripts/backfill_price_ranges.py: one-off backfill

Consistency rules:
  - Aggregate covers ACTIVE variants only; inactive prices never leak in
  - No active variant -> 0/0 (not an error)
  - The product row is locked and the aggregate is computed inside the same
    UPDATE statement that writes it, so concurrent variant writers cannot
    overwrite a fresher value with a stale one
  - Idempotent: running it again on an unchanged variant set is a no-op
"""

import logging
from typing import Dict, Tuple
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..models import Product, ProductVariant

logger = logging.getLogger(__name__)


def _active_price_subquery(aggregate, product_id: UUID):
    return (
        select(func.coalesce(aggregate(ProductVariant.price_in_cents), 0))
        .where(ProductVariant.product_id == product_id)
        .where(ProductVariant.is_active.is_(True))
        .scalar_subquery()
    )


def sync_product_price_range(db: Session, product_id: UUID) -> Tuple[int, int]:
    """Write min/max active variant price onto the product.

    Does not commit: callers own the transaction so the variant write and the
    aggregate land together.

    Returns:
        (min_price_cents, max_price_cents) as stored, (0, 0) if the product
        has no active variant or does not exist.
    """
    # Flush pending variant writes so the subqueries see them
    db.flush()

    # Row lock on the product for the rest of the transaction (no-op on SQLite)
    locked = (
        db.query(Product.id)
        .filter(Product.id == product_id)
        .with_for_update()
        .first()
    )
    if locked is None:
        logger.warning(f"[PRICE_SYNC] Product {product_id} not found, nothing to sync")
        return 0, 0

    db.execute(
        update(Product)
        .where(Product.id == product_id)
        .values(
            min_price_cents=_active_price_subquery(func.min, product_id),
            max_price_cents=_active_price_subquery(func.max, product_id),
        )
        # Expires the price attributes on any loaded Product instance
        .execution_options(synchronize_session="fetch")
    )

    row = db.execute(
        select(Product.min_price_cents, Product.max_price_cents).where(Product.id == product_id)
    ).one()

    logger.debug(f"[PRICE_SYNC] Product {product_id}: {row.min_price_cents}-{row.max_price_cents}")
    return int(row.min_price_cents), int(row.max_price_cents)


def sync_all_product_price_ranges(db: Session) -> Dict[str, int]:
    """Backfill the price range of every product and commit.

    Returns:
        {"updated": products with at least one active variant,
         "empty": products reset to 0/0}
    """
    product_ids = [row.id for row in db.query(Product.id).all()]

    updated = 0
    empty = 0
    for product_id in product_ids:
        min_price, max_price = sync_product_price_range(db, product_id)
        if max_price > 0 or min_price > 0:
            updated += 1
        else:
            empty += 1

    db.commit()
    logger.info(f"[PRICE_SYNC] Backfill done: {updated} products updated, {empty} had no active variants")
    return {"updated": updated, "empty": empty}
