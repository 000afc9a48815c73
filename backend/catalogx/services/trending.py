"""Trending products.

WHAT: Ranks products by engagement (product views, contact clicks and
      marketplace clicks) over the trailing 7 days
WHY: Cheap popularity signal straight off the append-only event log; no
     precomputed scores to keep fresh
REFERENCES:
  - catalogx/models.py: TRENDING_EVENT_TYPES
  - catalogx/services/marketplace_query.py: inclusion rule and card building

Over-fetches 2x the limit because some ranked products may no longer be
discoverable; those are dropped (never replaced by lower ranked ones beyond
the candidate set) and the rest keep their rank order.
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ..models import TRENDING_EVENT_TYPES, EngagementEvent, Product
from ..schemas import MarketplaceProduct
from ..utils.time import as_naive_utc, utc_now
from .marketplace_query import build_product_cards, discoverable_conditions, with_card_options

logger = logging.getLogger(__name__)

TRENDING_WINDOW_DAYS = 7
CANDIDATE_FACTOR = 2


def get_trending_products(db: Session, limit: int = 20, now: Optional[datetime] = None) -> List[MarketplaceProduct]:
    """Top products by event count, ties broken by product id."""
    now = as_naive_utc(now) if now is not None else utc_now()
    since = now - timedelta(days=TRENDING_WINDOW_DAYS)

    event_count = func.count(EngagementEvent.id)
    ranked = (
        db.query(EngagementEvent.product_id, event_count.label("events"))
        .filter(
            EngagementEvent.product_id.isnot(None),
            EngagementEvent.type.in_(TRENDING_EVENT_TYPES),
            EngagementEvent.created_at >= since,
        )
        .group_by(EngagementEvent.product_id)
        .order_by(event_count.desc(), EngagementEvent.product_id.asc())
        .limit(limit * CANDIDATE_FACTOR)
        .all()
    )
    if not ranked:
        return []

    candidate_ids = [row.product_id for row in ranked]
    products = (
        with_card_options(db.query(Product))
        .filter(Product.id.in_(candidate_ids), *discoverable_conditions())
        .all()
    )
    by_id = {product.id: product for product in products}

    ordered = [by_id[product_id] for product_id in candidate_ids if product_id in by_id][:limit]
    logger.debug(f"[MARKETPLACE] Trending: {len(ranked)} candidates, {len(ordered)} eligible")
    return build_product_cards(db, ordered)
