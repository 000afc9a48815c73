"""Promotion reporting for the seller dashboard.

WHAT: Aggregate stats, per-promotion daily series and promoted-vs-organic comparison
WHY: Impressions/clicks are stored as running totals on the listing, not per
     day, so daily impressions are an even spread over the run; daily clicks
     come from PROMOTED_CLICK events where they exist
REFERENCES:
  - catalogx/services/engagement_tracker.py: writes the counters and click events
  - catalogx/routers/promotions.py: /promotions/stats, /performance, /comparison
"""

import logging
import math
from collections import defaultdict
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ..models import (
    EngagementEvent,
    EngagementEventTypeEnum,
    PromotedListing,
    PromotionStatusEnum,
)
from ..schemas import (
    DailyPerformancePoint,
    EstimatedOrders,
    PromotionComparison,
    PromotionDailyPerformance,
    PromotionStats,
)
from ..utils.time import as_naive_utc, utc_now

logger = logging.getLogger(__name__)

PERFORMANCE_LOOKBACK_DAYS = 90
PERFORMANCE_MAX_PROMOTIONS = 10
PERFORMANCE_MAX_SERIES_DAYS = 30
COMPARISON_WINDOW_DAYS = 30
DEFAULT_CONVERSION_RATE = 8.0
ESTIMATED_ORDER_LOW = 0.10
ESTIMATED_ORDER_HIGH = 0.18


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _round_one_decimal(value: float) -> float:
    return _round_half_up(value * 10) / 10


def get_shop_promotion_stats(db: Session, shop_id: UUID, now: Optional[datetime] = None) -> PromotionStats:
    """Live promotion count plus lifetime spend, impressions and clicks."""
    now = as_naive_utc(now) if now is not None else utc_now()

    active_count = (
        db.query(func.count(PromotedListing.id))
        .filter(
            PromotedListing.shop_id == shop_id,
            PromotedListing.status == PromotionStatusEnum.active,
            PromotedListing.expires_at > now,
        )
        .scalar()
    )
    spent, impressions, clicks = (
        db.query(
            func.coalesce(func.sum(PromotedListing.amount_paid_cents), 0),
            func.coalesce(func.sum(PromotedListing.impressions), 0),
            func.coalesce(func.sum(PromotedListing.clicks), 0),
        )
        .filter(PromotedListing.shop_id == shop_id)
        .one()
    )

    return PromotionStats(
        active_count=active_count or 0,
        total_spent_cents=int(spent),
        total_impressions=int(impressions),
        total_clicks=int(clicks),
    )


def _daily_clicks_by_product(
    db: Session, shop_id: UUID, product_ids: List[UUID], since: datetime
) -> Dict[UUID, Dict[str, int]]:
    events = (
        db.query(EngagementEvent.product_id, EngagementEvent.created_at)
        .filter(
            EngagementEvent.shop_id == shop_id,
            EngagementEvent.product_id.in_(product_ids),
            EngagementEvent.type == EngagementEventTypeEnum.promoted_click,
            EngagementEvent.created_at >= since,
        )
        .all()
    )

    clicks: Dict[UUID, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for product_id, created_at in events:
        clicks[product_id][created_at.date().isoformat()] += 1
    return clicks


def get_promotion_performance(
    db: Session, shop_id: UUID, now: Optional[datetime] = None
) -> List[PromotionDailyPerformance]:
    """Chart data for up to 10 promotions created in the last 90 days.

    The daily series covers at most the first 30 days of each run.
    """
    now = as_naive_utc(now) if now is not None else utc_now()
    cutoff = now - timedelta(days=PERFORMANCE_LOOKBACK_DAYS)

    promotions = (
        db.query(PromotedListing)
        .options(selectinload(PromotedListing.product))
        .filter(PromotedListing.shop_id == shop_id, PromotedListing.created_at >= cutoff)
        .order_by(PromotedListing.created_at.desc(), PromotedListing.id.asc())
        .limit(PERFORMANCE_MAX_PROMOTIONS)
        .all()
    )
    if not promotions:
        return []

    clicks_by_product = _daily_clicks_by_product(
        db, shop_id, list({p.product_id for p in promotions}), cutoff
    )

    results = []
    for promo in promotions:
        end = min(promo.expires_at, now)
        elapsed_days = (end - promo.starts_at).total_seconds() / 86400
        days_active = max(1, math.ceil(elapsed_days))
        avg_impressions = _round_half_up(promo.impressions / days_active)
        avg_clicks = _round_half_up(promo.clicks / days_active)
        product_clicks = clicks_by_product.get(promo.product_id, {})

        daily_data = []
        for offset in range(min(days_active, PERFORMANCE_MAX_SERIES_DAYS)):
            day_key = (promo.starts_at + timedelta(days=offset)).date().isoformat()
            daily_data.append(
                DailyPerformancePoint(
                    date=day_key,
                    impressions=avg_impressions,
                    clicks=product_clicks.get(day_key) or avg_clicks,
                )
            )

        ctr = _round_one_decimal(promo.clicks / promo.impressions * 100) if promo.impressions > 0 else 0.0

        results.append(
            PromotionDailyPerformance(
                promotion_id=promo.id,
                product_name=promo.product.name if promo.product else "",
                tier=promo.tier,
                daily_data=daily_data,
                total_impressions=promo.impressions,
                total_clicks=promo.clicks,
                ctr=ctr,
                days_active=days_active,
                avg_impressions_per_day=avg_impressions,
                avg_clicks_per_day=avg_clicks,
            )
        )
    return results


def get_promotion_comparison(db: Session, shop_id: UUID, now: Optional[datetime] = None) -> PromotionComparison:
    """Promoted impressions vs organic product views over the last 30 days.

    Conversion rate is contact clicks over all views, 8.0 when there are no
    views at all. Estimated orders are 10-18% of promoted clicks, at least 1.
    """
    now = as_naive_utc(now) if now is not None else utc_now()
    since = now - timedelta(days=COMPARISON_WINDOW_DAYS)

    promoted_impressions, promoted_clicks = (
        db.query(
            func.coalesce(func.sum(PromotedListing.impressions), 0),
            func.coalesce(func.sum(PromotedListing.clicks), 0),
        )
        .filter(PromotedListing.shop_id == shop_id, PromotedListing.created_at >= since)
        .one()
    )
    promoted_views = int(promoted_impressions)
    total_clicks = int(promoted_clicks)

    def _count_events(types) -> int:
        return (
            db.query(func.count(EngagementEvent.id))
            .filter(
                EngagementEvent.shop_id == shop_id,
                EngagementEvent.type.in_(types),
                EngagementEvent.created_at >= since,
            )
            .scalar()
            or 0
        )

    organic_views = _count_events([EngagementEventTypeEnum.product_view])
    contact_clicks = _count_events(
        [EngagementEventTypeEnum.whatsapp_click, EngagementEventTypeEnum.whatsapp_checkout]
    )

    total_views = promoted_views + organic_views
    multiplier = (
        _round_one_decimal(promoted_views / organic_views)
        if organic_views > 0 and promoted_views > 0
        else 0.0
    )
    conversion_rate = (
        _round_one_decimal(contact_clicks / total_views * 100)
        if total_views > 0
        else DEFAULT_CONVERSION_RATE
    )

    low = max(1, _round_half_up(total_clicks * ESTIMATED_ORDER_LOW))
    high = max(low, _round_half_up(total_clicks * ESTIMATED_ORDER_HIGH))

    return PromotionComparison(
        promoted_views=promoted_views,
        organic_views=organic_views,
        multiplier=multiplier,
        estimated_orders=EstimatedOrders(low=low, high=high),
        conversion_rate=conversion_rate,
    )
