"""Engagement tracking.

WHAT: Promoted impression/click counters and the append-only event log
WHY: Tracking runs after a response is rendered (FastAPI background tasks)
     and must never break the page. Every failure is rolled back, logged and
     reported to Sentry, then dropped.
REFERENCES:
  - catalogx/routers/marketplace.py: schedules these as background tasks
  - catalogx/services/promotion_reporting.py: reads the counters and events

Counters only ever move through relative increments in SQL
(impressions = impressions + 1), so concurrent renders never lose updates.
"""

import logging
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ..models import EngagementEvent, EngagementEventTypeEnum, PromotedListing
from ..telemetry import capture_exception

logger = logging.getLogger(__name__)


def _report_failure(db: Session, operation: str, error: Exception, **context) -> None:
    db.rollback()
    logger.exception(f"[TRACKING] {operation} failed: {error}")
    capture_exception(error, extra={"operation": operation, **{k: str(v) for k, v in context.items()}})


def track_promoted_impressions(db: Session, promoted_listing_ids: Iterable[UUID]) -> None:
    """Add one impression to each listing in a single batched UPDATE.

    An empty batch does nothing. Unknown ids are ignored by the UPDATE.
    """
    ids = list(promoted_listing_ids)
    if not ids:
        return

    try:
        db.execute(
            update(PromotedListing)
            .where(PromotedListing.id.in_(ids))
            .values(impressions=PromotedListing.impressions + 1)
            .execution_options(synchronize_session=False)
        )
        db.commit()
    except Exception as e:
        _report_failure(db, "track_promoted_impressions", e, count=len(ids))


def track_promoted_click(db: Session, promoted_listing_id: UUID, shop_id: UUID, product_id: UUID) -> None:
    """Add one click to the listing and log a PROMOTED_CLICK event, atomically."""
    try:
        db.execute(
            update(PromotedListing)
            .where(PromotedListing.id == promoted_listing_id)
            .values(clicks=PromotedListing.clicks + 1)
            .execution_options(synchronize_session=False)
        )
        db.add(
            EngagementEvent(
                type=EngagementEventTypeEnum.promoted_click,
                shop_id=shop_id,
                product_id=product_id,
            )
        )
        db.commit()
    except Exception as e:
        _report_failure(db, "track_promoted_click", e, promoted_listing_id=promoted_listing_id)


def record_engagement_event(
    db: Session,
    event_type: Union[EngagementEventTypeEnum, str],
    shop_id: UUID,
    product_id: Optional[UUID] = None,
) -> None:
    """Append one event to the engagement log (views, contact clicks, ...)."""
    try:
        db.add(
            EngagementEvent(
                type=EngagementEventTypeEnum(event_type),
                shop_id=shop_id,
                product_id=product_id,
            )
        )
        db.commit()
    except Exception as e:
        _report_failure(db, "record_engagement_event", e, event_type=event_type, shop_id=shop_id)
