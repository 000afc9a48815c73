"""
Promotion Lifecycle Manager.

WHAT:
    Creates promoted listings after payment, expires them lazily, cancels
    them on owner request, and lists them for the seller dashboard.

WHY:
    There is no background scheduler. Expiry is detected by an idempotent
    sweep invoked on read traffic (marketplace feed, seller dashboard), so
    between the expiry instant and the next sweep a listing may still be
    stored as ACTIVE. Every read that shows live promotions therefore also
    filters on expires_at > now.

STATE TRANSITIONS:
    ACTIVE -> expires_at <= now (sweep) -> EXPIRED
    ACTIVE -> owner cancel              -> CANCELLED
    EXPIRED / CANCELLED are terminal. Nothing is ever re-activated.

REFERENCES:
    - catalogx/models.py (PromotedListing, PromotionStatusEnum)
    - catalogx/services/payment_events.py (creation after payment)
    - catalogx/services/marketplace_query.py (sweep on the feed read path)
"""

import logging
from datetime import datetime, timedelta
from typing import List, Optional, Union
from uuid import UUID

from sqlalchemy import case, update
from sqlalchemy.orm import Session, selectinload

from ..errors import OwnershipViolationError
from ..models import (
    Product,
    ProductVariant,
    PromotedListing,
    PromotionStatusEnum,
    PromotionTierEnum,
)
from ..schemas import ActivePromotionRef, PromotableProduct, PromotionOut
from ..utils.time import as_naive_utc, utc_now
from .ownership import verify_product_ownership

logger = logging.getLogger(__name__)


def _resolve_now(now: Optional[datetime]) -> datetime:
    return as_naive_utc(now) if now is not None else utc_now()


def create_promoted_listing(
    db: Session,
    shop_id: UUID,
    product_id: UUID,
    tier: Union[PromotionTierEnum, str],
    weeks: int,
    amount_paid_cents: int,
    payment_reference: Optional[str] = None,
    now: Optional[datetime] = None,
) -> PromotedListing:
    """Create an ACTIVE promoted listing for a product the shop owns.

    expires_at is exactly starts_at + weeks * 7 days.

    Raises:
        OwnershipViolationError: product missing or owned by another shop
        ValueError: weeks < 1
    """
    if weeks < 1:
        raise ValueError("weeks must be at least 1")

    if not verify_product_ownership(db, product_id, shop_id):
        logger.warning(
            f"[PROMOTIONS] Ownership violation: shop {shop_id} tried to promote product {product_id}"
        )
        raise OwnershipViolationError(product_id, shop_id)

    starts_at = _resolve_now(now)
    expires_at = starts_at + timedelta(days=weeks * 7)
    tier = PromotionTierEnum(tier)

    listing = PromotedListing(
        shop_id=shop_id,
        product_id=product_id,
        tier=tier,
        status=PromotionStatusEnum.active,
        starts_at=starts_at,
        expires_at=expires_at,
        impressions=0,
        clicks=0,
        amount_paid_cents=amount_paid_cents,
        payment_reference=payment_reference,
    )
    db.add(listing)
    db.commit()
    db.refresh(listing)

    logger.info(
        f"[PROMOTIONS] Created {tier.value} promotion {listing.id} for product {product_id} "
        f"(shop {shop_id}), expires {expires_at.isoformat()}"
    )
    return listing


def has_active_promotion(db: Session, product_id: UUID, now: Optional[datetime] = None) -> bool:
    """True if the product has a live promotion (ACTIVE and not yet expired).

    Advisory only: nothing stops a second promotion from being created.
    """
    now = _resolve_now(now)
    return (
        db.query(PromotedListing.id)
        .filter(
            PromotedListing.product_id == product_id,
            PromotedListing.status == PromotionStatusEnum.active,
            PromotedListing.expires_at > now,
        )
        .first()
        is not None
    )


def expire_promoted_listings(db: Session, now: Optional[datetime] = None) -> int:
    """Mark every ACTIVE listing with expires_at <= now as EXPIRED.

    One conditional UPDATE in one transaction; concurrent sweeps are safe
    and a second sweep returns 0.

    Returns:
        Number of listings transitioned by this call.
    """
    now = _resolve_now(now)
    result = db.execute(
        update(PromotedListing)
        .where(
            PromotedListing.status == PromotionStatusEnum.active,
            PromotedListing.expires_at <= now,
        )
        .values(status=PromotionStatusEnum.expired)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    count = result.rowcount or 0
    if count > 0:
        logger.info(f"[PROMOTIONS] Expired {count} promoted listing(s)")
    return count


def cancel_promotion(db: Session, promotion_id: UUID, shop_id: UUID) -> bool:
    """Cancel an ACTIVE promotion owned by the shop. No refund.

    Not found, owned by another shop and already terminal all return False
    without any state change; the caller cannot tell them apart.
    """
    result = db.execute(
        update(PromotedListing)
        .where(
            PromotedListing.id == promotion_id,
            PromotedListing.shop_id == shop_id,
            PromotedListing.status == PromotionStatusEnum.active,
        )
        .values(status=PromotionStatusEnum.cancelled)
        .execution_options(synchronize_session=False)
    )
    db.commit()

    cancelled = (result.rowcount or 0) > 0
    if cancelled:
        logger.info(f"[PROMOTIONS] Shop {shop_id} cancelled promotion {promotion_id}")
    return cancelled


def _card_image_url(product: Product) -> Optional[str]:
    return product.images[0].url if product.images else None


def get_shop_promotions(db: Session, shop_id: UUID, now: Optional[datetime] = None) -> List[PromotionOut]:
    """All promotions of a shop, ACTIVE first then newest first. Sweeps first."""
    expire_promoted_listings(db, now=now)

    active_first = case((PromotedListing.status == PromotionStatusEnum.active, 0), else_=1)
    listings = (
        db.query(PromotedListing)
        .options(selectinload(PromotedListing.product).selectinload(Product.images))
        .filter(PromotedListing.shop_id == shop_id)
        .order_by(active_first, PromotedListing.created_at.desc(), PromotedListing.id.asc())
        .all()
    )

    return [
        PromotionOut(
            id=listing.id,
            shop_id=listing.shop_id,
            product_id=listing.product_id,
            product_name=listing.product.name if listing.product else None,
            product_image_url=_card_image_url(listing.product) if listing.product else None,
            tier=listing.tier,
            status=listing.status,
            starts_at=listing.starts_at,
            expires_at=listing.expires_at,
            impressions=listing.impressions,
            clicks=listing.clicks,
            amount_paid_cents=listing.amount_paid_cents,
            payment_reference=listing.payment_reference,
            created_at=listing.created_at,
        )
        for listing in listings
    ]


def get_promotable_products(
    db: Session, shop_id: UUID, now: Optional[datetime] = None
) -> List[PromotableProduct]:
    """Active products of the shop with an image and an active variant.

    Each carries its live promotion, if any, so the promote page can warn
    before a double promotion.
    """
    now = _resolve_now(now)

    products = (
        db.query(Product)
        .options(selectinload(Product.images))
        .filter(
            Product.shop_id == shop_id,
            Product.is_active.is_(True),
            Product.images.any(),
            Product.variants.any(ProductVariant.is_active.is_(True)),
        )
        .order_by(Product.created_at.desc(), Product.id.asc())
        .all()
    )
    if not products:
        return []

    live = (
        db.query(PromotedListing)
        .filter(
            PromotedListing.product_id.in_([p.id for p in products]),
            PromotedListing.status == PromotionStatusEnum.active,
            PromotedListing.expires_at > now,
        )
        .order_by(PromotedListing.expires_at.desc())
        .all()
    )
    live_by_product = {}
    for listing in live:
        live_by_product.setdefault(listing.product_id, listing)

    result = []
    for product in products:
        listing = live_by_product.get(product.id)
        result.append(
            PromotableProduct(
                id=product.id,
                name=product.name,
                image_url=_card_image_url(product),
                min_price_cents=product.min_price_cents,
                active_promotion=(
                    ActivePromotionRef(id=listing.id, tier=listing.tier, expires_at=listing.expires_at)
                    if listing is not None
                    else None
                ),
            )
        )
    return result
