"""Content guideline audit for live promotions.

WHAT: Flags live promoted products that would make a poor paid placement
WHY: Moderators review paid placements; the audit is read-only and never
     changes a promotion's state
REFERENCES:
  - catalogx/routers/admin.py: /admin/content-violations

A promoted product must have at least one image, a description of at least
10 characters, and at least one active variant in stock.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy.orm import Session, selectinload

from ..models import Product, PromotedListing, PromotionStatusEnum
from ..schemas import ContentViolation
from ..utils.time import as_naive_utc, utc_now

MIN_DESCRIPTION_LENGTH = 10

ISSUE_NO_IMAGES = "No product images"
ISSUE_SHORT_DESCRIPTION = "Missing or too short description (min 10 chars)"
ISSUE_NO_ACTIVE_VARIANTS = "No active variants"
ISSUE_OUT_OF_STOCK = "All variants out of stock"


def audit_product(product: Product) -> List[str]:
    """Guideline issues for one product, in a fixed order."""
    issues = []
    if not product.images:
        issues.append(ISSUE_NO_IMAGES)
    if not product.description or len(product.description) < MIN_DESCRIPTION_LENGTH:
        issues.append(ISSUE_SHORT_DESCRIPTION)

    active_variants = [v for v in product.variants if v.is_active]
    if not active_variants:
        issues.append(ISSUE_NO_ACTIVE_VARIANTS)
    elif all(v.stock <= 0 for v in active_variants):
        issues.append(ISSUE_OUT_OF_STOCK)
    return issues


def get_content_violations(db: Session, now: Optional[datetime] = None) -> List[ContentViolation]:
    """One entry per live (ACTIVE, not yet expired) promotion with issues."""
    now = as_naive_utc(now) if now is not None else utc_now()

    promotions = (
        db.query(PromotedListing)
        .options(
            selectinload(PromotedListing.shop),
            selectinload(PromotedListing.product).selectinload(Product.images),
            selectinload(PromotedListing.product).selectinload(Product.variants),
        )
        .filter(
            PromotedListing.status == PromotionStatusEnum.active,
            PromotedListing.expires_at > now,
        )
        .order_by(PromotedListing.created_at.asc(), PromotedListing.id.asc())
        .all()
    )

    violations = []
    for promo in promotions:
        issues = audit_product(promo.product)
        if issues:
            violations.append(
                ContentViolation(
                    product_id=promo.product.id,
                    product_name=promo.product.name,
                    shop_name=promo.shop.name,
                    shop_slug=promo.shop.slug,
                    promotion_id=promo.id,
                    tier=promo.tier,
                    issues=issues,
                )
            )
    return violations
