"""
Promotions Router
=================

WHAT:
    Seller-facing promotion endpoints: list, stats, charts, comparison,
    promotable products, price quotes and cancellation.

WHY:
    The promote dashboard needs its own shop's data only. Every endpoint is
    scoped by the calling shop (X-Shop-ID); cancellation of another shop's
    promotion is indistinguishable from a missing one (404).

REFERENCES:
    - catalogx/services/promotion_lifecycle.py
    - catalogx/services/promotion_reporting.py
    - catalogx/services/promotion_pricing.py
"""

from __future__ import annotations

import uuid
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from catalogx.deps import get_current_shop_id, get_db
from catalogx.models import PromotionTierEnum
from catalogx.schemas import (
    PromotableProduct,
    PromotionComparison,
    PromotionDailyPerformance,
    PromotionOut,
    PromotionQuote,
    PromotionStats,
)
from catalogx.services.promotion_lifecycle import (
    cancel_promotion,
    get_promotable_products,
    get_shop_promotions,
)
from catalogx.services.promotion_pricing import (
    PROMOTION_TIERS,
    calculate_promotion_price,
    format_zar,
    get_promotion_summary,
)
from catalogx.services.promotion_reporting import (
    get_promotion_comparison,
    get_promotion_performance,
    get_shop_promotion_stats,
)


router = APIRouter(
    prefix="/promotions",
    tags=["Promotions"],
    responses={
        401: {"description": "Missing or invalid shop identity"},
        404: {"description": "Not found"},
    },
)


@router.get("", response_model=List[PromotionOut])
def list_promotions(
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    """All promotions of the calling shop, active first."""
    return get_shop_promotions(db, shop_id)


@router.get("/stats", response_model=PromotionStats)
def promotion_stats(
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    return get_shop_promotion_stats(db, shop_id)


@router.get("/performance", response_model=List[PromotionDailyPerformance])
def promotion_performance(
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    return get_promotion_performance(db, shop_id)


@router.get("/comparison", response_model=PromotionComparison)
def promotion_comparison(
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    return get_promotion_comparison(db, shop_id)


@router.get("/promotable", response_model=List[PromotableProduct])
def promotable_products(
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    return get_promotable_products(db, shop_id)


@router.get("/quote", response_model=PromotionQuote)
def promotion_quote(
    tier: PromotionTierEnum = Query(...),
    weeks: int = Query(1, ge=1, le=52),
):
    """Price quote; needs no shop identity."""
    total = calculate_promotion_price(tier, weeks)
    return PromotionQuote(
        tier=tier,
        weeks=weeks,
        price_per_week_cents=PROMOTION_TIERS[tier].price_per_week_cents,
        total_cents=total,
        formatted_total=format_zar(total),
        summary=get_promotion_summary(tier, weeks),
    )


@router.post("/{promotion_id}/cancel", status_code=status.HTTP_200_OK)
def cancel(
    promotion_id: uuid.UUID,
    shop_id: uuid.UUID = Depends(get_current_shop_id),
    db: Session = Depends(get_db),
):
    if not cancel_promotion(db, promotion_id, shop_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Active promotion not found")
    return {"id": str(promotion_id), "status": "CANCELLED"}
