"""
Marketplace Router
==================

WHAT:
    Public, cross-shop discovery endpoints plus fire-and-forget engagement
    tracking.

WHY:
    The marketplace UI needs one API for the blended feed, the promoted
    carousel, trending, search, categories and featured shops. Tracking
    endpoints answer 202 immediately and record in a background task so a
    tracking failure can never fail the page.

REFERENCES:
    - catalogx/services/marketplace_query.py
    - catalogx/services/trending.py
    - catalogx/services/engagement_tracker.py
"""

from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.orm import Session

from catalogx.deps import Settings, get_db, get_session_factory, get_settings
from catalogx.schemas import (
    DEFAULT_PAGE_SIZE,
    MAX_PAGE_SIZE,
    CategoryWithCount,
    FeaturedShop,
    MarketplaceFeed,
    MarketplaceFilters,
    MarketplaceProduct,
    MarketplaceResult,
    SortKey,
    TrackClickRequest,
    TrackEventRequest,
    TrackImpressionsRequest,
)
from catalogx.services import engagement_tracker
from catalogx.services.marketplace_query import (
    build_marketplace_feed,
    get_featured_shops,
    get_global_categories,
    get_marketplace_products,
    get_promoted_products,
    search_marketplace,
)
from catalogx.services.trending import get_trending_products


router = APIRouter(
    prefix="/marketplace",
    tags=["Marketplace"],
    responses={422: {"description": "Invalid filters"}},
)


def _filters(
    category: Optional[str] = Query(None, description="Exact category slug"),
    parent_category: Optional[str] = Query(None, description="Category slug including children"),
    min_price: Optional[int] = Query(None, ge=0, description="Cents"),
    max_price: Optional[int] = Query(None, ge=0, description="Cents"),
    province: Optional[str] = Query(None),
    city: Optional[str] = Query(None),
    verified_only: bool = Query(False),
    search: Optional[str] = Query(None),
    sort_by: SortKey = Query("newest"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
) -> MarketplaceFilters:
    return MarketplaceFilters(
        category=category,
        parent_category=parent_category,
        min_price=min_price,
        max_price=max_price,
        province=province,
        city=city,
        verified_only=verified_only,
        search=search,
        sort_by=sort_by,
        page=page,
        page_size=page_size,
    )


def _run_tracking(session_factory, operation, *args) -> None:
    """Background task body: tracking gets its own session.

    The request session is closed by the time background tasks run.
    """
    db = session_factory()
    try:
        operation(db, *args)
    finally:
        db.close()


@router.get("/products", response_model=MarketplaceResult)
def list_products(
    filters: MarketplaceFilters = Depends(_filters),
    db: Session = Depends(get_db),
):
    """Organic, filtered and paginated product page."""
    return get_marketplace_products(db, filters)


@router.get("/feed", response_model=MarketplaceFeed)
def marketplace_feed(
    background_tasks: BackgroundTasks,
    filters: MarketplaceFilters = Depends(_filters),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
    session_factory=Depends(get_session_factory),
):
    """Organic page with promoted placements interleaved.

    Rendering the feed counts as an impression for every promoted listing in it.
    """
    feed = build_marketplace_feed(db, filters, promoted_limit=settings.MARKETPLACE_PROMOTED_LIMIT)
    if feed.promoted_listing_ids:
        background_tasks.add_task(
            _run_tracking,
            session_factory,
            engagement_tracker.track_promoted_impressions,
            list(feed.promoted_listing_ids),
        )
    return feed


@router.get("/promoted", response_model=List[MarketplaceProduct])
def promoted_products(
    limit: int = Query(12, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return get_promoted_products(db, limit=limit)


@router.get("/trending", response_model=List[MarketplaceProduct])
def trending_products(
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return get_trending_products(db, limit=limit or settings.MARKETPLACE_TRENDING_LIMIT)


@router.get("/search", response_model=MarketplaceResult)
def search(
    q: str = Query("", description="Case-insensitive substring of name or description"),
    page: int = Query(1, ge=1),
    page_size: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    return search_marketplace(db, q, page=page, page_size=page_size)


@router.get("/categories", response_model=List[CategoryWithCount])
def categories(db: Session = Depends(get_db)):
    return get_global_categories(db)


@router.get("/featured-shops", response_model=List[FeaturedShop])
def featured_shops(
    limit: Optional[int] = Query(None, ge=1, le=MAX_PAGE_SIZE),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings),
):
    return get_featured_shops(db, limit=limit or settings.MARKETPLACE_FEATURED_SHOPS_LIMIT)


# ---------------------------------------------------------------------------
# Tracking (fire-and-forget)
# ---------------------------------------------------------------------------

@router.post("/track/impressions", status_code=status.HTTP_202_ACCEPTED)
def track_impressions(
    payload: TrackImpressionsRequest,
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
):
    if payload.promoted_listing_ids:
        background_tasks.add_task(
            _run_tracking,
            session_factory,
            engagement_tracker.track_promoted_impressions,
            payload.promoted_listing_ids,
        )
    return {"accepted": len(payload.promoted_listing_ids)}


@router.post("/track/click", status_code=status.HTTP_202_ACCEPTED)
def track_click(
    payload: TrackClickRequest,
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
):
    background_tasks.add_task(
        _run_tracking,
        session_factory,
        engagement_tracker.track_promoted_click,
        payload.promoted_listing_id,
        payload.shop_id,
        payload.product_id,
    )
    return {"accepted": 1}


@router.post("/track/event", status_code=status.HTTP_202_ACCEPTED)
def track_event(
    payload: TrackEventRequest,
    background_tasks: BackgroundTasks,
    session_factory=Depends(get_session_factory),
):
    background_tasks.add_task(
        _run_tracking,
        session_factory,
        engagement_tracker.record_engagement_event,
        payload.type,
        payload.shop_id,
        payload.product_id,
    )
    return {"accepted": 1}
