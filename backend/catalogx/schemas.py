"""Pydantic schemas for request/response payloads."""

from datetime import datetime
from typing import List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import EngagementEventTypeEnum, PromotionStatusEnum, PromotionTierEnum


SortKey = Literal["newest", "price_asc", "price_desc", "trending", "popular"]

DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 100


# Marketplace ------------------------------------------------------

class MarketplaceFilters(BaseModel):
    """
    WHAT: Optional filters, sort and pagination for the marketplace feed.
    WHY: One validated contract shared by the HTTP layer and direct callers;
         invalid page / page_size never reach the query engine.
    """

    category: Optional[str] = Field(default=None, description="Exact category slug")
    parent_category: Optional[str] = Field(
        default=None, description="Category slug matching itself or any child category"
    )
    min_price: Optional[int] = Field(default=None, ge=0, description="Cents, inclusive")
    max_price: Optional[int] = Field(default=None, ge=0, description="Cents, inclusive")
    province: Optional[str] = None
    city: Optional[str] = None
    verified_only: bool = False
    search: Optional[str] = None
    sort_by: SortKey = "newest"
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @field_validator("search")
    @classmethod
    def _strip_search(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        return value or None


class ShopSummary(BaseModel):
    id: UUID
    name: str
    slug: str
    logo_url: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    is_verified: bool = False

    model_config = {"from_attributes": True}


class CategoryRef(BaseModel):
    id: UUID
    name: str
    slug: str

    model_config = {"from_attributes": True}


class PromotionBadge(BaseModel):
    """Present on a card only when it is rendered as a promoted placement."""

    tier: PromotionTierEnum
    promoted_listing_id: UUID


class MarketplaceProduct(BaseModel):
    """
    WHAT: Product card rendered in the marketplace.
    WHY: Price fields come from the denormalized range; variant_count counts
         active variants only.
    """

    id: UUID
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None
    min_price_cents: int
    max_price_cents: int
    variant_count: int
    shop: ShopSummary
    category: Optional[CategoryRef] = None
    promotion: Optional[PromotionBadge] = None
    created_at: datetime


class MarketplaceResult(BaseModel):
    products: List[MarketplaceProduct]
    total: int
    page: int
    page_size: int
    total_pages: int


class MarketplaceFeed(MarketplaceResult):
    """
    WHAT: Organic page with promoted placements interleaved.
    WHY: total / total_pages describe the organic filtered set; the
         promoted ids are reported back as impressions.
    """

    promoted_listing_ids: List[UUID] = Field(default_factory=list)


class CategoryWithCount(BaseModel):
    id: UUID
    name: str
    slug: str
    icon: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    product_count: int = 0
    children: List["CategoryWithCount"] = Field(default_factory=list)


class FeaturedShop(BaseModel):
    id: UUID
    name: str
    slug: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    banner_url: Optional[str] = None
    city: Optional[str] = None
    province: Optional[str] = None
    is_verified: bool = False
    product_count: int = 0
    has_spotlight: bool = False


# Promotions -------------------------------------------------------

class PromotionOut(BaseModel):
    id: UUID
    shop_id: UUID
    product_id: UUID
    product_name: Optional[str] = None
    product_image_url: Optional[str] = None
    tier: PromotionTierEnum
    status: PromotionStatusEnum
    starts_at: datetime
    expires_at: datetime
    impressions: int
    clicks: int
    amount_paid_cents: int
    payment_reference: Optional[str] = None
    created_at: datetime


class ActivePromotionRef(BaseModel):
    id: UUID
    tier: PromotionTierEnum
    expires_at: datetime


class PromotableProduct(BaseModel):
    id: UUID
    name: str
    image_url: Optional[str] = None
    min_price_cents: int
    active_promotion: Optional[ActivePromotionRef] = None


class PromotionStats(BaseModel):
    active_count: int
    total_spent_cents: int
    total_impressions: int
    total_clicks: int


class DailyPerformancePoint(BaseModel):
    date: str
    impressions: int
    clicks: int


class PromotionDailyPerformance(BaseModel):
    promotion_id: UUID
    product_name: str
    tier: PromotionTierEnum
    daily_data: List[DailyPerformancePoint]
    total_impressions: int
    total_clicks: int
    ctr: float
    days_active: int
    avg_impressions_per_day: int
    avg_clicks_per_day: int


class EstimatedOrders(BaseModel):
    low: int
    high: int


class PromotionComparison(BaseModel):
    promoted_views: int
    organic_views: int
    multiplier: float
    estimated_orders: EstimatedOrders
    conversion_rate: float


class PromotionQuote(BaseModel):
    tier: PromotionTierEnum
    weeks: int
    price_per_week_cents: int
    total_cents: int
    formatted_total: str
    summary: str


class ContentViolation(BaseModel):
    """One entry per active promotion failing content guidelines."""

    product_id: UUID
    product_name: str
    shop_name: str
    shop_slug: str
    promotion_id: UUID
    tier: PromotionTierEnum
    issues: List[str]


# Events -----------------------------------------------------------

class PaymentConfirmedEvent(BaseModel):
    """
    WHAT: Result of a payment capture, as delivered by the payment webhook.
    WHY: Payment capture itself happens upstream; only the confirmed result
         is consumed here.
    """

    payment_reference: str = Field(min_length=1)
    amount_paid_cents: int = Field(ge=0)
    status: str = "COMPLETE"
    provider_payment_id: Optional[str] = None


class TrackImpressionsRequest(BaseModel):
    promoted_listing_ids: List[UUID] = Field(default_factory=list, max_length=MAX_PAGE_SIZE)


class TrackClickRequest(BaseModel):
    promoted_listing_id: UUID
    shop_id: UUID
    product_id: UUID


class TrackEventRequest(BaseModel):
    type: EngagementEventTypeEnum
    shop_id: UUID
    product_id: Optional[UUID] = None


class ExpireResult(BaseModel):
    expired: int


class HealthResponse(BaseModel):
    status: str
