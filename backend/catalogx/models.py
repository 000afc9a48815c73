"""SQLAlchemy ORM models and enums.

This module defines the catalog store: tenant-owned shops with their
products, variants and images, the shared category tree, paid promoted
listings, and the append-only engagement event log. UUID primary keys
throughout; every timestamp is naive UTC (see app clock helpers).
"""

import uuid
import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base, relationship

from .utils.time import utc_now


# Single Base used by the entire application
Base = declarative_base()


def _enum_values(enum_cls):
    return [e.value for e in enum_cls]


# Enums ---------------------------------------------------------

class PromotionTierEnum(str, enum.Enum):
    """Paid placement tier, ordered BOOST < FEATURED < SPOTLIGHT."""
    boost = "BOOST"
    featured = "FEATURED"
    spotlight = "SPOTLIGHT"

    @property
    def rank(self) -> int:
        return TIER_RANK[self]


TIER_RANK = {
    PromotionTierEnum.boost: 1,
    PromotionTierEnum.featured: 2,
    PromotionTierEnum.spotlight: 3,
}


class PromotionStatusEnum(str, enum.Enum):
    """Lifecycle of a promoted listing. EXPIRED and CANCELLED are terminal."""
    active = "ACTIVE"
    expired = "EXPIRED"
    cancelled = "CANCELLED"


class EngagementEventTypeEnum(str, enum.Enum):
    product_view = "PRODUCT_VIEW"
    storefront_view = "STOREFRONT_VIEW"
    marketplace_view = "MARKETPLACE_VIEW"
    marketplace_click = "MARKETPLACE_CLICK"
    whatsapp_click = "WHATSAPP_CLICK"
    whatsapp_checkout = "WHATSAPP_CHECKOUT"
    promoted_impression = "PROMOTED_IMPRESSION"
    promoted_click = "PROMOTED_CLICK"


# Event types that count towards trending popularity
TRENDING_EVENT_TYPES = (
    EngagementEventTypeEnum.product_view,
    EngagementEventTypeEnum.whatsapp_click,
    EngagementEventTypeEnum.marketplace_click,
)


# Core models ----------------------------------------------------

class Shop(Base):
    """Shop is the tenant root.

    A shop owns its products. Deactivating a shop hides every one of its
    products from marketplace discovery without deleting any data.
    """
    __tablename__ = "shops"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    slug = Column(String, unique=True, index=True, nullable=False)  # public URL handle
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    logo_url = Column(String, nullable=True)
    banner_url = Column(String, nullable=True)

    # Location (marketplace filters)
    city = Column(String, nullable=True)
    province = Column(String, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    is_featured_shop = Column(Boolean, nullable=False, default=False)  # admin-curated

    created_at = Column(DateTime, default=utc_now)

    products = relationship("Product", back_populates="shop")
    promoted_listings = relationship("PromotedListing", back_populates="shop")

    def __str__(self):
        return f"{self.name} ({self.slug})"


class Category(Base):
    """Global marketplace category.

    Self-referential tree, two levels deep in practice. A product may
    reference either a leaf or a top-level category.
    """
    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False)
    slug = Column(String, unique=True, index=True, nullable=False)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), nullable=True)  # NULL = top level
    icon = Column(String, nullable=True)
    description = Column(Text, nullable=True)
    image_url = Column(String, nullable=True)
    display_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    parent = relationship("Category", remote_side=[id], back_populates="children")
    children = relationship("Category", back_populates="parent")
    products = relationship("Product", back_populates="category")

    def __str__(self):
        return self.name


class Product(Base):
    """Product listed by a shop.

    WHAT: Catalog entry grouping buyable variants.
    WHY min/max price: denormalized aggregate over the ACTIVE variants so
         price sorting never joins variants at read time.
    INVARIANT: min_price_cents <= max_price_cents, both 0 iff no active
         variant. Written only by services/price_range_sync.py.
    """
    __tablename__ = "products"
    __table_args__ = (
        Index("ix_products_shop_id", "shop_id"),
        Index("ix_products_category_id", "category_id"),
        Index("ix_products_created_at", "created_at"),
        Index("ix_products_min_price_cents", "min_price_cents"),
        Index("ix_products_max_price_cents", "max_price_cents"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False)
    category_id = Column(UUID(as_uuid=True), ForeignKey("categories.id"), nullable=True)

    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Denormalized price range (minor currency units)
    min_price_cents = Column(Integer, nullable=False, default=0)
    max_price_cents = Column(Integer, nullable=False, default=0)

    created_at = Column(DateTime, default=utc_now)
    updated_at = Column(DateTime, default=utc_now, onupdate=utc_now)

    shop = relationship("Shop", back_populates="products")
    category = relationship("Category", back_populates="products")
    variants = relationship("ProductVariant", back_populates="product", cascade="all, delete-orphan")
    images = relationship(
        "ProductImage",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="ProductImage.position",
    )
    promoted_listings = relationship("PromotedListing", back_populates="product")

    def __str__(self):
        return self.name


class ProductImage(Base):
    """Image attached to a product. Position 0 is the card image."""
    __tablename__ = "product_images"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)
    url = Column(String, nullable=False)
    alt_text = Column(String, nullable=True)
    position = Column(Integer, nullable=False, default=0)

    product = relationship("Product", back_populates="images")


class ProductVariant(Base):
    """Buyable unit of a product (option values + price + stock).

    Every create/update/delete must be followed by a price range sync of the
    parent product (services/catalog_variants.py does this).
    """
    __tablename__ = "product_variants"
    __table_args__ = (
        UniqueConstraint("product_id", "size", "color", name="uq_variant_options"),
        CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False, index=True)

    # Option values
    size = Column(String, nullable=False)  # option 1, e.g. "M"
    color = Column(String, nullable=True)  # option 2, e.g. "Black"
    sku = Column(String, nullable=True)

    price_in_cents = Column(Integer, nullable=False)
    stock = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=utc_now)

    product = relationship("Product", back_populates="variants")

    def __str__(self):
        options = f"{self.size}/{self.color}" if self.color else self.size
        return f"{options} @ {self.price_in_cents}c"


class PromotedListing(Base):
    """Paid, time-boxed placement of a product in the marketplace feed.

    WHAT: Created after a confirmed payment, for a product owned by the paying shop.
    LIFECYCLE: ACTIVE -> EXPIRED (time, detected by lazy sweep)
               ACTIVE -> CANCELLED (owner action). Nothing is ever re-activated.
    COUNTERS: impressions/clicks only ever change through relative
              increments (services/engagement_tracker.py).
    """
    __tablename__ = "promoted_listings"
    __table_args__ = (
        CheckConstraint("starts_at < expires_at", name="ck_promotion_window"),
        Index("ix_promoted_listings_status_expires_at", "status", "expires_at"),
        Index("ix_promoted_listings_product_id", "product_id"),
        Index("ix_promoted_listings_shop_id", "shop_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=False)

    tier = Column(Enum(PromotionTierEnum, values_callable=_enum_values, name="promotion_tier"), nullable=False)
    status = Column(
        Enum(PromotionStatusEnum, values_callable=_enum_values, name="promotion_status"),
        nullable=False,
        default=PromotionStatusEnum.active,
    )

    starts_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False)

    impressions = Column(Integer, nullable=False, default=0)
    clicks = Column(Integer, nullable=False, default=0)

    amount_paid_cents = Column(Integer, nullable=False, default=0)
    payment_reference = Column(String, nullable=True)  # payment provider id, if any

    created_at = Column(DateTime, default=utc_now)

    shop = relationship("Shop", back_populates="promoted_listings")
    product = relationship("Product", back_populates="promoted_listings")

    def __str__(self):
        return f"{self.tier.value} {self.status.value} ({self.product_id})"


class EngagementEvent(Base):
    """Append-only engagement log (views, clicks, promoted impressions/clicks).

    Never updated or deleted by this service; consumed by read-only
    aggregates (trending, promotion reporting).
    """
    __tablename__ = "engagement_events"
    __table_args__ = (
        Index("ix_engagement_events_product_created", "product_id", "created_at"),
        Index("ix_engagement_events_shop_type", "shop_id", "type"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(
        Enum(EngagementEventTypeEnum, values_callable=_enum_values, name="engagement_event_type"),
        nullable=False,
    )
    shop_id = Column(UUID(as_uuid=True), ForeignKey("shops.id"), nullable=False)
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.id"), nullable=True)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    def __str__(self):
        return f"{self.type.value} - {self.product_id} - {self.created_at}"
