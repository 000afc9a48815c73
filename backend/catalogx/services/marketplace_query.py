"""
Marketplace Query Engine
========================

WHAT:
    Cross-shop discovery queries: the filtered/sorted/paginated product
    feed, live promoted placements, search, the category tree with counts,
    featured shops, and the composed feed that blends them.

WHY:
    Catalog CRUD is always scoped to one shop; discovery is the one place
    that reads across every tenant. All of it shares one inclusion rule so
    a product is either discoverable everywhere or nowhere:

        product active AND shop active AND at least one active variant

SORTING:
    newest      created_at desc
    price_asc   min_price_cents asc (denormalized, no variant join)
    price_desc  max_price_cents desc
    trending /
    popular     fall back to newest here; true trending is its own query
    Every sort ends with id asc so pages are stable.

REFERENCES:
    - catalogx/services/price_range_sync.py (writes the price columns)
    - catalogx/services/interleaving.py (feed composition)
    - catalogx/services/promotion_lifecycle.py (expiry sweep)
    - catalogx/routers/marketplace.py
"""

import logging
import math
from datetime import datetime
from typing import Dict, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import and_, case, func, or_, select
from sqlalchemy.orm import Session, aliased, joinedload, selectinload

from ..models import (
    TIER_RANK,
    Category,
    Product,
    ProductVariant,
    PromotedListing,
    PromotionStatusEnum,
    PromotionTierEnum,
    Shop,
)
from ..schemas import (
    DEFAULT_PAGE_SIZE,
    CategoryRef,
    CategoryWithCount,
    FeaturedShop,
    MarketplaceFeed,
    MarketplaceFilters,
    MarketplaceProduct,
    MarketplaceResult,
    PromotionBadge,
    ShopSummary,
)
from ..utils.time import as_naive_utc, utc_now
from .interleaving import interleave
from .promotion_lifecycle import expire_promoted_listings

logger = logging.getLogger(__name__)


# =============================================================================
# SHARED BUILDING BLOCKS
# =============================================================================

def discoverable_conditions() -> list:
    """Inclusion rule applied to every discovery query on Product."""
    return [
        Product.is_active.is_(True),
        Product.shop.has(Shop.is_active.is_(True)),
        Product.variants.any(ProductVariant.is_active.is_(True)),
    ]


def tier_rank_expression():
    """SQL rank of PromotedListing.tier from TIER_RANK (enum string order is not tier order)."""
    return case(
        *[(PromotedListing.tier == tier, rank) for tier, rank in TIER_RANK.items()],
        else_=0,
    )


def live_promotion_conditions(now: datetime) -> list:
    return [
        PromotedListing.status == PromotionStatusEnum.active,
        PromotedListing.starts_at <= now,
        PromotedListing.expires_at > now,
    ]


def _active_variant_counts(db: Session, product_ids: Iterable[UUID]) -> Dict[UUID, int]:
    product_ids = list(product_ids)
    if not product_ids:
        return {}
    rows = (
        db.query(ProductVariant.product_id, func.count(ProductVariant.id))
        .filter(ProductVariant.product_id.in_(product_ids), ProductVariant.is_active.is_(True))
        .group_by(ProductVariant.product_id)
        .all()
    )
    return {product_id: count for product_id, count in rows}


def _card_image_url(product: Product) -> Optional[str]:
    return next((image.url for image in product.images if image.position == 0), None)


def with_card_options(query):
    return query.options(
        joinedload(Product.shop),
        joinedload(Product.category),
        selectinload(Product.images),
    )


def build_product_cards(
    db: Session,
    products: List[Product],
    promotions: Optional[Dict[UUID, PromotionBadge]] = None,
) -> List[MarketplaceProduct]:
    """Turn loaded products into marketplace cards, preserving order."""
    counts = _active_variant_counts(db, [p.id for p in products])
    promotions = promotions or {}
    return [
        MarketplaceProduct(
            id=product.id,
            name=product.name,
            description=product.description,
            image_url=_card_image_url(product),
            min_price_cents=product.min_price_cents,
            max_price_cents=product.max_price_cents,
            variant_count=counts.get(product.id, 0),
            shop=ShopSummary.model_validate(product.shop),
            category=CategoryRef.model_validate(product.category) if product.category else None,
            promotion=promotions.get(product.id),
            created_at=product.created_at,
        )
        for product in products
    ]


def _total_pages(total: int, page_size: int) -> int:
    return math.ceil(total / page_size) if total else 0


# =============================================================================
# ORGANIC FEED
# =============================================================================

def _filter_conditions(filters: MarketplaceFilters) -> list:
    conditions = discoverable_conditions()

    shop_conditions = []
    if filters.province:
        shop_conditions.append(Shop.province == filters.province)
    if filters.city:
        shop_conditions.append(Shop.city == filters.city)
    if filters.verified_only:
        shop_conditions.append(Shop.is_verified.is_(True))
    if shop_conditions:
        conditions.append(Product.shop.has(and_(*shop_conditions)))

    # Exact category wins over parent category
    if filters.category:
        conditions.append(Product.category.has(Category.slug == filters.category))
    elif filters.parent_category:
        parent = aliased(Category)
        conditions.append(
            Product.category.has(
                or_(
                    Category.slug == filters.parent_category,
                    Category.parent_id.in_(
                        select(parent.id).where(parent.slug == filters.parent_category)
                    ),
                )
            )
        )

    if filters.min_price is not None or filters.max_price is not None:
        price_conditions = [ProductVariant.is_active.is_(True)]
        if filters.min_price is not None:
            price_conditions.append(ProductVariant.price_in_cents >= filters.min_price)
        if filters.max_price is not None:
            price_conditions.append(ProductVariant.price_in_cents <= filters.max_price)
        conditions.append(Product.variants.any(and_(*price_conditions)))

    if filters.search:
        conditions.append(
            or_(
                Product.name.icontains(filters.search, autoescape=True),
                Product.description.icontains(filters.search, autoescape=True),
            )
        )

    return conditions


def _order_by(sort_by: str) -> list:
    if sort_by == "price_asc":
        primary = Product.min_price_cents.asc()
    elif sort_by == "price_desc":
        primary = Product.max_price_cents.desc()
    else:
        # newest, and trending/popular fallback
        primary = Product.created_at.desc()
    return [primary, Product.id.asc()]


def get_marketplace_products(db: Session, filters: Optional[MarketplaceFilters] = None) -> MarketplaceResult:
    """Filtered, sorted, paginated cross-shop product page.

    total / total_pages describe the filtered set; a page past the end
    returns an empty product list with the real totals.
    """
    filters = filters or MarketplaceFilters()
    conditions = _filter_conditions(filters)

    total = db.query(func.count(Product.id)).filter(*conditions).scalar() or 0

    products = (
        with_card_options(db.query(Product))
        .filter(*conditions)
        .order_by(*_order_by(filters.sort_by))
        .offset((filters.page - 1) * filters.page_size)
        .limit(filters.page_size)
        .all()
    )

    return MarketplaceResult(
        products=build_product_cards(db, products),
        total=total,
        page=filters.page,
        page_size=filters.page_size,
        total_pages=_total_pages(total, filters.page_size),
    )


def search_marketplace(
    db: Session,
    query: str,
    page: int = 1,
    page_size: int = DEFAULT_PAGE_SIZE,
) -> MarketplaceResult:
    """Case-insensitive substring search, newest first.

    A blank query returns an empty result without querying the store.
    """
    term = (query or "").strip()
    if not term:
        return MarketplaceResult(products=[], total=0, page=page, page_size=page_size, total_pages=0)

    return get_marketplace_products(
        db,
        MarketplaceFilters(search=term, sort_by="newest", page=page, page_size=page_size),
    )


# =============================================================================
# PROMOTED PLACEMENTS
# =============================================================================

def get_promoted_products(
    db: Session, limit: int = 12, now: Optional[datetime] = None
) -> List[MarketplaceProduct]:
    """Live promoted listings as cards, best tier first.

    Order: tier desc, starts_at desc, listing id asc. A product with more
    than one live promotion appears once, under its best-ranked listing;
    the per-product pick happens in SQL so LIMIT counts distinct products.
    """
    now = as_naive_utc(now) if now is not None else utc_now()

    tier_rank = tier_rank_expression()
    ranked = (
        select(
            PromotedListing.id.label("listing_id"),
            PromotedListing.product_id,
            PromotedListing.tier,
            PromotedListing.starts_at,
            tier_rank.label("tier_rank"),
            func.row_number()
            .over(
                partition_by=PromotedListing.product_id,
                order_by=(tier_rank.desc(), PromotedListing.starts_at.desc(), PromotedListing.id.asc()),
            )
            .label("product_rank"),
        )
        .where(
            *live_promotion_conditions(now),
            PromotedListing.product.has(and_(*discoverable_conditions())),
        )
        .subquery()
    )
    rows = db.execute(
        select(ranked.c.listing_id, ranked.c.product_id, ranked.c.tier)
        .where(ranked.c.product_rank == 1)
        .order_by(ranked.c.tier_rank.desc(), ranked.c.starts_at.desc(), ranked.c.listing_id.asc())
        .limit(limit)
    ).all()
    if not rows:
        return []

    badges: Dict[UUID, PromotionBadge] = {
        row.product_id: PromotionBadge(tier=row.tier, promoted_listing_id=row.listing_id) for row in rows
    }

    products = (
        with_card_options(db.query(Product))
        .filter(Product.id.in_(list(badges)))
        .all()
    )
    by_id = {product.id: product for product in products}
    ordered = [by_id[product_id] for product_id in badges if product_id in by_id]
    return build_product_cards(db, ordered, promotions=badges)


def build_marketplace_feed(
    db: Session,
    filters: Optional[MarketplaceFilters] = None,
    promoted_limit: int = 12,
    now: Optional[datetime] = None,
) -> MarketplaceFeed:
    """Read path for the marketplace grid.

    Sweeps expired promotions, loads the organic page and the live promoted
    placements, then interleaves them. Pagination metadata is the organic
    query's. The promoted listing ids are returned for impression tracking.
    """
    filters = filters or MarketplaceFilters()
    expire_promoted_listings(db, now=now)

    organic = get_marketplace_products(db, filters)
    promoted = get_promoted_products(db, limit=promoted_limit, now=now)
    merged = interleave(organic.products, promoted)

    logger.debug(
        f"[MARKETPLACE] Feed page {organic.page}: {len(organic.products)} organic, {len(promoted)} promoted"
    )
    return MarketplaceFeed(
        products=merged,
        total=organic.total,
        page=organic.page,
        page_size=organic.page_size,
        total_pages=organic.total_pages,
        promoted_listing_ids=[card.promotion.promoted_listing_id for card in promoted],
    )


# =============================================================================
# CATEGORIES & SHOPS
# =============================================================================

def get_global_categories(db: Session) -> List[CategoryWithCount]:
    """Active category tree with discoverable product counts.

    Top level and children ordered by display_order. A parent's count
    includes its children's.
    """
    categories = (
        db.query(Category)
        .filter(Category.is_active.is_(True))
        .order_by(Category.display_order.asc(), Category.name.asc())
        .all()
    )

    counts = dict(
        db.query(Product.category_id, func.count(Product.id))
        .filter(Product.category_id.isnot(None), *discoverable_conditions())
        .group_by(Product.category_id)
        .all()
    )

    top_level: List[CategoryWithCount] = []
    children: Dict[UUID, List[CategoryWithCount]] = {}
    for category in categories:
        node = CategoryWithCount(
            id=category.id,
            name=category.name,
            slug=category.slug,
            icon=category.icon,
            description=category.description,
            image_url=category.image_url,
            product_count=counts.get(category.id, 0),
        )
        if category.parent_id:
            children.setdefault(category.parent_id, []).append(node)
        else:
            top_level.append(node)

    for parent in top_level:
        parent.children = children.get(parent.id, [])
        parent.product_count += sum(child.product_count for child in parent.children)

    return top_level


def get_featured_shops(db: Session, limit: int = 12, now: Optional[datetime] = None) -> List[FeaturedShop]:
    """Active shops that are admin-featured or hold a live SPOTLIGHT promotion."""
    now = as_naive_utc(now) if now is not None else utc_now()

    live_spotlight = and_(
        PromotedListing.tier == PromotionTierEnum.spotlight,
        *live_promotion_conditions(now),
    )

    shops = (
        db.query(Shop)
        .filter(
            Shop.is_active.is_(True),
            or_(Shop.is_featured_shop.is_(True), Shop.promoted_listings.any(live_spotlight)),
        )
        .order_by(Shop.created_at.asc(), Shop.id.asc())
        .limit(limit)
        .all()
    )
    if not shops:
        return []

    shop_ids = [shop.id for shop in shops]
    product_counts = dict(
        db.query(Product.shop_id, func.count(Product.id))
        .filter(Product.shop_id.in_(shop_ids), *discoverable_conditions())
        .group_by(Product.shop_id)
        .all()
    )
    spotlight_shops = {
        row.shop_id
        for row in db.query(PromotedListing.shop_id)
        .filter(PromotedListing.shop_id.in_(shop_ids), live_spotlight)
        .distinct()
        .all()
    }

    return [
        FeaturedShop(
            id=shop.id,
            name=shop.name,
            slug=shop.slug,
            description=shop.description,
            logo_url=shop.logo_url,
            banner_url=shop.banner_url,
            city=shop.city,
            province=shop.province,
            is_verified=shop.is_verified,
            product_count=product_counts.get(shop.id, 0),
            has_spotlight=shop.id in spotlight_shops,
        )
        for shop in shops
    ]
