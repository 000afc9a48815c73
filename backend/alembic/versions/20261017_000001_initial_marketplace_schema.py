"""Initial marketplace schema (shops, catalog, promoted listings, engagement log)

Revision ID: 20261017_000001
Revises:
Create Date: 2026-10-17 09:00:00.000000

WHAT:
    Creates the catalog store:
    - shops: tenant root
    - categories: global self-referential category tree
    - products / product_images / product_variants: per-shop catalog with
      denormalized min/max price
    - promoted_listings: paid, time-boxed placements
    - engagement_events: append-only engagement log

WHY:
    Marketplace sorting reads the denormalized price columns and the expiry
    sweep filters on (status, expires_at); both are indexed here.

REFERENCES:
    - catalogx/models.py
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261017_000001"
down_revision = None
branch_labels = None
depends_on = None


PROMOTION_TIERS = ("BOOST", "FEATURED", "SPOTLIGHT")
PROMOTION_STATUSES = ("ACTIVE", "EXPIRED", "CANCELLED")
ENGAGEMENT_EVENT_TYPES = (
    "PRODUCT_VIEW",
    "STOREFRONT_VIEW",
    "MARKETPLACE_VIEW",
    "MARKETPLACE_CLICK",
    "WHATSAPP_CLICK",
    "WHATSAPP_CHECKOUT",
    "PROMOTED_IMPRESSION",
    "PROMOTED_CLICK",
)


def upgrade() -> None:
    # =========================================================================
    # Tenants and categories
    # =========================================================================
    op.create_table(
        "shops",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("logo_url", sa.String(), nullable=True),
        sa.Column("banner_url", sa.String(), nullable=True),
        sa.Column("city", sa.String(), nullable=True),
        sa.Column("province", sa.String(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_featured_shop", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_shops_slug", "shops", ["slug"], unique=True)

    op.create_table(
        "categories",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("slug", sa.String(), nullable=False),
        sa.Column("parent_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("icon", sa.String(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.String(), nullable=True),
        sa.Column("display_order", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
    )
    op.create_index("ix_categories_slug", "categories", ["slug"], unique=True)

    # =========================================================================
    # Catalog
    # =========================================================================
    op.create_table(
        "products",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("shop_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("category_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("categories.id"), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("min_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_price_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index("ix_products_shop_id", "products", ["shop_id"])
    op.create_index("ix_products_category_id", "products", ["category_id"])
    op.create_index("ix_products_created_at", "products", ["created_at"])
    op.create_index("ix_products_min_price_cents", "products", ["min_price_cents"])
    op.create_index("ix_products_max_price_cents", "products", ["max_price_cents"])

    op.create_table(
        "product_images",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("url", sa.String(), nullable=False),
        sa.Column("alt_text", sa.String(), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_product_images_product_id", "product_images", ["product_id"])

    op.create_table(
        "product_variants",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("size", sa.String(), nullable=False),
        sa.Column("color", sa.String(), nullable=True),
        sa.Column("sku", sa.String(), nullable=True),
        sa.Column("price_in_cents", sa.Integer(), nullable=False),
        sa.Column("stock", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("product_id", "size", "color", name="uq_variant_options"),
        sa.CheckConstraint("stock >= 0", name="ck_variant_stock_non_negative"),
    )
    op.create_index("ix_product_variants_product_id", "product_variants", ["product_id"])

    # =========================================================================
    # Promotions and engagement
    # =========================================================================
    op.create_table(
        "promoted_listings",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("shop_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=False),
        sa.Column("tier", sa.Enum(*PROMOTION_TIERS, name="promotion_tier"), nullable=False),
        sa.Column(
            "status",
            sa.Enum(*PROMOTION_STATUSES, name="promotion_status"),
            nullable=False,
            server_default="ACTIVE",
        ),
        sa.Column("starts_at", sa.DateTime(), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("impressions", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("clicks", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("amount_paid_cents", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("payment_reference", sa.String(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.CheckConstraint("starts_at < expires_at", name="ck_promotion_window"),
    )
    op.create_index(
        "ix_promoted_listings_status_expires_at", "promoted_listings", ["status", "expires_at"]
    )
    op.create_index("ix_promoted_listings_product_id", "promoted_listings", ["product_id"])
    op.create_index("ix_promoted_listings_shop_id", "promoted_listings", ["shop_id"])

    op.create_table(
        "engagement_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("type", sa.Enum(*ENGAGEMENT_EVENT_TYPES, name="engagement_event_type"), nullable=False),
        sa.Column("shop_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("shops.id"), nullable=False),
        sa.Column("product_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("products.id"), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index(
        "ix_engagement_events_product_created", "engagement_events", ["product_id", "created_at"]
    )
    op.create_index("ix_engagement_events_shop_type", "engagement_events", ["shop_id", "type"])


def downgrade() -> None:
    op.drop_table("engagement_events")
    op.drop_table("promoted_listings")
    op.drop_table("product_variants")
    op.drop_table("product_images")
    op.drop_table("products")
    op.drop_table("categories")
    op.drop_table("shops")

    bind = op.get_bind()
    sa.Enum(name="engagement_event_type").drop(bind, checkfirst=True)
    sa.Enum(name="promotion_status").drop(bind, checkfirst=True)
    sa.Enum(name="promotion_tier").drop(bind, checkfirst=True)
