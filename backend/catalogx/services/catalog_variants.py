"""Variant mutations with price range sync hooks.

WHAT: Create / update / delete product variants on behalf of a shop
WHY: Every variant write changes the product's denormalized price range, so
     each mutation re-syncs the parent product in the same transaction
REFERENCES:
  - catalogx/services/ownership.py: ownership checks
  - catalogx/services/price_range_sync.py: post-condition after every write

Ownership mismatches return None (or 0 for batches) instead of raising so a
caller cannot tell "not yours" apart from "does not exist".
"""

import logging
from typing import Any, Dict, Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models import ProductVariant
from .ownership import verify_product_ownership, verify_variant_ownership
from .price_range_sync import sync_product_price_range

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("size", "color", "sku", "price_in_cents", "stock", "is_active")
AMOUNT_FIELDS = ("price_in_cents", "stock")


def _validate_amounts(values: Dict[str, Any]) -> None:
    """Every amount field present in values must be a non-negative int."""
    for field in AMOUNT_FIELDS:
        if field not in values:
            continue
        value = values[field]
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"{field} must be an integer")
        if value < 0:
            raise ValueError(f"{field} must be non-negative")


def create_variant(
    db: Session,
    shop_id: UUID,
    product_id: UUID,
    *,
    size: str,
    price_in_cents: int,
    stock: int = 0,
    color: Optional[str] = None,
    sku: Optional[str] = None,
    is_active: bool = True,
) -> Optional[ProductVariant]:
    """Create a variant and re-sync the product price range.

    Returns:
        The new variant, or None if the product is not owned by the shop.

    Raises:
        ValueError: price or stock is not a non-negative int
    """
    _validate_amounts({"price_in_cents": price_in_cents, "stock": stock})
    if not verify_product_ownership(db, product_id, shop_id):
        return None

    variant = ProductVariant(
        product_id=product_id,
        size=size,
        color=color,
        sku=sku,
        price_in_cents=price_in_cents,
        stock=stock,
        is_active=is_active,
    )
    db.add(variant)
    sync_product_price_range(db, product_id)
    db.commit()
    db.refresh(variant)

    logger.info(f"[VARIANTS] Created variant {variant.id} for product {product_id}")
    return variant


def update_variant(
    db: Session,
    shop_id: UUID,
    variant_id: UUID,
    changes: Dict[str, Any],
) -> Optional[ProductVariant]:
    """Apply only the supplied fields to a variant, then re-sync.

    Unknown keys are ignored. Returns None if the variant is not owned by
    the shop.

    Raises:
        ValueError: a supplied price or stock is not a non-negative int
    """
    _validate_amounts(changes)
    variant = verify_variant_ownership(db, variant_id, shop_id)
    if variant is None:
        return None

    for field in UPDATABLE_FIELDS:
        if field in changes:
            setattr(variant, field, changes[field])

    sync_product_price_range(db, variant.product_id)
    db.commit()
    db.refresh(variant)
    return variant


def delete_variant(db: Session, shop_id: UUID, variant_id: UUID) -> Optional[bool]:
    """Delete a variant, then re-sync. None if not owned by the shop."""
    variant = verify_variant_ownership(db, variant_id, shop_id)
    if variant is None:
        return None

    product_id = variant.product_id
    db.delete(variant)
    sync_product_price_range(db, product_id)
    db.commit()

    logger.info(f"[VARIANTS] Deleted variant {variant_id} from product {product_id}")
    return True


def batch_create_variants(
    db: Session,
    shop_id: UUID,
    product_id: UUID,
    variants: Iterable[Dict[str, Any]],
) -> Optional[int]:
    """Create many variants in one transaction.

    (size, color) combinations already on the product, or repeated inside
    the batch, are skipped. The price range is synced once at the end.

    Returns:
        Number of variants created, or None if the product is not owned.
    """
    variants = list(variants)
    for entry in variants:
        if "price_in_cents" not in entry:
            raise ValueError("price_in_cents is required")
        _validate_amounts(entry)

    if not verify_product_ownership(db, product_id, shop_id):
        return None

    existing = {
        (row.size, row.color)
        for row in db.query(ProductVariant.size, ProductVariant.color)
        .filter(ProductVariant.product_id == product_id)
        .all()
    }

    created = 0
    for entry in variants:
        key = (entry["size"], entry.get("color"))
        if key in existing:
            continue
        existing.add(key)
        db.add(
            ProductVariant(
                product_id=product_id,
                size=entry["size"],
                color=entry.get("color"),
                sku=entry.get("sku"),
                price_in_cents=entry["price_in_cents"],
                stock=entry.get("stock", 0),
                is_active=entry.get("is_active", True),
            )
        )
        created += 1

    sync_product_price_range(db, product_id)
    db.commit()

    logger.info(f"[VARIANTS] Batch created {created}/{len(variants)} variants for product {product_id}")
    return created
