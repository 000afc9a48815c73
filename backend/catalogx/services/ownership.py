"""Tenant ownership checks.

WHAT: One reusable capability check per owned entity type.
WHY: Cross-tenant isolation is enforced purely by explicit shop id
     comparison before every mutation; there is no row-level security.
     Every mutating service calls these instead of re-querying ownership.
REFERENCES:
  - catalogx/services/catalog_variants.py
  - catalogx/services/promotion_lifecycle.py
"""

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..models import Product, ProductVariant


def verify_product_ownership(db: Session, product_id: UUID, shop_id: UUID) -> bool:
    """Return True if the product exists and belongs to the shop."""
    product = (
        db.query(Product.id)
        .filter(Product.id == product_id, Product.shop_id == shop_id)
        .first()
    )
    return product is not None


def verify_variant_ownership(db: Session, variant_id: UUID, shop_id: UUID) -> Optional[ProductVariant]:
    """Return the variant if its parent product belongs to the shop, else None.

    Variants carry no shop id of their own; ownership is traced through the
    parent product.
    """
    return (
        db.query(ProductVariant)
        .join(Product, Product.id == ProductVariant.product_id)
        .filter(ProductVariant.id == variant_id, Product.shop_id == shop_id)
        .first()
    )
