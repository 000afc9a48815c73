"""
Catalog Errors
==============

Exception types surfaced by the marketplace and promotion services.

WHY THIS FILE EXISTS
--------------------
Most failure modes in this service are deliberately NOT exceptions:

- Ownership or state mismatches on cancel / variant mutations return a
  falsy sentinel so callers cannot probe other tenants' data.
- Tracking failures are caught and logged at the tracker boundary.
- Price range drift is an expected, self-correcting window.

What remains are the cases a caller must always see.

RELATED FILES
-------------
- catalogx/services/promotion_lifecycle.py: raises OwnershipViolationError
- catalogx/services/payment_events.py: raises InvalidPromotionPaymentError
- catalogx/main.py: maps these to HTTP responses
"""

from typing import Optional


class CatalogxError(Exception):
    """
    Base exception for all catalog service errors.

    Allows catching every surfaced service error with a single except clause
    while still handling specific types.
    """

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_user_message(self) -> str:
        return self.message


class OwnershipViolationError(CatalogxError):
    """
    Product does not belong to the shop paying for a promotion.

    WHAT:
        Raised only at promotion creation.

    WHY:
        This is a security boundary, not a soft "not found": a payment was
        confirmed for a product the shop does not own, and that must never
        silently succeed or disappear.
    """

    status_code = 403

    def __init__(self, product_id, shop_id):
        super().__init__("Product not found or access denied")
        self.product_id = product_id
        self.shop_id = shop_id


class InvalidPromotionPaymentError(CatalogxError):
    """Confirmed payment does not cover the promotion it claims to buy."""

    def __init__(self, message: str, payment_reference: Optional[str] = None):
        super().__init__(message)
        self.payment_reference = payment_reference
