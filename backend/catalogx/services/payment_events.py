"""Payment-confirmed event consumer.

WHAT: Turns a confirmed promotion payment into a promoted listing
WHY: Payment capture happens upstream; this side only trusts the confirmed
     result and re-checks the amount against its own price table
REFERENCES:
  - catalogx/services/promotion_pricing.py: reference format, expected price
  - catalogx/services/promotion_lifecycle.py: create_promoted_listing
  - catalogx/routers/payment_webhooks.py
"""

import logging
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..errors import InvalidPromotionPaymentError
from ..models import PromotedListing
from ..schemas import PaymentConfirmedEvent
from ..telemetry import capture_message
from .promotion_lifecycle import create_promoted_listing
from .promotion_pricing import calculate_promotion_price, parse_promotion_payment_id

logger = logging.getLogger(__name__)

COMPLETE_STATUS = "COMPLETE"
# R1 tolerance for provider-side rounding
AMOUNT_TOLERANCE_CENTS = 100


def _reject(message: str, event: PaymentConfirmedEvent, **extra) -> InvalidPromotionPaymentError:
    """Log and report a rejected promotion payment; returns the error to raise."""
    logger.error(f"[PAYMENTS] Rejected promotion payment {event.payment_reference}: {message}")
    capture_message(
        f"Rejected promotion payment: {message}",
        level="error",
        extra={"payment_reference": event.payment_reference, **extra},
    )
    return InvalidPromotionPaymentError(message, payment_reference=event.payment_reference)


def handle_promotion_payment(
    db: Session,
    event: PaymentConfirmedEvent,
    now: Optional[datetime] = None,
) -> Optional[PromotedListing]:
    """Create the promoted listing a confirmed payment paid for.

    Returns:
        The new listing, or None when the event is not a promotion payment
        or the payment is not complete.

    Raises:
        InvalidPromotionPaymentError: ids are malformed or the amount does
            not match the quoted price
        OwnershipViolationError: the product is not owned by the paying shop
    """
    ref = parse_promotion_payment_id(event.payment_reference)
    if ref is None:
        logger.debug(f"[PAYMENTS] Ignoring non-promotion payment {event.payment_reference}")
        return None

    if event.status.upper() != COMPLETE_STATUS:
        logger.info(f"[PAYMENTS] Promotion payment {event.payment_reference} not complete: {event.status}")
        return None

    try:
        shop_id = UUID(ref.shop_id)
        product_id = UUID(ref.product_id)
    except ValueError as exc:
        raise _reject("Malformed shop or product id in payment reference", event) from exc

    expected = calculate_promotion_price(ref.tier, ref.weeks)
    if abs(event.amount_paid_cents - expected) > AMOUNT_TOLERANCE_CENTS:
        raise _reject(
            f"Amount mismatch: expected {expected} cents, got {event.amount_paid_cents}",
            event,
            expected_cents=expected,
            amount_paid_cents=event.amount_paid_cents,
        )

    listing = create_promoted_listing(
        db,
        shop_id=shop_id,
        product_id=product_id,
        tier=ref.tier,
        weeks=ref.weeks,
        amount_paid_cents=event.amount_paid_cents,
        payment_reference=event.provider_payment_id or event.payment_reference,
        now=now,
    )
    logger.info(f"[PAYMENTS] Promotion created: {listing.id} ({ref.tier.value}, {ref.weeks}wk)")
    return listing
