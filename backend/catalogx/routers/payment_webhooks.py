"""
Payment Webhooks Router
=======================

WHAT:
    Receives confirmed-payment results from the payment integration and
    hands promotion payments to the payment event consumer.

WHY:
    Payment capture and provider signature validation happen upstream; this
    endpoint only checks the shared secret and trusts the confirmed result.
    Non-promotion payments are acknowledged and ignored.

REFERENCES:
    - catalogx/services/payment_events.py
    - catalogx/main.py (CatalogxError -> HTTP status mapping)
"""

from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from catalogx.deps import Settings, get_db, get_settings
from catalogx.schemas import PaymentConfirmedEvent
from catalogx.services.payment_events import handle_promotion_payment

logger = logging.getLogger(__name__)


router = APIRouter(
    prefix="/webhooks/payments",
    tags=["Payment Webhooks"],
    responses={
        400: {"description": "Invalid promotion payment"},
        401: {"description": "Invalid webhook secret"},
        403: {"description": "Product not owned by paying shop"},
    },
)


def verify_webhook_secret(
    x_webhook_secret: Optional[str] = Header(default=None, alias="X-Webhook-Secret"),
    settings: Settings = Depends(get_settings),
) -> None:
    """Constant-time comparison against PAYMENT_WEBHOOK_SECRET, when configured."""
    expected = settings.PAYMENT_WEBHOOK_SECRET
    if not expected:
        return
    if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, expected):
        logger.warning("[PAYMENTS] Rejected webhook with invalid secret")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid webhook secret")


@router.post("/promotion", dependencies=[Depends(verify_webhook_secret)])
def promotion_payment(event: PaymentConfirmedEvent, db: Session = Depends(get_db)):
    listing = handle_promotion_payment(db, event)
    if listing is None:
        return {"received": True, "promotion_id": None}
    return {"received": True, "promotion_id": str(listing.id)}
