"""Promotion tiers, pricing and payment references.

WHAT: Tier catalogue, duration discounts, price calculation and the payment
      reference format that links a confirmed payment back to a promotion
WHY: The promote page quote, the payment checkout and the payment webhook
     must all agree on the same numbers and the same reference format
REFERENCES:
  - catalogx/services/payment_events.py: parses references, checks amounts
  - catalogx/routers/promotions.py: /promotions/quote

All prices are ZAR cents; durations are weeks.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Union
from uuid import UUID

from ..models import PromotionTierEnum


PAYMENT_ID_PREFIX = "promo_"


@dataclass(frozen=True)
class PromotionTierConfig:
    tier: PromotionTierEnum
    name: str
    description: str
    price_per_week_cents: int
    badge_label: str
    features: tuple = ()


@dataclass(frozen=True)
class PromotionDuration:
    weeks: int
    label: str
    discount: float  # 0-1, 0.1 = 10% off


@dataclass(frozen=True)
class PromotionPaymentRef:
    """Components encoded in a promotion payment id."""
    shop_id: str
    product_id: str
    tier: PromotionTierEnum
    weeks: int


PROMOTION_TIERS: Dict[PromotionTierEnum, PromotionTierConfig] = {
    PromotionTierEnum.boost: PromotionTierConfig(
        tier=PromotionTierEnum.boost,
        name="Boost",
        description="Get your product mixed into the marketplace feed with a 'Sponsored' label.",
        price_per_week_cents=4900,
        badge_label="Sponsored",
        features=(
            "Mixed into marketplace feed",
            '"Sponsored" label on card',
            "Impression & click tracking",
        ),
    ),
    PromotionTierEnum.featured: PromotionTierConfig(
        tier=PromotionTierEnum.featured,
        name="Featured",
        description="Priority feed placement plus a spot in the Featured carousel.",
        price_per_week_cents=14900,
        badge_label="Featured",
        features=(
            "Everything in Boost",
            "Featured carousel placement",
            '"Featured" badge',
            "Higher feed priority",
        ),
    ),
    PromotionTierEnum.spotlight: PromotionTierConfig(
        tier=PromotionTierEnum.spotlight,
        name="Spotlight",
        description="Maximum visibility: top of marketplace, carousel and a premium badge.",
        price_per_week_cents=39900,
        badge_label="Spotlight",
        features=(
            "Everything in Featured",
            "Top of marketplace feed",
            '"Spotlight" badge',
            "Premium visual treatment",
        ),
    ),
}

PROMOTION_DURATIONS: List[PromotionDuration] = [
    PromotionDuration(weeks=1, label="1 week", discount=0.0),
    PromotionDuration(weeks=2, label="2 weeks", discount=0.05),
    PromotionDuration(weeks=4, label="4 weeks", discount=0.10),
]


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _find_duration(weeks: int) -> Optional[PromotionDuration]:
    return next((d for d in PROMOTION_DURATIONS if d.weeks == weeks), None)


def calculate_promotion_price(tier: Union[PromotionTierEnum, str], weeks: int) -> int:
    """Total price in cents for a tier and duration.

    Durations outside the catalogue carry no discount.
    """
    config = PROMOTION_TIERS[PromotionTierEnum(tier)]
    duration = _find_duration(weeks)
    discount = duration.discount if duration else 0.0
    return _round_half_up(config.price_per_week_cents * weeks * (1 - discount))


def format_zar(cents: int) -> str:
    """4900 -> "R49.00"."""
    return f"R{cents / 100:.2f}"


def get_promotion_summary(tier: Union[PromotionTierEnum, str], weeks: int) -> str:
    """Human readable summary, e.g. "Boost - 2 weeks - R93.10"."""
    config = PROMOTION_TIERS[PromotionTierEnum(tier)]
    duration = _find_duration(weeks)
    label = duration.label if duration else f"{weeks} week(s)"
    return f"{config.name} - {label} - {format_zar(calculate_promotion_price(tier, weeks))}"


def build_promotion_payment_id(
    shop_id: Union[UUID, str],
    product_id: Union[UUID, str],
    tier: Union[PromotionTierEnum, str],
    weeks: int,
) -> str:
    """Payment reference: promo_{shop}_{product}_{TIER}_{weeks}."""
    return f"{PAYMENT_ID_PREFIX}{shop_id}_{product_id}_{PromotionTierEnum(tier).value}_{weeks}"


def parse_promotion_payment_id(payment_id: str) -> Optional[PromotionPaymentRef]:
    """Inverse of build_promotion_payment_id.

    Returns None for non-promotion references (subscriptions etc.) and for
    malformed ones: unknown tier, non-positive or non-numeric weeks.
    UUIDs contain no underscores, so a plain split is unambiguous.
    """
    if not payment_id or not payment_id.startswith(PAYMENT_ID_PREFIX):
        return None

    parts = payment_id.split("_")
    if len(parts) != 5:
        return None

    _, shop_id, product_id, tier_value, weeks_value = parts
    if not shop_id or not product_id:
        return None

    try:
        tier = PromotionTierEnum(tier_value)
    except ValueError:
        return None

    if not weeks_value.isdigit():
        return None
    weeks = int(weeks_value)
    if weeks <= 0:
        return None

    return PromotionPaymentRef(shop_id=shop_id, product_id=product_id, tier=tier, weeks=weeks)
