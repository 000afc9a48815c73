"""
Promotion Pricing Tests (Unit)
==============================

WHAT: Unit tests for tier prices, duration discounts and payment references.
WHY: The quote shown to the seller, the checkout amount and the webhook's
     amount check must agree to the cent.

REFERENCES:
- backend/catalogx/services/promotion_pricing.py
"""

import uuid

import pytest

from catalogx.models import PromotionTierEnum
from catalogx.services.promotion_pricing import (
    PROMOTION_TIERS,
    build_promotion_payment_id,
    calculate_promotion_price,
    format_zar,
    get_promotion_summary,
    parse_promotion_payment_id,
)


@pytest.mark.parametrize(
    "tier,weeks,expected",
    [
        ("BOOST", 1, 4900),
        ("BOOST", 2, 9310),
        ("BOOST", 4, 17640),
        ("FEATURED", 1, 14900),
        ("FEATURED", 4, 53640),
        ("SPOTLIGHT", 1, 39900),
        ("SPOTLIGHT", 2, 75810),
        ("SPOTLIGHT", 4, 143640),
        # Durations outside the catalogue carry no discount
        ("BOOST", 3, 14700),
    ],
)
def test_calculate_promotion_price(tier, weeks, expected) -> None:
    assert calculate_promotion_price(tier, weeks) == expected


def test_tiers_are_priced_in_ascending_order() -> None:
    prices = [PROMOTION_TIERS[tier].price_per_week_cents for tier in PromotionTierEnum]

    assert prices == sorted(prices)
    assert [tier.rank for tier in PromotionTierEnum] == [1, 2, 3]


def test_format_zar() -> None:
    assert format_zar(4900) == "R49.00"
    assert format_zar(9310) == "R93.10"
    assert format_zar(5) == "R0.05"


def test_get_promotion_summary() -> None:
    assert get_promotion_summary("BOOST", 2) == "Boost - 2 weeks - R93.10"
    assert get_promotion_summary(PromotionTierEnum.spotlight, 1) == "Spotlight - 1 week - R399.00"


def test_payment_id_round_trip() -> None:
    shop_id, product_id = uuid.uuid4(), uuid.uuid4()

    payment_id = build_promotion_payment_id(shop_id, product_id, PromotionTierEnum.featured, 4)
    ref = parse_promotion_payment_id(payment_id)

    assert payment_id == f"promo_{shop_id}_{product_id}_FEATURED_4"
    assert (ref.shop_id, ref.product_id) == (str(shop_id), str(product_id))
    assert (ref.tier, ref.weeks) == (PromotionTierEnum.featured, 4)


@pytest.mark.parametrize(
    "payment_id",
    [
        "",
        "sub_shop_plan_1",
        "promo_shop_product_BOOST",
        "promo_shop_product_BOOST_1_extra",
        "promo_shop_product_MEGA_1",
        "promo_shop_product_boost_1",
        "promo_shop_product_BOOST_0",
        "promo_shop_product_BOOST_-1",
        "promo_shop_product_BOOST_two",
        "promo__product_BOOST_1",
    ],
)
def test_parse_rejects_malformed_payment_ids(payment_id) -> None:
    assert parse_promotion_payment_id(payment_id) is None
