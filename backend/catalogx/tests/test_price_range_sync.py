"""Tests for the product price range synchronizer.

WHAT: min/max price over ACTIVE variants, 0/0 without any, idempotence, backfill
WHY: Marketplace price sorting trusts these denormalized columns
REFERENCES:
  - catalogx/services/price_range_sync.py
"""

import uuid

from catalogx.models import Product, ProductVariant
from catalogx.services.price_range_sync import sync_all_product_price_ranges, sync_product_price_range


def _drift(db, product, min_price=1, max_price=99999):
    product.min_price_cents = min_price
    product.max_price_cents = max_price
    db.commit()


class TestSyncProductPriceRange:

    def test_blue_co_scenario_ignores_inactive_variant(self, test_db_session, blue_co, make_product):
        product = make_product(blue_co, name="P", prices=(1500, 1000, 2000), inactive_prices=(9999,))
        _drift(test_db_session, product)

        result = sync_product_price_range(test_db_session, product.id)
        test_db_session.commit()

        assert result == (1000, 2000)
        test_db_session.refresh(product)
        assert product.min_price_cents == 1000
        assert product.max_price_cents == 2000

    def test_no_active_variants_resets_to_zero(self, test_db_session, blue_co, make_product):
        product = make_product(blue_co, prices=(), inactive_prices=(500, 700))
        _drift(test_db_session, product)

        assert sync_product_price_range(test_db_session, product.id) == (0, 0)
        test_db_session.commit()
        test_db_session.refresh(product)
        assert (product.min_price_cents, product.max_price_cents) == (0, 0)

    def test_loaded_instance_sees_new_values(self, test_db_session, blue_co, make_product):
        product = make_product(blue_co, prices=(1000,))
        test_db_session.add(ProductVariant(product_id=product.id, size="XL", price_in_cents=3000, stock=1))

        sync_product_price_range(test_db_session, product.id)

        # No refresh: the UPDATE expired the loaded attributes
        assert product.max_price_cents == 3000

    def test_idempotent(self, test_db_session, blue_co, make_product):
        product = make_product(blue_co, prices=(1200, 800))

        first = sync_product_price_range(test_db_session, product.id)
        second = sync_product_price_range(test_db_session, product.id)

        assert first == second == (800, 1200)

    def test_unknown_product_is_not_an_error(self, test_db_session):
        assert sync_product_price_range(test_db_session, uuid.uuid4()) == (0, 0)

    def test_does_not_commit(self, test_db_session, session_factory, blue_co, make_product):
        product = make_product(blue_co, prices=(1000,))
        _drift(test_db_session, product, 5, 5)

        sync_product_price_range(test_db_session, product.id)
        test_db_session.rollback()

        other = session_factory()
        try:
            stored = other.get(Product, product.id)
            assert (stored.min_price_cents, stored.max_price_cents) == (5, 5)
        finally:
            other.close()


class TestSyncAllProductPriceRanges:

    def test_backfill_counts_updated_and_empty(self, test_db_session, blue_co, make_product):
        priced = make_product(blue_co, name="priced", prices=(400, 900))
        empty = make_product(blue_co, name="empty", prices=(), inactive_prices=(100,))
        _drift(test_db_session, priced)
        _drift(test_db_session, empty)

        result = sync_all_product_price_ranges(test_db_session)

        assert result == {"updated": 1, "empty": 1}
        test_db_session.refresh(priced)
        test_db_session.refresh(empty)
        assert (priced.min_price_cents, priced.max_price_cents) == (400, 900)
        assert (empty.min_price_cents, empty.max_price_cents) == (0, 0)
