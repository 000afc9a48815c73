"""Tests for engagement tracking.

WHAT: relative counter increments, click events, fire-and-forget failures
REFERENCES:
  - catalogx/services/engagement_tracker.py
"""

import uuid

from catalogx.models import EngagementEvent, EngagementEventTypeEnum, PromotedListing
from catalogx.services import engagement_tracker
from catalogx.services.engagement_tracker import (
    record_engagement_event,
    track_promoted_click,
    track_promoted_impressions,
)


def _counters(db, listing_id):
    db.expire_all()
    listing = db.get(PromotedListing, listing_id)
    return listing.impressions, listing.clicks


class TestImpressions:

    def test_each_listing_in_batch_gets_one_impression(self, test_db_session, blue_co, make_product, make_promotion):
        first = make_promotion(make_product(blue_co, name="a"))
        second = make_promotion(make_product(blue_co, name="b"), impressions=10)
        untouched = make_promotion(make_product(blue_co, name="c"))

        track_promoted_impressions(test_db_session, [first.id, second.id, uuid.uuid4()])

        assert _counters(test_db_session, first.id) == (1, 0)
        assert _counters(test_db_session, second.id) == (11, 0)
        assert _counters(test_db_session, untouched.id) == (0, 0)

    def test_concurrent_sessions_do_not_lose_updates(self, test_db_session, session_factory, blue_co, make_product, make_promotion):
        listing = make_promotion(make_product(blue_co))
        sessions = [session_factory() for _ in range(3)]
        try:
            # Every session loads the row first, as a page render would
            for session in sessions:
                session.get(PromotedListing, listing.id)
            for session in sessions:
                track_promoted_impressions(session, [listing.id])
        finally:
            for session in sessions:
                session.close()

        assert _counters(test_db_session, listing.id) == (3, 0)

    def test_empty_batch_is_a_no_op(self, test_db_session, monkeypatch):
        def _fail(*args, **kwargs):
            raise AssertionError("store must not be touched")

        monkeypatch.setattr(test_db_session, "execute", _fail)

        track_promoted_impressions(test_db_session, [])


class TestClicks:

    def test_click_increments_and_logs_event(self, test_db_session, blue_co, make_product, make_promotion):
        product = make_product(blue_co)
        listing = make_promotion(product)

        track_promoted_click(test_db_session, listing.id, blue_co.id, product.id)
        track_promoted_click(test_db_session, listing.id, blue_co.id, product.id)

        assert _counters(test_db_session, listing.id) == (0, 2)
        events = test_db_session.query(EngagementEvent).filter_by(product_id=product.id).all()
        assert len(events) == 2
        assert {e.type for e in events} == {EngagementEventTypeEnum.promoted_click}


class TestRecordEvent:

    def test_appends_event(self, test_db_session, blue_co, make_product):
        product = make_product(blue_co)

        record_engagement_event(test_db_session, "PRODUCT_VIEW", blue_co.id, product.id)
        record_engagement_event(test_db_session, EngagementEventTypeEnum.storefront_view, blue_co.id)

        types = sorted(e.type.value for e in test_db_session.query(EngagementEvent).all())
        assert types == ["PRODUCT_VIEW", "STOREFRONT_VIEW"]


class TestFailuresAreSwallowed:

    def test_store_error_is_logged_reported_and_dropped(self, test_db_session, blue_co, monkeypatch, caplog):
        captured = []

        def _broken_execute(*args, **kwargs):
            raise RuntimeError("connection reset")

        monkeypatch.setattr(test_db_session, "execute", _broken_execute)
        monkeypatch.setattr(
            engagement_tracker, "capture_exception", lambda error, **kwargs: captured.append(error)
        )

        track_promoted_impressions(test_db_session, [uuid.uuid4()])
        track_promoted_click(test_db_session, uuid.uuid4(), blue_co.id, uuid.uuid4())

        assert [str(e) for e in captured] == ["connection reset", "connection reset"]
        assert "[TRACKING] track_promoted_impressions failed" in caplog.text

    def test_invalid_event_type_is_dropped(self, test_db_session, blue_co, monkeypatch):
        captured = []
        monkeypatch.setattr(
            engagement_tracker, "capture_exception", lambda error, **kwargs: captured.append(error)
        )

        record_engagement_event(test_db_session, "NOT_AN_EVENT", blue_co.id)

        assert len(captured) == 1
        assert test_db_session.query(EngagementEvent).count() == 0
