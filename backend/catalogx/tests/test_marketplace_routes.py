"""HTTP tests for the public marketplace endpoints.

Endpoints run on the real clock, so promotions here are positioned relative
to utc_now() rather than the fixed `now` fixture.
"""

import uuid
from datetime import timedelta

from catalogx.deps import get_session_factory
from catalogx.models import EngagementEvent, EngagementEventTypeEnum, PromotedListing, PromotionTierEnum
from catalogx.services import engagement_tracker
from catalogx.utils.time import utc_now


def _live(make_promotion, product, **kwargs):
    return make_promotion(product, starts_at=utc_now() - timedelta(hours=1), **kwargs)


def _counters(db, listing_id):
    db.expire_all()
    listing = db.get(PromotedListing, listing_id)
    return listing.impressions, listing.clicks


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok"}


class TestProducts:

    def test_filtered_sorted_page(self, client, blue_co, other_shop, make_product):
        make_product(blue_co, name="cheap", prices=(500,))
        make_product(blue_co, name="dear", prices=(5000,))
        make_product(other_shop, name="elsewhere", prices=(100,))

        response = client.get(
            "/marketplace/products",
            params={"province": "Western Cape", "sort_by": "price_desc", "page_size": 1},
        )

        assert response.status_code == 200
        body = response.json()
        assert [p["name"] for p in body["products"]] == ["dear"]
        assert (body["total"], body["total_pages"]) == (2, 2)
        assert body["products"][0]["shop"]["slug"] == "blue-co"

    def test_invalid_paging_is_rejected(self, client):
        assert client.get("/marketplace/products", params={"page": 0}).status_code == 422
        assert client.get("/marketplace/products", params={"page_size": 101}).status_code == 422
        assert client.get("/marketplace/products", params={"sort_by": "random"}).status_code == 422

    def test_search(self, client, blue_co, make_product):
        make_product(blue_co, name="Linen shirt")
        make_product(blue_co, name="Wool hat")

        body = client.get("/marketplace/search", params={"q": "LINEN"}).json()

        assert [p["name"] for p in body["products"]] == ["Linen shirt"]
        assert client.get("/marketplace/search").json()["total"] == 0


class TestFeed:

    def test_feed_interleaves_and_counts_impressions(self, client, test_db_session, blue_co, make_product, make_promotion):
        for i in range(6):
            make_product(blue_co, name=f"organic-{i}", prices=(1000 + i,))
        listing = _live(make_promotion, make_product(blue_co, name="sponsored", prices=(9000,)))

        response = client.get("/marketplace/feed", params={"sort_by": "price_asc"})

        assert response.status_code == 200
        body = response.json()
        names = [p["name"] for p in body["products"]]
        assert names[4] == "sponsored"
        assert body["products"][4]["promotion"]["tier"] == "BOOST"
        assert body["promoted_listing_ids"] == [str(listing.id)]
        assert body["total"] == 7
        # Background impression task has run by the time TestClient returns
        assert _counters(test_db_session, listing.id) == (1, 0)

    def test_promoted_carousel(self, client, blue_co, make_product, make_promotion):
        _live(make_promotion, make_product(blue_co, name="boosted"), tier=PromotionTierEnum.boost)
        _live(make_promotion, make_product(blue_co, name="spotlit"), tier=PromotionTierEnum.spotlight)

        body = client.get("/marketplace/promoted").json()

        assert [p["name"] for p in body] == ["spotlit", "boosted"]


class TestDiscovery:

    def test_trending(self, client, blue_co, make_product, make_event):
        product = make_product(blue_co, name="popular")
        make_event(EngagementEventTypeEnum.product_view, product, created_at=utc_now() - timedelta(hours=1), count=2)

        body = client.get("/marketplace/trending").json()

        assert [p["name"] for p in body] == ["popular"]

    def test_categories(self, client, blue_co, make_category, make_product):
        parent = make_category("home")
        child = make_category("kitchen", parent=parent)
        make_product(blue_co, category=child)

        body = client.get("/marketplace/categories").json()

        assert body[0]["slug"] == "home"
        assert body[0]["product_count"] == 1
        assert body[0]["children"][0]["slug"] == "kitchen"

    def test_featured_shops(self, client, make_shop):
        make_shop("curated", is_featured_shop=True)
        make_shop("plain")

        body = client.get("/marketplace/featured-shops").json()

        assert [shop["slug"] for shop in body] == ["curated"]


class TestTracking:

    def test_impressions(self, client, test_db_session, blue_co, make_product, make_promotion):
        listing = _live(make_promotion, make_product(blue_co))

        response = client.post(
            "/marketplace/track/impressions",
            json={"promoted_listing_ids": [str(listing.id), str(listing.id)]},
        )

        assert response.status_code == 202
        assert response.json() == {"accepted": 2}
        # One UPDATE ... WHERE id IN (...): a repeated id still counts once
        assert _counters(test_db_session, listing.id) == (1, 0)

    def test_empty_impressions_batch(self, client):
        response = client.post("/marketplace/track/impressions", json={"promoted_listing_ids": []})

        assert response.status_code == 202
        assert response.json() == {"accepted": 0}

    def test_click(self, client, test_db_session, blue_co, make_product, make_promotion):
        product = make_product(blue_co)
        listing = _live(make_promotion, product)

        response = client.post(
            "/marketplace/track/click",
            json={
                "promoted_listing_id": str(listing.id),
                "shop_id": str(blue_co.id),
                "product_id": str(product.id),
            },
        )

        assert response.status_code == 202
        assert _counters(test_db_session, listing.id) == (0, 1)
        assert test_db_session.query(EngagementEvent).count() == 1

    def test_event(self, client, test_db_session, blue_co, make_product):
        product = make_product(blue_co)

        response = client.post(
            "/marketplace/track/event",
            json={"type": "WHATSAPP_CLICK", "shop_id": str(blue_co.id), "product_id": str(product.id)},
        )

        assert response.status_code == 202
        event = test_db_session.query(EngagementEvent).one()
        assert event.type.value == "WHATSAPP_CLICK"

    def test_unknown_event_type_is_rejected(self, client, test_db_session):
        response = client.post(
            "/marketplace/track/event",
            json={"type": "NOT_A_TYPE", "shop_id": str(uuid.uuid4())},
        )

        assert response.status_code == 422
        assert test_db_session.query(EngagementEvent).count() == 0

    def test_tracking_failure_never_fails_the_request(self, app, client, session_factory, monkeypatch):
        captured = []
        monkeypatch.setattr(
            engagement_tracker, "capture_exception", lambda error, **kwargs: captured.append(error)
        )

        def broken_session_factory():
            session = session_factory()

            def _fail(*args, **kwargs):
                raise RuntimeError("database unavailable")

            session.execute = _fail
            return session

        app.dependency_overrides[get_session_factory] = lambda: broken_session_factory

        response = client.post(
            "/marketplace/track/impressions",
            json={"promoted_listing_ids": [str(uuid.uuid4())]},
        )

        assert response.status_code == 202
        assert [str(e) for e in captured] == ["database unavailable"]
