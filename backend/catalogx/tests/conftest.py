"""Pytest configuration for catalogx integration tests

WHAT: Provides a file-backed SQLite database, sessions, seeded catalog
      fixtures and a TestClient wired to the same database
WHY: Every service is a thin layer over store transactions; tests run them
     against a real (if small) database instead of mocks
REFERENCES:
    - catalogx/main.py: FastAPI application
    - catalogx/database.py: Database configuration
    - catalogx/deps.py: Dependency injection
"""

import os
from datetime import datetime, timedelta
from typing import Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

# Must be set before catalogx.database is imported (read at import time)
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.pop("SENTRY_DSN", None)

from catalogx.models import (  # noqa: E402
    Base,
    Category,
    EngagementEvent,
    Product,
    ProductImage,
    ProductVariant,
    PromotedListing,
    PromotionStatusEnum,
    PromotionTierEnum,
    Shop,
)


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest.fixture
def test_db_engine(tmp_path):
    """File-backed SQLite engine: each session gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'catalogx_test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(test_db_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_db_engine)


@pytest.fixture
def test_db_session(session_factory) -> Generator[Session, None, None]:
    """Create test database session with rollback."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


# ============================================================================
# Application & Client Fixtures
# ============================================================================

@pytest.fixture
def app(session_factory):
    """Create FastAPI test application bound to the test database."""
    from catalogx.deps import get_db, get_session_factory
    from catalogx.main import create_app

    test_app = create_app()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    test_app.dependency_overrides[get_db] = override_get_db
    test_app.dependency_overrides[get_session_factory] = lambda: session_factory

    return test_app


@pytest.fixture
def client(app) -> TestClient:
    """Create TestClient for HTTP testing."""
    return TestClient(app)


# ============================================================================
# Clock
# ============================================================================

@pytest.fixture
def now() -> datetime:
    """Fixed naive-UTC "now" for deterministic time-based assertions."""
    return datetime(2026, 3, 10, 12, 0, 0)


# ============================================================================
# Model Factories
# ============================================================================

@pytest.fixture
def make_shop(test_db_session):
    counter = {"n": 0}

    def _make(slug=None, **kwargs) -> Shop:
        counter["n"] += 1
        slug = slug or f"shop-{counter['n']}"
        shop = Shop(slug=slug, name=kwargs.pop("name", slug.replace("-", " ").title()), **kwargs)
        test_db_session.add(shop)
        test_db_session.commit()
        test_db_session.refresh(shop)
        return shop

    return _make


@pytest.fixture
def make_category(test_db_session):
    def _make(slug, parent=None, **kwargs) -> Category:
        category = Category(
            slug=slug,
            name=kwargs.pop("name", slug.replace("-", " ").title()),
            parent_id=parent.id if parent else None,
            **kwargs,
        )
        test_db_session.add(category)
        test_db_session.commit()
        test_db_session.refresh(category)
        return category

    return _make


@pytest.fixture
def make_product(test_db_session, now):
    """Create a product with variants given as prices (or dicts) and images.

    min/max price are written the way the sync would: over active variants.
    """

    def _make(
        shop,
        name="Product",
        prices=(1000,),
        inactive_prices=(),
        images=1,
        category=None,
        created_at=None,
        description="A good product description",
        is_active=True,
        stock=5,
    ) -> Product:
        product = Product(
            shop_id=shop.id,
            category_id=category.id if category else None,
            name=name,
            description=description,
            is_active=is_active,
            created_at=created_at or now,
        )
        test_db_session.add(product)
        test_db_session.flush()

        for i, price in enumerate(prices):
            test_db_session.add(
                ProductVariant(product_id=product.id, size=f"S{i}", price_in_cents=price, stock=stock)
            )
        for i, price in enumerate(inactive_prices):
            test_db_session.add(
                ProductVariant(
                    product_id=product.id, size=f"X{i}", price_in_cents=price, stock=stock, is_active=False
                )
            )
        for position in range(images):
            test_db_session.add(
                ProductImage(product_id=product.id, url=f"https://img.test/{name}/{position}.jpg", position=position)
            )

        product.min_price_cents = min(prices) if prices else 0
        product.max_price_cents = max(prices) if prices else 0
        test_db_session.commit()
        test_db_session.refresh(product)
        return product

    return _make


@pytest.fixture
def make_promotion(test_db_session, now):
    def _make(
        product,
        tier=PromotionTierEnum.boost,
        status=PromotionStatusEnum.active,
        starts_at=None,
        expires_at=None,
        created_at=None,
        **kwargs,
    ) -> PromotedListing:
        starts_at = starts_at or now - timedelta(days=1)
        listing = PromotedListing(
            shop_id=product.shop_id,
            product_id=product.id,
            tier=tier,
            status=status,
            starts_at=starts_at,
            expires_at=expires_at or starts_at + timedelta(days=7),
            created_at=created_at or starts_at,
            **kwargs,
        )
        test_db_session.add(listing)
        test_db_session.commit()
        test_db_session.refresh(listing)
        return listing

    return _make


@pytest.fixture
def make_event(test_db_session, now):
    def _make(event_type, product=None, shop=None, created_at=None, count=1):
        shop_id = shop.id if shop is not None else product.shop_id
        for _ in range(count):
            test_db_session.add(
                EngagementEvent(
                    type=event_type,
                    shop_id=shop_id,
                    product_id=product.id if product is not None else None,
                    created_at=created_at or now - timedelta(hours=1),
                )
            )
        test_db_session.commit()

    return _make


# ============================================================================
# Seeded Scenario
# ============================================================================

@pytest.fixture
def blue_co(make_shop):
    return make_shop("blue-co", name="Blue Co", city="Cape Town", province="Western Cape", is_verified=True)


@pytest.fixture
def other_shop(make_shop):
    return make_shop("red-co", name="Red Co", city="Johannesburg", province="Gauteng")
