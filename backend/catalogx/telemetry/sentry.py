"""
Sentry Error Tracking
=====================

Centralized error tracking for the catalog service.

Related files:
- catalogx/main.py: Initializes Sentry on app startup
- catalogx/services/engagement_tracker.py: reports swallowed tracking failures
- catalogx/services/payment_events.py: reports rejected promotion payments

Environment Variables:
- SENTRY_DSN: Sentry project DSN (Sentry stays disabled without it)
- ENVIRONMENT: Environment name (production, staging, development)
- RELEASE_VERSION: Release identifier set by CI/CD (optional)
"""

from __future__ import annotations

import logging
import os
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

logger = logging.getLogger(__name__)


def get_sentry_dsn() -> Optional[str]:
    """Sentry DSN from the environment, None when not configured."""
    return os.environ.get("SENTRY_DSN") or None


def init_sentry(dsn: Optional[str] = None, environment: Optional[str] = None) -> bool:
    """
    Initialize the Sentry SDK.

    Call once during application startup (catalogx.main.create_app).

    Returns:
        True if Sentry was initialized, False when no DSN is configured or
        initialization failed.
    """
    dsn = dsn or get_sentry_dsn()
    if not dsn:
        return False

    environment = environment or os.environ.get("ENVIRONMENT", "development")

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=[
                FastApiIntegration(transaction_style="endpoint"),
                SqlalchemyIntegration(),
                LoggingIntegration(
                    level=logging.INFO,         # INFO+ as breadcrumbs
                    event_level=logging.ERROR,  # ERROR+ as events
                ),
            ],
            traces_sample_rate=0.1,
            send_default_pii=False,
            release=os.environ.get("RELEASE_VERSION"),
        )
        logger.debug(f"[SENTRY] Initialized for {environment} environment")
        return True
    except Exception as e:
        logger.error(f"[SENTRY] Failed to initialize: {e}")
        return False


def set_shop_context(shop_id: str) -> None:
    """Tag subsequent events in this request with the calling shop."""
    sentry_sdk.set_tag("shop_id", shop_id)


def capture_exception(exception: Exception, extra: Optional[dict] = None) -> None:
    """
    Report a caught exception to Sentry.

    For failures that are handled (never re-raised) but must stay visible,
    e.g. engagement tracking. A no-op when Sentry is not initialized.

    Example:
        try:
            record()
        except SQLAlchemyError as e:
            capture_exception(e, extra={"operation": "track_click"})
    """
    try:
        with sentry_sdk.new_scope() as scope:
            for key, value in (extra or {}).items():
                scope.set_extra(key, value)
            sentry_sdk.capture_exception(exception)
    except Exception as e:
        logger.error(f"[SENTRY] Failed to capture exception: {e}")


def capture_message(message: str, level: str = "info", extra: Optional[dict] = None) -> None:
    """Report a notable non-exception event to Sentry."""
    try:
        with sentry_sdk.new_scope() as scope:
            for key, value in (extra or {}).items():
                scope.set_extra(key, value)
            sentry_sdk.capture_message(message, level=level)
    except Exception as e:
        logger.error(f"[SENTRY] Failed to capture message: {e}")
