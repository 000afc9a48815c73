"""
Telemetry Module
================

Observability for the catalog service.

Components:
- sentry.py: Error tracking and performance monitoring

Usage:
    from catalogx.telemetry import init_sentry, capture_exception

Related modules:
- catalogx/main.py: Initializes Sentry on startup
- catalogx/services/engagement_tracker.py: reports swallowed failures
- catalogx/services/payment_events.py: reports rejected payments
"""

from catalogx.telemetry.sentry import (
    init_sentry,
    set_shop_context,
    capture_exception,
    capture_message,
)


__all__ = [
    "init_sentry",
    "set_shop_context",
    "capture_exception",
    "capture_message",
]
