"""Sentry SDK initialization with the structlog-sentry bridge."""

from __future__ import annotations

import logging

import sentry_sdk
import structlog
from sentry_sdk.integrations.logging import LoggingIntegration
from structlog_sentry import SentryProcessor


def init_sentry(dsn: str, *, production: bool = False) -> bool:
    """Initialize Sentry when *dsn* is set.

    Args:
        dsn: Sentry DSN string.  Empty string disables Sentry.
        production: Tags events with the ``production`` environment when True.

    Returns:
        True if the SDK was initialized.
    """
    if not dsn:
        return False

    sentry_sdk.init(
        dsn=dsn,
        environment="production" if production else "development",
        traces_sample_rate=0.1,
        send_default_pii=False,
        # structlog-sentry reports errors; Sentry's own logging capture would duplicate them
        integrations=[LoggingIntegration(event_level=None, level=None)],
    )
    return True


def get_sentry_processor() -> structlog.types.Processor:
    """Return a structlog processor that forwards ERROR events to Sentry.

    Goes after ``add_log_level`` and before the renderer.
    """
    return SentryProcessor(event_level=logging.ERROR)
