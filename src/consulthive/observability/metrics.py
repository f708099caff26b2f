"""Prometheus metrics instrumentation for the marketplace engine.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus the business counters.
- ``OFFERS_ACCEPTED``, ``ENGAGEMENTS_COMPLETED``, ``TRANSFER_PACKS_FINALIZED``:
  lifecycle milestones, incremented after the transaction commits.
- ``DRAFTING_FAILURES``: text-generation calls that ended in a failure result.
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator

OFFERS_ACCEPTED: Counter = Counter(
    "consulthive_offers_accepted_total",
    "Total number of offers accepted into a booking",
)

ENGAGEMENTS_COMPLETED: Counter = Counter(
    "consulthive_engagements_completed_total",
    "Total number of engagements marked COMPLETED",
)

TRANSFER_PACKS_FINALIZED: Counter = Counter(
    "consulthive_transfer_packs_finalized_total",
    "Total number of transfer packs finalized",
)

DRAFTING_FAILURES: Counter = Counter(
    "consulthive_drafting_failures_total",
    "Text-generation calls that returned a failure",
    ["kind"],
)


def setup_metrics(app: FastAPI) -> None:
    """Instrument *app* with Prometheus HTTP metrics and expose ``/metrics``.

    Excludes health/ready/metrics endpoints from instrumentation to avoid
    noise in dashboards.

    Args:
        app: The FastAPI application to instrument.
    """
    Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        excluded_handlers=["/health", "/ready", "/metrics"],
    ).instrument(app).expose(app, include_in_schema=False, should_gzip=True)
