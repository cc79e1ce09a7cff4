"""Prometheus metrics instrumentation for the inboxflow core.

Provides:
- ``setup_metrics(app)``: Attach prometheus-fastapi-instrumentator to a FastAPI app,
  exposing ``/metrics`` with HTTP request duration/count plus the core metrics.
- ``CACHED_THREADS``: Gauge tracking the size of the active view's thread cache.
- ``REMOTE_FAILURES``: Counter of failed remote calls, labelled by operation.
- ``RECONCILIATIONS``: Counter of delayed reconciliation fetches, labelled by outcome.
- ``FOCUS_CORRECTIONS``: Counter of focus reclamations from the embedded surface.

Metrics are updated where the events happen (not by polling).
"""

from __future__ import annotations

from fastapi import FastAPI
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator

CACHED_THREADS: Gauge = Gauge(
    "inboxflow_cached_threads",
    "Number of threads held in the active view's cache",
)

REMOTE_FAILURES: Counter = Counter(
    "inboxflow_remote_failures_total",
    "Total number of failed remote mail-store operations",
    ["operation"],
)

RECONCILIATIONS: Counter = Counter(
    "inboxflow_reconciliations_total",
    "Total number of delayed reconciliation fetches by outcome",
    ["outcome"],
)

FOCUS_CORRECTIONS: Counter = Counter(
    "inboxflow_focus_corrections_total",
    "Total number of times focus was reclaimed from the embedded surface",
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
