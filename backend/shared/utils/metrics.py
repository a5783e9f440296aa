"""
Lightweight metrics collection for Matchday.
Wraps prometheus_client with async-safe patterns.
"""
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

from prometheus_client import Counter, Gauge, Histogram, Info, start_http_server

from shared.config import get_settings
from shared.utils.logging import get_logger

logger = get_logger(__name__)

# ── Counters ────────────────────────────────────────────────────────────
FIXTURE_TRANSITIONS = Counter(
    "md_fixture_transitions_total",
    "Fixtures moved between lifecycle states by the scheduler",
    ["transition"],
)
COMPETITIONS_ACTIVATED = Counter(
    "md_competitions_activated_total",
    "Competitions moved from UPCOMING to ACTIVE",
)
SCHEDULER_STORE_ERRORS = Counter(
    "md_scheduler_store_errors_total",
    "Store calls that failed inside the scheduler loop",
    ["operation"],
)
FIXTURE_MATCH_RESULTS = Counter(
    "md_fixture_match_results_total",
    "Outcomes of matching a stored fixture against provider fixtures",
    ["result"],
)
SYNC_SNAPSHOTS_APPLIED = Counter(
    "md_sync_snapshots_applied_total",
    "Provider snapshots written to fixtures",
    ["outcome"],
)

# ── Histograms ──────────────────────────────────────────────────────────
SCHEDULER_NAP = Histogram(
    "md_scheduler_nap_seconds",
    "Planned sleep between two transition passes",
    ["reason"],
    buckets=(0.5, 1, 5, 10, 30, 60),
)
TRANSITION_LATENCY = Histogram(
    "md_transition_latency_seconds",
    "Time spent in one transition statement",
    ["operation"],
    buckets=(0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5),
)

# ── Gauges ──────────────────────────────────────────────────────────────
SCHEDULER_IS_LEADER = Gauge(
    "md_scheduler_is_leader",
    "1 while this instance holds the scheduler advisory lock",
)
SCHEDULER_NEXT_KICKOFF = Gauge(
    "md_scheduler_next_kickoff_timestamp",
    "Unix time of the next UPCOMING kickoff, 0 when none is scheduled",
)

# ── Info ────────────────────────────────────────────────────────────────
SERVICE_INFO = Info("md_service", "Service build information")


@asynccontextmanager
async def atrack_latency(histogram: Histogram, **labels: str) -> AsyncIterator[None]:
    """Async context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        histogram.labels(**labels).observe(elapsed)


def start_metrics_server(port: int | None = None) -> None:
    """Start the Prometheus metrics HTTP server."""
    settings = get_settings()
    if not settings.metrics_enabled:
        return
    metrics_port = port or settings.metrics_port
    try:
        start_http_server(metrics_port)
        logger.info("metrics_server_started", port=metrics_port)
    except OSError as exc:
        logger.warning("metrics_server_failed", error=str(exc), port=metrics_port)
