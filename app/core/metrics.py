"""Application metrics using the Prometheus client library.

Every metric the tracker exposes is declared here, so this file is the
inventory of what the service measures.  Other modules import a metric
and increment it at the point of action.

HTTP metrics (counter + histogram + gauge) are filled in by
MetricsMiddleware for every request.  The tracker-specific counters
answer questions the HTTP metrics cannot:

  - "Are learners actually opening lessons today?"
      rate(tracker_events_recorded_total{event_type="clicked"}[1h])

  - "Is somebody hammering the executive export?"
      tracker_reports_generated_total{report="executive_csv"}

  - "Did someone paste garbage into the Lessons sheet?"
      increase(tracker_ingest_fallbacks_total[1d]) > 0
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

# ---------------------------------------------------------------------------
# HTTP metrics (populated by the MetricsMiddleware)
# ---------------------------------------------------------------------------

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total HTTP requests by method, endpoint, and status code",
    ["method", "endpoint", "status_code"],
)

REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
    # Report endpoints scan every (user, lesson) pair, so the upper
    # buckets matter more here than for plain CRUD reads.
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

ACTIVE_REQUESTS = Gauge(
    "http_active_requests",
    "Number of HTTP requests currently being processed",
)

# ---------------------------------------------------------------------------
# Tracker metrics
# ---------------------------------------------------------------------------

EVENTS_RECORDED = Counter(
    "tracker_events_recorded_total",
    "Progress events appended to the Events sheet",
    ["event_type", "source"],  # source: "api" (raw append) or "learner" (guarded)
)

REPORTS_GENERATED = Counter(
    "tracker_reports_generated_total",
    "Aggregated reports computed",
    ["report"],  # user_summaries|detail_rows|detail_csv|executive|executive_csv|learner
)

INGEST_FALLBACKS = Counter(
    "tracker_ingest_fallbacks_total",
    "Malformed sheet cells replaced by a default during ingestion",
    ["field"],  # "order" or "links"
)
