"""Prometheus scrape endpoint.

Returns every metric declared in app/core/metrics.py in the Prometheus
text exposition format (not JSON), e.g.:

  # TYPE tracker_events_recorded_total counter
  tracker_events_recorded_total{event_type="completed",source="learner"} 42.0

Excluded from the OpenAPI schema; MetricsMiddleware also skips it so
scrapes don't inflate the request counters.
"""

from __future__ import annotations

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter(tags=["observability"])


@router.get("/metrics", include_in_schema=False)
async def metrics() -> Response:
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
