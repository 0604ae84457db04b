"""Request context middleware: one id per request, attached to every log line.

A single dashboard refresh fans out into several requests (user cards,
detail rows, executive report), all served concurrently on one event
loop.  Their log lines interleave; the request id ties them back
together:

  INFO  [req-abc] GET /v1/admin/executive → 200 (41.2ms)
  WARN  [req-xyz] Non-numeric order 'first' in Lessons row lesson-9

The id lives in a ContextVar, not a thread-local, because async
requests share a thread but each task gets its own context copy.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")


class _RequestContextFilter(logging.Filter):
    """Copy the current request id onto every LogRecord."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get("-")  # type: ignore[attr-defined]
        return True


# Handlers, not loggers, see records from child loggers, so the filter
# goes on every root handler that setup_logging installs.  Installing on
# the root logger too covers records logged directly on root.
def install_request_context_filter() -> None:
    root = logging.getLogger()
    targets: list[logging.Filterer] = [root, *root.handlers]
    for target in targets:
        if not any(isinstance(f, _RequestContextFilter) for f in target.filters):
            target.addFilter(_RequestContextFilter())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Assign a request ID, time the request, log one summary line.

    The ID comes from the X-Request-ID header when the client sends one,
    otherwise a fresh UUID.  It is echoed back on the response.
    """

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        req_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request_id_var.set(req_id)

        start = time.monotonic()
        response = await call_next(request)
        duration_ms = round((time.monotonic() - start) * 1000, 1)

        logger.info(
            "%s %s → %d (%.1fms)",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
            extra={
                "request_id": req_id,
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        response.headers["X-Request-ID"] = req_id
        return response
