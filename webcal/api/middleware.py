"""
Request tracking middleware for the feed service.

Each request gets an id (the caller's X-Request-ID when it is usable) and a
single access log line naming the feed it touched. Calendar clients poll
feeds continuously, so 304 revalidations are logged at DEBUG to keep INFO
readable while staying countable.
"""

import logging
import re
import time
import uuid
from contextvars import ContextVar
from typing import Optional

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

# Context variable for request ID (available across async calls)
request_id_ctx: ContextVar[str] = ContextVar("request_id", default="")

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"

# Incoming ids are echoed into headers and logs, so only short tokens are kept
_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,64}$")

# /api/feeds/{id}[/...] and /calendars/feeds/{id}.ics
_FEED_PATH_PATTERN = re.compile(r"^/(?:api|calendars)/feeds/([^/]+?)(?:\.ics)?(?:/|$)")


def get_request_id() -> str:
    """Get current request ID from context."""
    return request_id_ctx.get()


def resolve_request_id(incoming: Optional[str]) -> str:
    """Reuse a well-formed caller request id, otherwise generate one."""
    if incoming and _REQUEST_ID_PATTERN.match(incoming):
        return incoming
    return uuid.uuid4().hex[:8]


def feed_id_from_path(path: str) -> Optional[str]:
    """Extract the feed id addressed by a request path, if any."""
    match = _FEED_PATH_PATTERN.match(path)
    return match.group(1) if match else None


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for logging feed requests.

    Features:
    - Propagates or generates a request ID (X-Request-ID)
    - Tags log records with the addressed feed id
    - Logs revalidations (304) separately from full responses
    - Adds an X-Response-Time header
    """

    async def dispatch(self, request: Request, call_next) -> Response:
        req_id = resolve_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_id_ctx.set(req_id)

        path = request.url.path
        feed_id = feed_id_from_path(path)
        extra = {"request_id": req_id, "method": request.method, "feed_id": feed_id}
        start_time = time.perf_counter()

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed = time.perf_counter() - start_time
            logger.error(
                f"[{req_id}] {request.method} {path} failed after {elapsed:.3f}s: {e}",
                extra={**extra, "elapsed_ms": elapsed * 1000},
                exc_info=True,
            )
            raise

        elapsed = time.perf_counter() - start_time
        extra.update(status_code=response.status_code, elapsed_ms=elapsed * 1000)

        if response.status_code == 304:
            logger.debug(f"[{req_id}] feed {feed_id} not modified", extra=extra)
        else:
            target = f" (feed {feed_id})" if feed_id else ""
            logger.info(
                f"[{req_id}] {request.method} {path}{target} -> "
                f"{response.status_code} in {elapsed:.3f}s",
                extra=extra,
            )

        response.headers[REQUEST_ID_HEADER] = req_id
        response.headers["X-Response-Time"] = f"{elapsed:.3f}s"

        return response
