"""
FastAPI application for the Webcal feed service.

This is the main entry point for the HTTP API, providing:
- Feed management endpoints (create, inspect, list, delete)
- Event mutation endpoints (bulk replace, add, delete)
- The ICS feed consumed by calendar clients
- Health endpoint
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, Header, HTTPException, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from webcal import __version__
from webcal.api.dependencies import (
    ensure_feed_store,
    get_app_settings,
    get_feed_store,
)
from webcal.api.middleware import RequestLoggingMiddleware, get_request_id
from webcal.api.models import (
    AddEventResponse,
    CreateFeedRequest,
    CreateFeedResponse,
    ErrorResponse,
    FeedDetailResponse,
    FeedSummaryResponse,
    HealthResponse,
    ReplaceEventsRequest,
)
from webcal.api.response_builder import (
    build_create_response,
    build_error_response,
    build_feed_detail,
    build_feed_summary,
    error_response_for,
)
from webcal.config import Settings, get_settings
from webcal.exceptions import EventValidationError, FeedServiceError, NotFoundError
from webcal.services import FeedStore, etag_matches, render_feed

logger = logging.getLogger(__name__)


# =============================================================================
# Application Lifecycle
# =============================================================================


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info("Starting Webcal feed service")
    settings.validate_production_config()
    ensure_feed_store()
    logger.info(
        f"Serving feeds at {settings.public_protocol}://{settings.public_domain}"
    )

    yield

    logger.info("Shutting down Webcal feed service")


# =============================================================================
# FastAPI Application
# =============================================================================


app = FastAPI(
    title="Webcal Feed API",
    description="""
# Webcal Feed API

Publish a set of calendar events as a subscribable iCalendar feed.

## Workflow
1. **POST /api/feeds** - Create a feed and receive its public URLs
2. **POST /api/feeds/{feedId}/events** - Replace all events, or
   **POST /api/feeds/{feedId}/event** - Add a single event
3. Calendar clients subscribe to the `webcalUrl` (or fetch the `httpsUrl`)

## Caching
The ICS feed carries a weak `ETag` and a `Last-Modified` date. Clients that
send the ETag back in `If-None-Match` receive **304 Not Modified** until the
feed changes.

## Error Handling
- **400** - Event missing start, end or summary
- **404** - Feed not found / event not found (see `error_type`)
- **422** - Malformed request body
- **500** - Server error
    """,
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_allow_origins,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["ETag", "Last-Modified", "X-Request-ID"],
)


# =============================================================================
# Exception Handlers
# =============================================================================


def _status_for(exc: FeedServiceError) -> int:
    """Map a feed service exception to an HTTP status code."""
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, EventValidationError):
        return 400
    return 500


@app.exception_handler(FeedServiceError)
async def feed_service_exception_handler(request, exc: FeedServiceError):
    """Handle feed store errors with consistent format."""
    status_code = _status_for(exc)
    logger.info(
        f"[{get_request_id()}] {request.method} {request.url.path} -> "
        f"{status_code}: {exc.message}"
    )
    return JSONResponse(status_code=status_code, content=error_response_for(exc))


@app.exception_handler(HTTPException)
async def http_exception_handler(request, exc: HTTPException):
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content=build_error_response(
            error_type="http_error",
            message=exc.detail,
            retryable=exc.status_code >= 500,
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content=build_error_response(
            error_type="internal_error",
            message="An unexpected error occurred",
            retryable=True,
        ),
    )


# =============================================================================
# Health Endpoint
# =============================================================================


@app.get(
    "/health",
    response_model=HealthResponse,
    summary="Health check",
    tags=["System"],
)
async def health_check() -> HealthResponse:
    """
    Check API health status.

    Returns:
        Health status including the number of registered feeds
    """
    try:
        store = get_feed_store()
        feed_count = store.count()
        status = "healthy"
    except HTTPException:
        feed_count = 0
        status = "unhealthy"

    return HealthResponse(
        status=status,
        version=__version__,
        timestamp=datetime.now(timezone.utc),
        feed_count=feed_count,
    )


# =============================================================================
# Feed Endpoints
# =============================================================================


@app.post(
    "/api/feeds",
    response_model=CreateFeedResponse,
    status_code=201,
    summary="Create feed",
    description="Create an empty calendar feed and return its public URLs.",
    tags=["Feeds"],
)
async def create_feed(
    request: Optional[CreateFeedRequest] = Body(None),
    store: FeedStore = Depends(get_feed_store),
    settings: Settings = Depends(get_app_settings),
) -> CreateFeedResponse:
    """Create a new feed."""
    owner = request.owner if request else None
    feed = store.create(owner)
    return build_create_response(feed, settings)


@app.get(
    "/api/feeds",
    response_model=list[FeedSummaryResponse],
    summary="List feeds",
    tags=["Feeds"],
)
async def list_feeds(
    store: FeedStore = Depends(get_feed_store),
) -> list[FeedSummaryResponse]:
    """List all registered feeds."""
    return [build_feed_summary(summary) for summary in store.list()]


@app.get(
    "/api/feeds/{feed_id}",
    response_model=FeedDetailResponse,
    summary="Get feed details",
    responses={404: {"model": ErrorResponse, "description": "Feed not found"}},
    tags=["Feeds"],
)
async def get_feed(
    feed_id: str,
    store: FeedStore = Depends(get_feed_store),
    settings: Settings = Depends(get_app_settings),
) -> FeedDetailResponse:
    """Get feed metadata and event count."""
    return build_feed_detail(store.get(feed_id), settings)


@app.delete(
    "/api/feeds/{feed_id}",
    status_code=204,
    summary="Delete feed",
    responses={404: {"model": ErrorResponse, "description": "Feed not found"}},
    tags=["Feeds"],
)
async def delete_feed(
    feed_id: str,
    store: FeedStore = Depends(get_feed_store),
) -> Response:
    """Delete a feed and all of its events."""
    store.delete(feed_id)
    return Response(status_code=204)


# =============================================================================
# Event Endpoints
# =============================================================================


@app.post(
    "/api/feeds/{feed_id}/events",
    status_code=204,
    summary="Replace all events",
    description="""
Replace the whole event collection of a feed.

Each event needs `start`, `end` and `summary`; `uid` is assigned when
omitted. One invalid event rejects the entire batch and leaves the feed
unchanged.
    """,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid event"},
        404: {"model": ErrorResponse, "description": "Feed not found"},
    },
    tags=["Events"],
)
async def replace_events(
    feed_id: str,
    request: Optional[ReplaceEventsRequest] = Body(None),
    store: FeedStore = Depends(get_feed_store),
) -> Response:
    """Replace all events of a feed."""
    events = (request.events if request else None) or []
    store.replace_events(feed_id, events)
    return Response(status_code=204)


@app.post(
    "/api/feeds/{feed_id}/event",
    response_model=AddEventResponse,
    status_code=201,
    summary="Add event",
    responses={
        400: {"model": ErrorResponse, "description": "Invalid event"},
        404: {"model": ErrorResponse, "description": "Feed not found"},
    },
    tags=["Events"],
)
async def add_event(
    feed_id: str,
    event: dict[str, Any] = Body(
        ...,
        examples=[{
            "start": "2024-01-01T10:00Z",
            "end": "2024-01-01T11:00Z",
            "summary": "Standup",
        }],
    ),
    store: FeedStore = Depends(get_feed_store),
) -> AddEventResponse:
    """Append a single event to a feed."""
    uid = store.add_event(feed_id, event)
    return AddEventResponse(uid=uid, message="Event added successfully")


@app.delete(
    "/api/feeds/{feed_id}/events/{uid}",
    status_code=204,
    summary="Delete event",
    responses={
        404: {
            "model": ErrorResponse,
            "description": "Feed not found (feed_not_found) or event not found (event_not_found)",
        },
    },
    tags=["Events"],
)
async def delete_event(
    feed_id: str,
    uid: str,
    store: FeedStore = Depends(get_feed_store),
) -> Response:
    """Delete an event from a feed."""
    store.delete_event(feed_id, uid)
    return Response(status_code=204)


# =============================================================================
# Calendar Feed
# =============================================================================


@app.get(
    "/calendars/feeds/{feed_id}.ics",
    summary="ICS calendar feed",
    response_class=Response,
    responses={
        200: {"content": {"text/calendar": {}}, "description": "Calendar document"},
        304: {"description": "Feed unchanged since the supplied ETag"},
        404: {"model": ErrorResponse, "description": "Feed not found"},
    },
    tags=["Calendar"],
)
async def get_calendar_feed(
    feed_id: str,
    if_none_match: Optional[str] = Header(None),
    store: FeedStore = Depends(get_feed_store),
    settings: Settings = Depends(get_app_settings),
) -> Response:
    """
    Serve a feed as an iCalendar document.

    Returns 304 without a body when If-None-Match carries the current ETag.
    """
    feed = store.get(feed_id)
    rendered = render_feed(
        feed,
        feed_id,
        ttl_seconds=settings.feed_ttl_seconds,
        product_id=settings.product_id,
    )

    if etag_matches(if_none_match, rendered.etag):
        return Response(status_code=304, headers=rendered.validator_headers())

    return Response(
        content=rendered.document,
        media_type=rendered.content_type,
        headers=rendered.headers(),
    )


# =============================================================================
# Run with Uvicorn
# =============================================================================


def run_server(
    host: Optional[str] = None,
    port: Optional[int] = None,
    reload: Optional[bool] = None,
):
    """Run the API server with Uvicorn, defaulting to configured values."""
    import uvicorn

    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    uvicorn.run(
        "webcal.api.main:app",
        host=host or settings.api_host,
        port=port or settings.api_port,
        reload=settings.api_reload if reload is None else reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run_server()
