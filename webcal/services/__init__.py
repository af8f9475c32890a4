"""
Service layer for the Webcal feed service.

Provides:
- FeedStore: In-memory feed registry and event mutations
- Calendar rendering with cache validators
- Public feed URL construction
"""

from webcal.services.feed_store import (
    FeedStore,
    validate_event,
)

from webcal.services.renderer import (
    RenderedFeed,
    render_feed,
    compute_etag,
    etag_matches,
    http_date,
)

from webcal.services.urls import (
    FeedUrls,
    build_feed_urls,
    feed_path,
)

__all__ = [
    # Feed store
    "FeedStore",
    "validate_event",
    # Rendering
    "RenderedFeed",
    "render_feed",
    "compute_etag",
    "etag_matches",
    "http_date",
    # URLs
    "FeedUrls",
    "build_feed_urls",
    "feed_path",
]
