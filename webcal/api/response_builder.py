"""
Response builder utilities for transforming feeds to API responses.
"""

from typing import Any

from webcal.api.models import (
    CreateFeedResponse,
    FeedDetailResponse,
    FeedSummaryResponse,
)
from webcal.config import Settings
from webcal.exceptions import FeedServiceError
from webcal.models.feeds import Feed, FeedSummary
from webcal.services.urls import FeedUrls, build_feed_urls


def urls_for(feed_id: str, settings: Settings) -> FeedUrls:
    """Build the public URLs of a feed from the configured origin."""
    return build_feed_urls(feed_id, settings.public_protocol, settings.public_domain)


def build_create_response(feed: Feed, settings: Settings) -> CreateFeedResponse:
    """Build the response returned after creating a feed."""
    urls = urls_for(feed.id, settings)
    return CreateFeedResponse(
        feed_id=feed.id,
        owner=feed.owner,
        https_url=urls.https_url,
        webcal_url=urls.webcal_url,
        google_calendar_url=urls.google_calendar_url,
        message="Calendar feed created successfully",
    )


def build_feed_detail(feed: Feed, settings: Settings) -> FeedDetailResponse:
    """
    Build feed metadata including public URLs.

    Args:
        feed: Feed snapshot
        settings: Settings providing the public origin

    Returns:
        FeedDetailResponse ready for API return
    """
    urls = urls_for(feed.id, settings)
    return FeedDetailResponse(
        feed_id=feed.id,
        owner=feed.owner,
        event_count=feed.event_count,
        created_at=feed.created_at,
        last_updated=feed.last_updated,
        https_url=urls.https_url,
        webcal_url=urls.webcal_url,
        google_calendar_url=urls.google_calendar_url,
    )


def build_feed_summary(summary: FeedSummary) -> FeedSummaryResponse:
    """Build a feed listing entry."""
    return FeedSummaryResponse(
        feed_id=summary.id,
        owner=summary.owner,
        event_count=summary.event_count,
        last_updated=summary.last_updated,
    )


def build_error_response(
    error_type: str,
    message: str,
    details: dict[str, Any] | None = None,
    retryable: bool = False,
) -> dict[str, Any]:
    """Build standardized error response dictionary."""
    return {
        "error_type": error_type,
        "message": message,
        "details": details,
        "retryable": retryable,
    }


def error_response_for(exc: FeedServiceError) -> dict[str, Any]:
    """Build the error response body for a feed service exception."""
    return build_error_response(
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
        retryable=exc.retryable,
    )
