"""
Pydantic request and response models for the Webcal feed API.

JSON field names are camelCase on the wire (e.g. ``feedId``) while the
Python attributes stay snake_case.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """Base model serialising to camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Request Models
# =============================================================================


class CreateFeedRequest(ApiModel):
    """Request to create a new feed."""

    owner: Optional[str] = Field(
        None,
        description="Display name of the feed owner (defaults to a placeholder)",
        max_length=200,
        examples=["Alice"],
    )

    @field_validator("owner")
    @classmethod
    def blank_owner_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        return v.strip()


class ReplaceEventsRequest(ApiModel):
    """
    Request to replace all events of a feed.

    Events are validated by the feed store so that a single invalid event
    rejects the whole batch with a 400 response.
    """

    events: Optional[list[dict[str, Any]]] = Field(
        None,
        description="Events: {uid?, start, end, summary, description?, location?, url?, reminder?}",
        examples=[[{
            "start": "2024-01-01T10:00Z",
            "end": "2024-01-01T11:00Z",
            "summary": "Standup",
            "reminder": -900,
        }]],
    )


# =============================================================================
# Response Models
# =============================================================================


class FeedUrlsResponse(ApiModel):
    """Public URLs of a feed."""

    https_url: str = Field(..., description="Direct download URL of the ICS document")
    webcal_url: str = Field(..., description="webcal:// subscription URL")
    google_calendar_url: str = Field(..., description="Google Calendar subscription link")


class CreateFeedResponse(FeedUrlsResponse):
    """Response for a newly created feed."""

    feed_id: str = Field(..., description="Feed identifier")
    owner: str = Field(..., description="Feed owner")
    message: str = Field(..., description="Status message")


class FeedDetailResponse(FeedUrlsResponse):
    """Feed metadata."""

    feed_id: str = Field(..., description="Feed identifier")
    owner: str = Field(..., description="Feed owner")
    event_count: int = Field(..., ge=0, description="Number of events in the feed")
    created_at: datetime = Field(..., description="When the feed was created")
    last_updated: datetime = Field(..., description="When the events last changed")


class FeedSummaryResponse(ApiModel):
    """Entry of the feed listing."""

    feed_id: str = Field(..., description="Feed identifier")
    owner: str = Field(..., description="Feed owner")
    event_count: int = Field(..., ge=0, description="Number of events in the feed")
    last_updated: datetime = Field(..., description="When the events last changed")


class AddEventResponse(ApiModel):
    """Response for adding a single event."""

    uid: str = Field(..., description="UID of the stored event")
    message: str = Field(..., description="Status message")


class ErrorResponse(BaseModel):
    """Error information for failed requests."""

    error_type: Literal[
        "validation_error",
        "feed_not_found",
        "event_not_found",
        "http_error",
        "internal_error",
    ] = Field(..., description="Type of error")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[dict] = Field(None, description="Additional error details")
    retryable: bool = Field(default=False, description="Whether request can be retried")


class HealthResponse(ApiModel):
    """Health check response."""

    status: Literal["healthy", "unhealthy"] = Field(..., description="Health status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(..., description="Server time")
    feed_count: int = Field(..., ge=0, description="Number of registered feeds")
