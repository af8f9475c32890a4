"""
Domain models for the Webcal feed service.

Exports:
- Event: Calendar entry (pydantic, immutable)
- Feed: Feed snapshot (frozen dataclass)
- FeedSummary: Listing view of a feed
"""

from webcal.models.feeds import (
    REQUIRED_EVENT_FIELDS,
    Event,
    Feed,
    FeedSummary,
)

__all__ = [
    "REQUIRED_EVENT_FIELDS",
    "Event",
    "Feed",
    "FeedSummary",
]
