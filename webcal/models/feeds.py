"""
Feed and Event models.

Entities:
- Event: A single calendar entry published in a feed
- Feed: A named, independently addressable collection of events
- FeedSummary: Lightweight listing view of a feed
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from dateutil.parser import isoparse
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Fields every submitted event must carry with a non-empty value
REQUIRED_EVENT_FIELDS = ("start", "end", "summary")

# Largest alarm offset accepted, in seconds (one year either side of start)
MAX_REMINDER_SECONDS = 366 * 24 * 60 * 60


class Event(BaseModel):
    """
    Represents a calendar entry inside a feed.

    Instances are immutable; mutations of a feed replace events rather than
    editing them in place. Start and end are normalised to UTC.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    uid: str = Field(
        default="",
        description="Identifier unique within the feed (assigned when empty)",
    )
    start: datetime = Field(..., description="Event start instant")
    end: datetime = Field(..., description="Event end instant")
    summary: str = Field(..., min_length=1, description="Short event title")
    description: Optional[str] = Field(None, description="Detailed description")
    location: Optional[str] = Field(None, description="Event location")
    url: Optional[str] = Field(None, description="Link associated with the event")
    reminder: Optional[int] = Field(
        None,
        ge=-MAX_REMINDER_SECONDS,
        le=MAX_REMINDER_SECONDS,
        description="Display alarm offset in seconds relative to start (negative = before)",
    )

    @field_validator("uid", mode="before")
    @classmethod
    def null_uid_is_empty(cls, v: Any) -> Any:
        return "" if v is None else v

    @field_validator("start", "end", mode="before")
    @classmethod
    def parse_instant(cls, v: Any) -> Any:
        """Parse ISO 8601 strings such as '2024-01-01T10:00Z'."""
        if isinstance(v, str):
            try:
                return isoparse(v)
            except (ValueError, OverflowError) as e:
                raise ValueError(f"not a valid date-time: {v!r}") from e
        return v

    @field_validator("start", "end")
    @classmethod
    def ensure_utc(cls, v: datetime) -> datetime:
        """Treat naive values as UTC and convert aware ones to UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        try:
            return v.astimezone(timezone.utc)
        except OverflowError as e:
            raise ValueError(f"date-time out of range in UTC: {v.isoformat()}") from e

    @property
    def has_reminder(self) -> bool:
        """Whether a display alarm should be attached to the event."""
        return bool(self.reminder)


@dataclass(frozen=True)
class FeedSummary:
    """Listing view of a feed."""

    id: str
    owner: str
    event_count: int
    last_updated: datetime


@dataclass(frozen=True)
class Feed:
    """
    A published collection of calendar events.

    Feeds are values: every mutation produces a new Feed that replaces the
    previous one in the store, so a snapshot handed to a reader never changes
    underneath it.
    """

    id: str
    owner: str
    created_at: datetime
    last_updated: datetime
    events: tuple[Event, ...] = field(default_factory=tuple)

    @property
    def event_count(self) -> int:
        """Number of events in the feed."""
        return len(self.events)

    def find_event(self, uid: str) -> Optional[int]:
        """Return the index of the first event with the given uid, if any."""
        for index, event in enumerate(self.events):
            if event.uid == uid:
                return index
        return None

    def summary(self) -> FeedSummary:
        """Build the listing view of this feed."""
        return FeedSummary(
            id=self.id,
            owner=self.owner,
            event_count=self.event_count,
            last_updated=self.last_updated,
        )
