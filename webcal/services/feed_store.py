"""
In-memory feed store.

Owns the mapping from feed identifier to feed state and exposes the feed
lifecycle (create, get, list, delete) plus event-level mutations.

Concurrency model:
- A registry lock guards the per-feed lock table and feed registration
- Each feed has its own lock; every mutation of a feed runs under it
- Mutations build a complete new Feed and swap it into the backing map in
  one assignment, so readers only ever see whole snapshots
"""

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Iterator, Mapping, MutableMapping, Optional

from pydantic import ValidationError

from webcal.exceptions import (
    EventNotFoundError,
    EventValidationError,
    FeedNotFoundError,
)
from webcal.models.feeds import REQUIRED_EVENT_FIELDS, Event, Feed, FeedSummary

logger = logging.getLogger(__name__)

DEFAULT_OWNER = "Anonymous"


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def new_identifier() -> str:
    """Generate a random UUID4 identifier."""
    return str(uuid.uuid4())


def validate_event(raw: Any, index: Optional[int] = None) -> Event:
    """
    Validate a submitted event.

    Args:
        raw: Event mapping (e.g. decoded JSON) or an Event instance
        index: Position of the event in a batch, used in error messages

    Returns:
        Validated Event (uid may still be empty)

    Raises:
        EventValidationError: If required fields are missing/empty or any
            field cannot be interpreted
    """
    if isinstance(raw, Event):
        return raw

    if not isinstance(raw, Mapping):
        raise EventValidationError(index=index)

    missing = [
        name for name in REQUIRED_EVENT_FIELDS
        if raw.get(name) is None or raw.get(name) == ""
    ]
    if missing:
        raise EventValidationError(missing_fields=missing, index=index)

    try:
        return Event.model_validate(dict(raw))
    except ValidationError as e:
        invalid = sorted({
            str(error["loc"][0]) for error in e.errors() if error.get("loc")
        })
        raise EventValidationError(invalid_fields=invalid, index=index) from e


class FeedStore:
    """
    Authoritative registry of feeds.

    The backing map is injectable so that a persistent mapping can replace
    the default dict without touching callers. Feeds stored in it are
    immutable values.

    Example:
        >>> store = FeedStore()
        >>> feed = store.create("Alice")
        >>> uid = store.add_event(feed.id, {
        ...     "start": "2024-01-01T10:00Z",
        ...     "end": "2024-01-01T11:00Z",
        ...     "summary": "Standup",
        ... })
    """

    def __init__(
        self,
        backing: Optional[MutableMapping[str, Feed]] = None,
        clock: Optional[Callable[[], datetime]] = None,
        id_factory: Optional[Callable[[], str]] = None,
        default_owner: str = DEFAULT_OWNER,
    ):
        self._feeds: MutableMapping[str, Feed] = backing if backing is not None else {}
        self._clock = clock or utcnow
        self._id_factory = id_factory or new_identifier
        self._default_owner = default_owner
        self._registry_lock = threading.Lock()
        self._locks: dict[str, threading.Lock] = {
            feed_id: threading.Lock() for feed_id in self._feeds
        }

    def __len__(self) -> int:
        return len(self._feeds)

    def __contains__(self, feed_id: object) -> bool:
        return feed_id in self._feeds

    def count(self) -> int:
        """Number of registered feeds."""
        return len(self._feeds)

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _lock_for(self, feed_id: str) -> threading.Lock:
        """Return the lock of an existing feed."""
        with self._registry_lock:
            lock = self._locks.get(feed_id)
            if lock is None:
                raise FeedNotFoundError(feed_id)
            return lock

    def _current(self, feed_id: str) -> Feed:
        """Read the stored feed or raise FeedNotFoundError."""
        feed = self._feeds.get(feed_id)
        if feed is None:
            raise FeedNotFoundError(feed_id)
        return feed

    def _next_timestamp(self, previous: datetime) -> datetime:
        """Current time, never earlier than the previous timestamp."""
        return max(self._clock(), previous)

    def _commit(self, feed: Feed, events: Iterable[Event]) -> Feed:
        """Swap in a new version of the feed with the given events."""
        updated = replace(
            feed,
            events=tuple(events),
            last_updated=self._next_timestamp(feed.last_updated),
        )
        self._feeds[feed.id] = updated
        return updated

    def _with_uid(self, event: Event) -> Event:
        """Assign a fresh uid to an event that lacks one."""
        if event.uid:
            return event
        return event.model_copy(update={"uid": self._id_factory()})

    # =========================================================================
    # Feed lifecycle
    # =========================================================================

    def create(self, owner: Optional[str] = None) -> Feed:
        """
        Create and register an empty feed.

        Args:
            owner: Display name (defaults to the configured placeholder)

        Returns:
            The new feed
        """
        now = self._clock()
        owner = owner.strip() if owner and owner.strip() else self._default_owner

        with self._registry_lock:
            feed_id = self._id_factory()
            while feed_id in self._feeds:
                feed_id = self._id_factory()

            feed = Feed(id=feed_id, owner=owner, created_at=now, last_updated=now)
            self._locks[feed_id] = threading.Lock()
            self._feeds[feed_id] = feed

        logger.info(f"Created feed {feed_id} for owner '{owner}'")
        return feed

    def get(self, feed_id: str) -> Feed:
        """
        Get a feed snapshot by ID.

        Raises:
            FeedNotFoundError: If no feed has that ID
        """
        return self._current(feed_id)

    def list(self) -> Iterator[FeedSummary]:
        """
        Yield summaries of all registered feeds in registration order.

        Each call starts a fresh pass over the feeds registered at that
        moment.
        """
        with self._registry_lock:
            feed_ids = list(self._feeds.keys())

        for feed_id in feed_ids:
            feed = self._feeds.get(feed_id)
            if feed is not None:
                yield feed.summary()

    def delete(self, feed_id: str) -> None:
        """
        Remove a feed and all its events.

        Raises:
            FeedNotFoundError: If no feed has that ID
        """
        lock = self._lock_for(feed_id)
        with lock:
            with self._registry_lock:
                if feed_id not in self._feeds:
                    raise FeedNotFoundError(feed_id)
                del self._feeds[feed_id]
                self._locks.pop(feed_id, None)

        logger.info(f"Deleted feed {feed_id}")

    # =========================================================================
    # Event mutations
    # =========================================================================

    def replace_events(self, feed_id: str, events: Iterable[Any]) -> Feed:
        """
        Replace the whole event collection of a feed.

        Every event is validated before anything is applied; one invalid
        event rejects the batch and leaves the feed unchanged.

        Args:
            feed_id: Feed to update
            events: Event mappings or Event instances

        Returns:
            The updated feed

        Raises:
            FeedNotFoundError: If no feed has that ID
            EventValidationError: If any event is invalid
        """
        lock = self._lock_for(feed_id)
        validated = [
            validate_event(raw, index=index) for index, raw in enumerate(events)
        ]

        with lock:
            feed = self._current(feed_id)
            updated = self._commit(feed, (self._with_uid(e) for e in validated))

        logger.info(f"Replaced events of feed {feed_id} ({updated.event_count} events)")
        return updated

    def add_event(self, feed_id: str, event: Any) -> str:
        """
        Append a single event to a feed.

        Args:
            feed_id: Feed to update
            event: Event mapping or Event instance

        Returns:
            The uid of the stored event (assigned if none was supplied)

        Raises:
            FeedNotFoundError: If no feed has that ID
            EventValidationError: If the event is invalid
        """
        lock = self._lock_for(feed_id)
        accepted = self._with_uid(validate_event(event))

        with lock:
            feed = self._current(feed_id)
            self._commit(feed, feed.events + (accepted,))

        logger.info(f"Added event {accepted.uid} to feed {feed_id}")
        return accepted.uid

    def delete_event(self, feed_id: str, uid: str) -> None:
        """
        Remove the first event with the given uid from a feed.

        Raises:
            FeedNotFoundError: If no feed has that ID
            EventNotFoundError: If the feed has no event with that uid
        """
        lock = self._lock_for(feed_id)

        with lock:
            feed = self._current(feed_id)
            index = feed.find_event(uid)
            if index is None:
                raise EventNotFoundError(feed_id, uid)
            self._commit(feed, feed.events[:index] + feed.events[index + 1:])

        logger.info(f"Deleted event {uid} from feed {feed_id}")
