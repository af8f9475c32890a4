"""
Custom exceptions for feed store operations.

Provides structured error handling with retryable flags.
"""

from typing import Optional, Sequence


class FeedServiceError(Exception):
    """Base exception for feed operations."""

    retryable: bool = False
    error_type: str = "feed_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def details(self) -> Optional[dict]:
        """Extra context reported alongside the message."""
        return None


class NotFoundError(FeedServiceError):
    """A feed or an event inside a feed does not exist."""

    retryable = False


class FeedNotFoundError(NotFoundError):
    """
    Feed not found.

    Causes:
    - Feed was never created
    - Feed was deleted
    - Process restarted (feeds are kept in memory only)
    """

    error_type = "feed_not_found"

    def __init__(self, feed_id: str):
        super().__init__("Feed not found")
        self.feed_id = feed_id

    @property
    def details(self) -> Optional[dict]:
        return {"feed_id": self.feed_id}


class EventNotFoundError(NotFoundError):
    """No event with the given uid exists in an existing feed."""

    error_type = "event_not_found"

    def __init__(self, feed_id: str, uid: str):
        super().__init__("Event not found")
        self.feed_id = feed_id
        self.uid = uid

    @property
    def details(self) -> Optional[dict]:
        return {"feed_id": self.feed_id, "uid": self.uid}


class EventValidationError(FeedServiceError):
    """
    Invalid event data.

    Causes:
    - Missing or empty start, end or summary
    - Unparseable start/end instants
    - Wrongly typed optional fields (e.g. a non-numeric reminder)

    A batch containing one invalid event is rejected as a whole.
    """

    error_type = "validation_error"

    def __init__(
        self,
        missing_fields: Sequence[str] = (),
        invalid_fields: Sequence[str] = (),
        index: Optional[int] = None,
    ):
        self.missing_fields = list(missing_fields)
        self.invalid_fields = list(invalid_fields)
        self.index = index
        super().__init__(self._build_message())

    def _build_message(self) -> str:
        subject = "Event" if self.index is None else f"Event at index {self.index}"
        parts = []
        if self.missing_fields:
            parts.append(
                "must have start, end, and summary fields "
                f"(missing: {', '.join(self.missing_fields)})"
            )
        if self.invalid_fields:
            parts.append(f"has invalid fields: {', '.join(self.invalid_fields)}")
        if not parts:
            parts.append("is not a valid event object")
        return f"{subject} " + "; ".join(parts)

    @property
    def details(self) -> Optional[dict]:
        return {
            "missing_fields": self.missing_fields,
            "invalid_fields": self.invalid_fields,
            "index": self.index,
        }
