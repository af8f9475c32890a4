"""
Pytest configuration and fixtures for Webcal feed service tests.

Provides a controllable clock, feed stores and sample event data.
"""

from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

import pytest

from webcal.config import Settings
from webcal.services.feed_store import FeedStore


class FakeClock:
    """
    Deterministic clock for feed store tests.

    Each call returns the current time and then advances it by ``step``.
    """

    def __init__(
        self,
        start: datetime = datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc),
        step: timedelta = timedelta(seconds=1),
    ):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock() -> FakeClock:
    """Clock advancing one second per reading."""
    return FakeClock()


@pytest.fixture
def store(clock: FakeClock) -> FeedStore:
    """
    Create an empty feed store driven by the fake clock.

    Returns:
        FeedStore: A store with a fresh backing dict
    """
    return FeedStore(clock=clock)


@pytest.fixture
def settings() -> Settings:
    """Settings that ignore any local .env file."""
    return Settings(_env_file=None)


@pytest.fixture
def sample_event_data() -> dict:
    """
    Minimal valid event as submitted by a client.

    Returns:
        dict: Event fields without a uid
    """
    return {
        "start": "2024-01-01T10:00Z",
        "end": "2024-01-01T11:00Z",
        "summary": "Standup",
    }


@pytest.fixture
def make_event() -> Callable[..., dict]:
    """Factory for event payloads with overridable fields."""

    def _make_event(**overrides) -> dict:
        event = {
            "start": "2024-03-04T09:00:00Z",
            "end": "2024-03-04T09:30:00Z",
            "summary": "Planning",
        }
        event.update(overrides)
        return event

    return _make_event


@pytest.fixture
def populated_feed(store: FeedStore, make_event) -> Iterator[str]:
    """
    Create a feed owned by Alice holding three events.

    Yields:
        str: The feed ID
    """
    feed = store.create("Alice")
    store.replace_events(
        feed.id,
        [
            make_event(uid="evt-1", summary="Standup"),
            make_event(uid="evt-2", summary="Review", reminder=-900),
            make_event(uid="evt-3", summary="Retro", location="Room 4"),
        ],
    )
    yield feed.id
