"""
Unit tests for the calendar renderer.

Tests ICS document content, ETag determinism and response headers.
"""

from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import pytest
from icalendar import Calendar

from webcal.models.feeds import Event, Feed
from webcal.services.renderer import (
    CACHE_CONTROL,
    calendar_description,
    calendar_name,
    compute_etag,
    etag_matches,
    http_date,
    render_feed,
)

UPDATED = datetime(2026, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def make_feed(*events: Event, owner: str = "Alice", last_updated: datetime = UPDATED) -> Feed:
    """Build a feed snapshot for rendering."""
    return Feed(
        id="feed-123",
        owner=owner,
        created_at=datetime(2026, 1, 1, tzinfo=timezone.utc),
        last_updated=last_updated,
        events=tuple(events),
    )


def make_event(**overrides) -> Event:
    """Build an accepted event."""
    data = {
        "uid": "evt-1",
        "start": "2024-01-01T10:00Z",
        "end": "2024-01-01T11:00Z",
        "summary": "Standup",
    }
    data.update(overrides)
    return Event.model_validate(data)


def parse(document: str) -> Calendar:
    """Parse a rendered document back into a calendar."""
    return Calendar.from_ical(document)


class TestDocument:
    """Test the generated iCalendar document."""

    def test_calendar_properties(self):
        """Calendar-level name, description, PRODID and TTL are present."""
        rendered = render_feed(make_feed())
        cal = parse(rendered.document)

        assert str(cal["version"]) == "2.0"
        assert str(cal["prodid"]) == "-//WebCal Service//Calendar Feed//EN"
        assert str(cal["x-wr-calname"]) == "Alice's Calendar"
        assert str(cal["x-wr-caldesc"]) == "Calendar feed for Alice"
        assert "REFRESH-INTERVAL;VALUE=DURATION:PT30M" in rendered.document
        assert "X-PUBLISHED-TTL:PT30M" in rendered.document

    def test_custom_ttl_and_product_id(self):
        """TTL and PRODID can be overridden."""
        rendered = render_feed(make_feed(), ttl_seconds=3600, product_id="-//Test//EN")

        assert "X-PUBLISHED-TTL:PT1H" in rendered.document
        assert "PRODID:-//Test//EN" in rendered.document

    def test_lines_use_crlf(self):
        """Content lines are CRLF terminated."""
        rendered = render_feed(make_feed(make_event()))

        assert rendered.document.startswith("BEGIN:VCALENDAR\r\n")
        assert rendered.document.endswith("END:VCALENDAR\r\n")

    def test_empty_feed_has_no_events(self):
        """A feed without events renders zero VEVENTs."""
        cal = parse(render_feed(make_feed()).document)

        assert cal.walk("VEVENT") == []

    def test_one_vevent_per_event(self):
        """Each event becomes exactly one VEVENT with its uid."""
        feed = make_feed(
            make_event(uid="a"),
            make_event(uid="b", summary="Review"),
            make_event(uid="c", summary="Retro"),
        )

        vevents = parse(render_feed(feed).document).walk("VEVENT")

        assert [str(v["uid"]) for v in vevents] == ["a", "b", "c"]

    def test_event_fields(self):
        """Start, end, summary and optional texts are mapped directly."""
        event = make_event(
            description="Daily sync",
            location="Room 4",
            url="https://example.com/standup",
        )

        vevent = parse(render_feed(make_feed(event)).document).walk("VEVENT")[0]

        assert vevent.decoded("dtstart") == datetime(2024, 1, 1, 10, 0, tzinfo=timezone.utc)
        assert vevent.decoded("dtend") == datetime(2024, 1, 1, 11, 0, tzinfo=timezone.utc)
        assert str(vevent["summary"]) == "Standup"
        assert str(vevent["description"]) == "Daily sync"
        assert str(vevent["location"]) == "Room 4"
        assert str(vevent["url"]) == "https://example.com/standup"

    def test_optional_fields_omitted(self):
        """Absent optional fields do not produce properties."""
        vevent = parse(render_feed(make_feed(make_event())).document).walk("VEVENT")[0]

        assert "description" not in vevent
        assert "location" not in vevent
        assert "url" not in vevent
        assert vevent.walk("VALARM") == []

    def test_stamps_use_feed_last_updated(self):
        """DTSTAMP and LAST-MODIFIED of every event equal the feed's last update."""
        feed = make_feed(make_event(uid="a"), make_event(uid="b"))

        for vevent in parse(render_feed(feed).document).walk("VEVENT"):
            assert vevent.decoded("dtstamp") == UPDATED
            assert vevent.decoded("last-modified") == UPDATED

    def test_text_is_escaped(self):
        """Commas, semicolons and newlines survive a round trip."""
        event = make_event(summary="Lunch, then; talk", description="line one\nline two")

        rendered = render_feed(make_feed(event))
        vevent = parse(rendered.document).walk("VEVENT")[0]

        assert "SUMMARY:Lunch\\, then\\; talk" in rendered.document
        assert str(vevent["summary"]) == "Lunch, then; talk"
        assert str(vevent["description"]) == "line one\nline two"


class TestReminder:
    """Test VALARM generation."""

    def test_reminder_creates_display_alarm(self):
        """A negative reminder triggers before the start."""
        vevent = parse(render_feed(make_feed(make_event(reminder=-900))).document).walk("VEVENT")[0]

        alarms = vevent.walk("VALARM")
        assert len(alarms) == 1
        assert str(alarms[0]["action"]) == "DISPLAY"
        assert alarms[0].decoded("trigger") == timedelta(seconds=-900)
        assert str(alarms[0]["description"]) == "Standup"

    def test_positive_reminder_keeps_sign(self):
        """A positive reminder triggers after the start."""
        rendered = render_feed(make_feed(make_event(reminder=600)))
        alarm = parse(rendered.document).walk("VALARM")[0]

        assert alarm.decoded("trigger") == timedelta(seconds=600)

    def test_zero_reminder_has_no_alarm(self):
        """A zero reminder is treated as no reminder."""
        rendered = render_feed(make_feed(make_event(reminder=0)))

        assert "BEGIN:VALARM" not in rendered.document


class TestEtag:
    """Test ETag derivation."""

    def test_etag_is_weak(self):
        """The ETag is a quoted weak validator."""
        etag = render_feed(make_feed()).etag

        assert etag.startswith('W/"')
        assert etag.endswith('"')

    def test_rendering_is_idempotent(self):
        """Rendering the same state twice gives identical output."""
        feed = make_feed(make_event(reminder=-300), make_event(uid="b"))

        first = render_feed(feed)
        second = render_feed(feed)

        assert first.document == second.document
        assert first.etag == second.etag
        assert first == second

    def test_equal_state_equal_etag(self):
        """Separately built but equal feeds share an ETag."""
        assert compute_etag(make_feed(make_event())) == compute_etag(make_feed(make_event()))

    @pytest.mark.parametrize(
        "changed",
        [
            make_feed(make_event(summary="Standup!")),
            make_feed(make_event(uid="evt-2")),
            make_feed(make_event(reminder=-60)),
            make_feed(make_event(end="2024-01-01T11:30Z")),
            make_feed(make_event(), make_event(uid="evt-2")),
            make_feed(),
            make_feed(make_event(), last_updated=UPDATED + timedelta(milliseconds=1)),
        ],
    )
    def test_changes_alter_etag(self, changed):
        """Any change to events or last_updated produces a different ETag."""
        assert compute_etag(changed) != compute_etag(make_feed(make_event()))

    def test_owner_does_not_affect_etag(self):
        """The ETag depends on events and last_updated only."""
        assert compute_etag(make_feed(owner="Alice")) == compute_etag(make_feed(owner="Bob"))


class TestHeaders:
    """Test response metadata."""

    def test_metadata(self):
        """Rendered metadata matches the feed."""
        rendered = render_feed(make_feed(), "feed-123")

        assert rendered.content_type == "text/calendar; charset=utf-8"
        assert rendered.last_modified == "Fri, 02 Jan 2026 03:04:05 GMT"
        assert rendered.calendar_name == "Alice's Calendar"
        assert rendered.calendar_description == "Calendar feed for Alice"
        assert rendered.filename == "feed-123.ics"

    def test_headers(self):
        """Full responses carry disposition, validators and calendar names."""
        rendered = render_feed(make_feed())
        headers = rendered.headers()

        assert headers["Content-Type"] == "text/calendar; charset=utf-8"
        assert headers["Content-Disposition"] == 'inline; filename="feed-123.ics"'
        assert headers["ETag"] == rendered.etag
        assert headers["Last-Modified"] == rendered.last_modified
        assert headers["Cache-Control"] == CACHE_CONTROL
        assert headers["X-WR-CALNAME"] == "Alice's Calendar"
        assert headers["X-WR-CALDESC"] == "Calendar feed for Alice"

    def test_non_latin1_owner_header_is_encoded(self):
        """Owner names outside latin-1 are percent-encoded in headers only."""
        rendered = render_feed(make_feed(owner="Zoë 日本"))
        headers = rendered.headers()

        headers["X-WR-CALNAME"].encode("latin-1")
        assert rendered.calendar_name == "Zoë 日本's Calendar"
        assert "X-WR-CALNAME:Zoë 日本's Calendar" in rendered.document

    @pytest.mark.parametrize("owner", ["A\nB", "A\r\nB", "Tab\there", "Del\x7f"])
    def test_control_characters_in_owner_are_encoded(self, owner):
        """Owners with control characters never produce raw header values."""
        headers = render_feed(make_feed(owner=owner)).headers()

        for name in ("X-WR-CALNAME", "X-WR-CALDESC"):
            assert all(0x20 <= ord(ch) < 0x7F for ch in headers[name])
        assert headers["X-WR-CALDESC"] == "Calendar feed for " + quote(owner)

    def test_latin1_owner_header_is_unchanged(self):
        """Printable latin-1 names are sent as they are."""
        headers = render_feed(make_feed(owner="Zoë")).headers()

        assert headers["X-WR-CALNAME"] == "Zoë's Calendar"

    def test_validator_headers(self):
        """304 responses carry only the cache validators."""
        rendered = render_feed(make_feed())

        assert set(rendered.validator_headers()) == {"ETag", "Last-Modified", "Cache-Control"}


class TestHelpers:
    """Test helper functions."""

    def test_calendar_names(self):
        assert calendar_name("Bob") == "Bob's Calendar"
        assert calendar_description("Bob") == "Calendar feed for Bob"

    def test_http_date_converts_to_gmt(self):
        """Aware datetimes in other zones are converted to GMT."""
        value = datetime(2026, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))

        assert http_date(value) == "Fri, 02 Jan 2026 03:04:05 GMT"

    def test_etag_matches_exact(self):
        assert etag_matches('W/"abc"', 'W/"abc"') is True

    @pytest.mark.parametrize("header", [None, "", '"abc"', 'W/"abc", W/"def"', "*"])
    def test_etag_matches_rejects_anything_else(self, header):
        """Only a byte-for-byte match short-circuits."""
        assert etag_matches(header, 'W/"abc"') is False
