"""
Calendar renderer.

Translates a feed snapshot into an iCalendar (RFC 5545) document plus the
cache validation metadata served alongside it.

Rendering is pure: the same feed state always produces the same document
and ETag, so polling clients can revalidate with If-None-Match.
"""

import hashlib
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Optional
from urllib.parse import quote

from icalendar import Alarm, Calendar, Event as ICalEvent, vDuration

from webcal.models.feeds import Event, Feed

logger = logging.getLogger(__name__)

ICAL_CONTENT_TYPE = "text/calendar"
ICAL_EXTENSION = ".ics"
DEFAULT_TTL_SECONDS = 1800
DEFAULT_PRODUCT_ID = "-//WebCal Service//Calendar Feed//EN"
CACHE_CONTROL = "public, max-age=0, must-revalidate"


@dataclass(frozen=True)
class RenderedFeed:
    """Calendar document and the metadata needed to serve it."""

    document: str
    content_type: str
    etag: str
    last_modified: str
    calendar_name: str
    calendar_description: str
    filename: str

    def headers(self) -> dict[str, str]:
        """
        Build the response headers for a feed download.

        Returns:
            Header mapping including the cache validators
        """
        return {
            "Content-Type": self.content_type,
            "Content-Disposition": f'inline; filename="{self.filename}"',
            **self.validator_headers(),
            "X-WR-CALNAME": _header_safe(self.calendar_name),
            "X-WR-CALDESC": _header_safe(self.calendar_description),
        }

    def validator_headers(self) -> dict[str, str]:
        """Headers sent with both full and 304 responses."""
        return {
            "ETag": self.etag,
            "Last-Modified": self.last_modified,
            "Cache-Control": CACHE_CONTROL,
        }


def calendar_name(owner: str) -> str:
    """Calendar display name for an owner."""
    return f"{owner}'s Calendar"


def calendar_description(owner: str) -> str:
    """Calendar description for an owner."""
    return f"Calendar feed for {owner}"


def render_feed(
    feed: Feed,
    feed_id: Optional[str] = None,
    ttl_seconds: int = DEFAULT_TTL_SECONDS,
    product_id: str = DEFAULT_PRODUCT_ID,
) -> RenderedFeed:
    """
    Render a feed as an iCalendar document.

    Args:
        feed: Feed snapshot to render
        feed_id: Identifier used for the download filename (defaults to feed.id)
        ttl_seconds: Refresh interval advertised to subscribing clients
        product_id: PRODID of the generated calendar

    Returns:
        RenderedFeed with document, ETag and Last-Modified value
    """
    feed_id = feed_id or feed.id
    name = calendar_name(feed.owner)
    description = calendar_description(feed.owner)
    ttl = timedelta(seconds=ttl_seconds)

    cal = Calendar()
    cal.add("prodid", product_id)
    cal.add("version", "2.0")
    cal.add("name", name)
    cal.add("x-wr-calname", name)
    cal.add("x-wr-caldesc", description)
    cal.add("refresh-interval", vDuration(ttl), parameters={"VALUE": "DURATION"})
    cal.add("x-published-ttl", vDuration(ttl))

    for event in feed.events:
        cal.add_component(build_vevent(event, feed.last_updated))

    document = cal.to_ical().decode("utf-8")
    logger.debug(
        f"Rendered feed {feed_id}: {feed.event_count} events, {len(document)} bytes"
    )

    return RenderedFeed(
        document=document,
        content_type=f"{ICAL_CONTENT_TYPE}; charset=utf-8",
        etag=compute_etag(feed),
        last_modified=http_date(feed.last_updated),
        calendar_name=name,
        calendar_description=description,
        filename=f"{feed_id}{ICAL_EXTENSION}",
    )


def build_vevent(event: Event, stamp: datetime) -> ICalEvent:
    """
    Translate an event into a VEVENT component.

    Args:
        event: Event to translate
        stamp: Feed-wide modification time used for DTSTAMP and LAST-MODIFIED

    Returns:
        VEVENT component, with a display VALARM when a reminder is set
    """
    stamp = stamp.astimezone(timezone.utc)

    vevent = ICalEvent()
    vevent.add("uid", event.uid)
    vevent.add("dtstamp", stamp)
    vevent.add("last-modified", stamp)
    vevent.add("dtstart", event.start)
    vevent.add("dtend", event.end)
    vevent.add("summary", event.summary)
    if event.description:
        vevent.add("description", event.description)
    if event.location:
        vevent.add("location", event.location)
    if event.url:
        vevent.add("url", event.url)

    if event.has_reminder:
        alarm = Alarm()
        alarm.add("action", "DISPLAY")
        alarm.add("description", event.summary)
        alarm.add("trigger", timedelta(seconds=event.reminder))
        vevent.add_component(alarm)

    return vevent


def compute_etag(feed: Feed) -> str:
    """
    Return a weak ETag derived from the feed's events and last update time.

    The fingerprint is a SHA-256 digest of a canonical JSON encoding, so
    equal state gives equal tags and any change gives a different one.
    """
    payload = json.dumps(
        {
            "events": [event.model_dump(mode="json") for event in feed.events],
            "last_updated": feed.last_updated.astimezone(timezone.utc).isoformat(),
        },
        separators=(",", ":"),
        sort_keys=True,
    ).encode("utf-8")
    digest = hashlib.sha256(payload).hexdigest()
    return f'W/"{digest}"'


def etag_matches(if_none_match: Optional[str], etag: str) -> bool:
    """Return True if the client's If-None-Match value is exactly the ETag."""
    if not if_none_match:
        return False
    return if_none_match == etag


def http_date(value: datetime) -> str:
    """Format a datetime as an HTTP-date (RFC 7231)."""
    return format_datetime(value.astimezone(timezone.utc), usegmt=True)


def _header_safe(value: str) -> str:
    """Percent-encode header values that are not printable latin-1."""
    try:
        value.encode("latin-1")
    except UnicodeEncodeError:
        return quote(value, safe=" '")
    if any(ord(ch) < 0x20 or ord(ch) == 0x7F for ch in value):
        return quote(value, safe=" '")
    return value
