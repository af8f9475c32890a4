"""
Public URLs under which a feed can be fetched or subscribed to.
"""

from dataclasses import dataclass
from urllib.parse import quote

FEED_PATH = "/calendars/feeds"
GOOGLE_CALENDAR_SUBSCRIBE_URL = "https://calendar.google.com/calendar/u/0/r"


@dataclass(frozen=True)
class FeedUrls:
    """Fetch and subscription URLs for one feed."""

    https_url: str
    webcal_url: str
    google_calendar_url: str


def feed_path(feed_id: str) -> str:
    """Path of the ICS document for a feed."""
    return f"{FEED_PATH}/{feed_id}.ics"


def build_feed_urls(feed_id: str, protocol: str, domain: str) -> FeedUrls:
    """
    Build the public URLs for a feed.

    Args:
        feed_id: Feed identifier
        protocol: Scheme used for direct fetches ("http" or "https")
        domain: Public host, optionally with port

    Returns:
        FeedUrls with the direct URL, the webcal:// subscription URL and a
        Google Calendar deep link that subscribes to the direct URL
    """
    path = feed_path(feed_id)
    https_url = f"{protocol}://{domain}{path}"
    cid = quote(https_url, safe="!*'()")
    return FeedUrls(
        https_url=https_url,
        webcal_url=f"webcal://{domain}{path}",
        google_calendar_url=f"{GOOGLE_CALENDAR_SUBSCRIBE_URL}?cid={cid}",
    )
