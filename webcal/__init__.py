"""
Webcal feed service.

Publishes sets of calendar events as subscribable iCalendar feeds.
"""

__version__ = "0.1.0"
