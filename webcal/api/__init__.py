"""
Webcal feed API module.

Provides FastAPI HTTP endpoints for feeds, events and the ICS calendar feed.
"""

from webcal.api.main import app, run_server

__all__ = ["app", "run_server"]
