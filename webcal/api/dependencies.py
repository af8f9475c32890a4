"""
FastAPI dependency injection providers.

Provides the feed store and application settings.
"""

from typing import Optional
import logging

from fastapi import HTTPException

from webcal.config import Settings, get_settings
from webcal.services.feed_store import FeedStore

logger = logging.getLogger(__name__)

# Global feed store instance (initialized at startup)
_feed_store: Optional[FeedStore] = None


def init_feed_store(store: Optional[FeedStore] = None) -> FeedStore:
    """
    Initialize the feed store at application startup.

    Args:
        store: Pre-built store to install (e.g. one with a custom backing map)

    Returns:
        The installed store
    """
    global _feed_store
    if store is None:
        store = FeedStore(default_owner=get_settings().default_owner)
    _feed_store = store
    logger.info("Feed store initialized")
    return store


def get_feed_store() -> FeedStore:
    """
    Dependency injection for the feed store.

    Returns the singleton store instance.

    Raises:
        HTTPException: If the store is not initialized
    """
    if _feed_store is None:
        logger.error("Feed store not initialized")
        raise HTTPException(
            status_code=503,
            detail="Service temporarily unavailable - feed store not initialized",
        )
    return _feed_store


def get_app_settings() -> Settings:
    """Dependency injection for application settings."""
    return get_settings()


def ensure_feed_store() -> FeedStore:
    """Return the installed feed store, initializing one if needed."""
    if _feed_store is None:
        return init_feed_store()
    return _feed_store
