"""
ASGI entry point for the Webcal feed service.

Re-exports the FastAPI app from webcal/api/main.py for deployment
(e.g. ``uvicorn webcal.app:app``).
"""

from webcal.api.main import app

__all__ = ["app"]
