"""
40+ Pickleball API package.

Provides the FastAPI application that hosts the organizer session controller.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
