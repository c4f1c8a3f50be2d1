"""
MindQuest API package.

Provides the FastAPI application for the MindQuest campus platform backend.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
