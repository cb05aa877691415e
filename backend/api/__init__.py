"""
Flock API package.

Provides the FastAPI application for the Flock accounts and social graph service.
"""

from .app import app, create_app

__all__ = ["app", "create_app"]
