"""API layer - FastAPI application and routes."""

from autolabel.api.app import app, create_app

__all__ = [
    "app",
    "create_app",
]
