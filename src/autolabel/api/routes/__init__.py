"""API route modules."""

from autolabel.api.routes import health

__all__ = [
    "health",
]
