"""API routers module."""

from . import db, health

__all__ = [
    "db",
    "health",
]
