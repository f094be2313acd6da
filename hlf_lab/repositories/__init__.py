"""
Data access for the diagnostic endpoints.
"""

from .diagnostics_repository import DiagnosticsRepository

__all__ = [
    "DiagnosticsRepository",
]
