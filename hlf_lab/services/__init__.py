"""
Domain services kept apart from the routes.

Probe evaluation (liveness, readiness, runtime info) and database diagnostics.
"""

from .diagnostics_service import DiagnosticsService, WriteProbeMismatch  # noqa: F401
from .health_service import evaluate_readiness, health_snapshot, runtime_info  # noqa: F401

__all__ = [
    "DiagnosticsService",
    "evaluate_readiness",
    "health_snapshot",
    "runtime_info",
    "WriteProbeMismatch",
]
