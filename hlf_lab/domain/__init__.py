"""
Probe result models, independent of infrastructure.
"""

from .models import (
    DiagnosticReport,
    ReadinessReport,
    ServerMetadata,
    WriteProbeResult,
)

__all__ = [
    "DiagnosticReport",
    "ReadinessReport",
    "ServerMetadata",
    "WriteProbeResult",
]
