"""
Probe and diagnostic result models.
Derived per request, never persisted or cached.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class ReadinessReport:
    """Per-check readiness breakdown."""

    checks: Dict[str, bool]

    @property
    def ready(self) -> bool:
        return all(self.checks.values())

    @property
    def status(self) -> str:
        return "ready" if self.ready else "not ready"

    @property
    def status_code(self) -> int:
        return 200 if self.ready else 503


@dataclass
class ServerMetadata:
    version: Optional[str]
    current_time: Optional[datetime]
    current_db: Optional[str]
    current_user: Optional[str]


@dataclass
class DiagnosticReport:
    """Outcome of the read-only diagnostic sequence."""

    basic_connectivity: bool
    server: ServerMetadata
    tables: List[str] = field(default_factory=list)
    connections: Optional[Dict[str, Any]] = None

    @property
    def tables_count(self) -> int:
        return len(self.tables)


@dataclass
class WriteProbeResult:
    """Insert + read-back round trip against the diagnostic table."""

    inserted_id: int
    test_value: str
    retrieved_data: Dict[str, Any]
