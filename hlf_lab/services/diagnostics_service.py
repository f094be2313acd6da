"""Diagnostic probe service: read-only report and write round trip."""

from __future__ import annotations

import time
import uuid
from typing import Any, Dict, Optional

from hlf_lab.core.config import PoolConfig
from hlf_lab.core.logging import db_logger
from hlf_lab.domain.models import DiagnosticReport, ServerMetadata, WriteProbeResult
from hlf_lab.infra.db import ConnectionPool, DatabaseError
from hlf_lab.repositories.diagnostics_repository import DiagnosticsRepository
from hlf_lab.repositories.protocols import DiagnosticsRepositoryProtocol


class WriteProbeMismatch(DatabaseError):
    """The row read back does not carry the value that was just inserted."""

    def __init__(self, message: str):
        super().__init__("consistency", message, code="WRITE_PROBE_MISMATCH")


def generate_test_value() -> str:
    """Timestamp keeps values sortable, the random suffix keeps them distinct."""
    return f"test-{int(time.time() * 1000)}-{uuid.uuid4().hex[:8]}"


def unconfigured_payload(config: PoolConfig, include_config: bool = True) -> Dict[str, Any]:
    payload: Dict[str, Any] = {"error": "Database not configured"}
    if include_config:
        payload["config"] = config.public_view(placeholder="not set")
    return payload


class DiagnosticsService:
    """Runs the fixed diagnostic sequences against the shared pool."""

    def __init__(self, repository: DiagnosticsRepositoryProtocol):
        self.repository = repository

    @classmethod
    def for_pool(cls, pool: ConnectionPool) -> DiagnosticsService:
        return cls(DiagnosticsRepository(pool))

    def connection_report(self) -> DiagnosticReport:
        """
        Run connectivity, metadata, table listing and connection count in order.

        Any failing query raises and the whole report is discarded; there is no
        partial result.
        """
        basic = self.repository.select_one()
        info = self.repository.server_metadata() or {}
        tables = self.repository.list_tables()
        connections = self.repository.threads_connected()

        return DiagnosticReport(
            basic_connectivity=bool(basic),
            server=ServerMetadata(
                version=info.get("version"),
                current_time=info.get("current_time"),
                current_db=info.get("current_db"),
                current_user=info.get("current_user"),
            ),
            tables=tables,
            connections=connections,
        )

    def write_round_trip(self, value: Optional[str] = None) -> WriteProbeResult:
        value = value or generate_test_value()

        self.repository.ensure_test_table()
        inserted_id = self.repository.insert_test_value(value)
        if inserted_id is None:
            raise WriteProbeMismatch("backend did not report an inserted id")

        row = self.repository.get_test_row(inserted_id)
        if row is None:
            raise WriteProbeMismatch(f"row {inserted_id} not found after insert")
        if row.get("test_value") != value:
            raise WriteProbeMismatch(
                f"row {inserted_id} holds {row.get('test_value')!r}, expected {value!r}"
            )

        return WriteProbeResult(inserted_id=inserted_id, test_value=value, retrieved_data=row)

    def verify_startup(self, config: PoolConfig) -> Optional[Dict[str, Any]]:
        """Log the outcome of the first round trip. Never raises."""
        try:
            row = self.repository.startup_metadata() or {}
        except DatabaseError as exc:
            db_logger.error(
                "Failed to verify database connection on startup",
                host=config.host,
                database=config.database,
                error=exc.message,
                code=exc.code,
            )
            return None

        db_logger.info(
            "Database connection verified",
            host=config.host,
            database=config.database,
            version=row.get("version"),
            current_db=row.get("db"),
            server_time=row.get("time"),
        )
        return row
