"""
Pytest fixtures. No test talks to a real MySQL server: pool tests run the real
ConnectionPool against SQLite, endpoint tests inject fakes.
"""

from __future__ import annotations

import itertools
from typing import Any, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from hlf_lab.core.application import create_application
from hlf_lab.core.config import Settings
from hlf_lab.infra.db import DatabaseError, ProbeResult
from hlf_lab.services.dependencies import get_diagnostics_service
from hlf_lab.services.diagnostics_service import DiagnosticsService

ENV_KEYS = [
    "APP_NAME", "APP_TITLE", "APP_VERSION", "ENVIRONMENT", "LOG_LEVEL", "HOST", "PORT",
    "DB_HOST", "DB_PORT", "DB_USERNAME", "DB_PASSWORD", "DB_NAME", "DB_CONNECTION_LIMIT",
    "DB_QUEUE_UNBOUNDED", "DB_POOL_TIMEOUT", "DB_CONNECT_TIMEOUT", "DB_QUERY_TIMEOUT",
    "READINESS_REQUIRE_DATABASE", "EXPOSE_ERROR_DETAILS",
]

DB_ENV = {
    "DB_HOST": "db.internal",
    "DB_USERNAME": "probe",
    "DB_PASSWORD": "secret",
    "DB_NAME": "labdb",
}


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class FakePool:
    """Stands in for ConnectionPool where only probe/close/status matter."""

    def __init__(self, probe_ok: bool = True):
        self.probe_ok = probe_ok
        self.probe_calls = 0
        self.close_calls = 0

    def probe(self) -> ProbeResult:
        self.probe_calls += 1
        if self.probe_ok:
            return ProbeResult(ok=True)
        return ProbeResult(
            ok=False,
            error=DatabaseError("connection", "Can't connect", code="CR_CONN_HOST_ERROR", errno=2003),
        )

    def fetch_one(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        return {"version": "8.0.36", "db": "labdb", "time": "2026-01-01 00:00:00"}

    def status(self) -> Dict[str, Any]:
        return {"closed": self.close_calls > 0, "max_connections": 10}

    def close(self) -> bool:
        self.close_calls += 1
        return self.close_calls == 1


class FakeDiagnosticsRepository:
    """In-memory diagnostic table; ``fail_on`` names a method that raises."""

    def __init__(self, fail_on: Optional[str] = None, corrupt_reads: bool = False):
        self.fail_on = fail_on
        self.corrupt_reads = corrupt_reads
        self.rows: Dict[int, Dict[str, Any]] = {}
        self.calls: List[str] = []
        self._ids = itertools.count(1)

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise DatabaseError("syntax", f"{name} failed", code="ER_PARSE_ERROR", errno=1064)

    def select_one(self):
        self._record("select_one")
        return {"test": 1}

    def server_metadata(self):
        self._record("server_metadata")
        return {
            "current_time": "2026-01-01T00:00:00",
            "version": "8.0.36",
            "current_db": "labdb",
            "current_user": "probe@%",
        }

    def startup_metadata(self):
        self._record("startup_metadata")
        return {"version": "8.0.36", "db": "labdb", "time": "2026-01-01T00:00:00"}

    def list_tables(self):
        self._record("list_tables")
        return ["test_connection"]

    def threads_connected(self):
        self._record("threads_connected")
        return {"Variable_name": "Threads_connected", "Value": "3"}

    def ensure_test_table(self):
        self._record("ensure_test_table")

    def insert_test_value(self, value):
        self._record("insert_test_value")
        row_id = next(self._ids)
        self.rows[row_id] = {"id": row_id, "test_value": value, "created_at": "2026-01-01T00:00:00"}
        return row_id

    def get_test_row(self, row_id):
        self._record("get_test_row")
        row = self.rows.get(row_id)
        if row is not None and self.corrupt_reads:
            return dict(row, test_value="something-else")
        return row


@pytest.fixture
def unconfigured_client():
    app = create_application(make_settings())
    return TestClient(app)


@pytest.fixture
def fake_pool():
    return FakePool()


def configured_app(pool, repository=None, **overrides):
    settings = make_settings(**DB_ENV, **overrides)
    app = create_application(settings, pool_factory=lambda config: pool)
    if repository is not None:
        app.dependency_overrides[get_diagnostics_service] = lambda: DiagnosticsService(repository)
    return app
