"""
Diagnostic queries against the MySQL backend.
Keeps every SQL statement used by the probe endpoints in one place.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from hlf_lab.infra.db import ConnectionPool

TEST_TABLE = "test_connection"


class DiagnosticsRepository:
    """SQL for the read-only report and the write round trip."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    def select_one(self) -> Optional[Dict[str, Any]]:
        return self.pool.fetch_one("SELECT 1 AS test")

    def server_metadata(self) -> Optional[Dict[str, Any]]:
        return self.pool.fetch_one(
            """
            SELECT NOW() AS `current_time`,
                   VERSION() AS version,
                   DATABASE() AS current_db,
                   USER() AS `current_user`
            """
        )

    def startup_metadata(self) -> Optional[Dict[str, Any]]:
        return self.pool.fetch_one("SELECT VERSION() AS version, DATABASE() AS db, NOW() AS time")

    def list_tables(self) -> List[str]:
        rows = self.pool.fetch_all("SHOW TABLES")
        # SHOW TABLES names its single column after the schema: Tables_in_<db>
        return [str(next(iter(r.values()))) for r in rows if r]

    def threads_connected(self) -> Optional[Dict[str, Any]]:
        return self.pool.fetch_one("SHOW STATUS WHERE Variable_name = 'Threads_connected'")

    def ensure_test_table(self) -> None:
        self.pool.execute(
            f"""
            CREATE TABLE IF NOT EXISTS {TEST_TABLE} (
                id INT AUTO_INCREMENT PRIMARY KEY,
                test_value VARCHAR(255),
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
            )
            """
        )

    def insert_test_value(self, value: str) -> Optional[int]:
        result = self.pool.execute(
            f"INSERT INTO {TEST_TABLE} (test_value) VALUES (:value)",
            {"value": value},
        )
        return result.lastrowid

    def get_test_row(self, row_id: int) -> Optional[Dict[str, Any]]:
        return self.pool.fetch_one(f"SELECT * FROM {TEST_TABLE} WHERE id = :id", {"id": row_id})
