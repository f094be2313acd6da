"""Repository protocol definitions used by domain services."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol


class DiagnosticsRepositoryProtocol(Protocol):
    """Contract for diagnostic data access."""

    def select_one(self) -> Optional[Dict[str, Any]]: ...

    def server_metadata(self) -> Optional[Dict[str, Any]]: ...

    def startup_metadata(self) -> Optional[Dict[str, Any]]: ...

    def list_tables(self) -> List[str]: ...

    def threads_connected(self) -> Optional[Dict[str, Any]]: ...

    def ensure_test_table(self) -> None: ...

    def insert_test_value(self, value: str) -> Optional[int]: ...

    def get_test_row(self, row_id: int) -> Optional[Dict[str, Any]]: ...
