from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generator, List, Optional

from pymysql.constants import CR, ER
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import (
    DBAPIError,
    IntegrityError,
    OperationalError,
    ProgrammingError,
    SQLAlchemyError,
)
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.pool import QueuePool

from hlf_lab.core.config import PoolConfig
from hlf_lab.core.logging import db_logger

DRIVER = "mysql+pymysql"
AUTH_ERRNOS = {ER.ACCESS_DENIED_ERROR, ER.DBACCESS_DENIED_ERROR}
POOL_RECYCLE_SECONDS = 3600


# -----------------------------------------------------------------------------
# 1) Error classification
# -----------------------------------------------------------------------------

class DatabaseError(RuntimeError):
    """A classified backend failure: kind, message and the backend code when known."""

    def __init__(
        self,
        kind: str,
        message: str,
        code: Optional[str] = None,
        errno: Optional[int] = None,
    ):
        super().__init__(f"[{kind}] {message}")
        self.kind = kind
        self.message = message
        self.code = code
        self.errno = errno

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "code": self.code, "errno": self.errno}


def _error_code_table() -> Dict[int, str]:
    table: Dict[int, str] = {}
    for prefix, module in (("ER_", ER), ("", CR)):
        for name, value in vars(module).items():
            if not name.isupper() or not isinstance(value, int):
                continue
            if name.endswith(("_FIRST", "_LAST")):
                continue
            table.setdefault(value, prefix + name)
    return table


_ERROR_CODES = _error_code_table()


def _errno_of(err: BaseException) -> Optional[int]:
    args = getattr(err, "args", ())
    if args and isinstance(args[0], int):
        return args[0]
    return None


def _message_of(err: BaseException) -> str:
    args = getattr(err, "args", ())
    if len(args) >= 2 and isinstance(args[0], int):
        return str(args[1])
    return str(err)


def classify_error(exc: BaseException) -> DatabaseError:
    if isinstance(exc, DatabaseError):
        return exc
    if isinstance(exc, PoolTimeoutError):
        return DatabaseError("timeout", str(exc), code="POOL_TIMEOUT")

    orig = exc.orig if isinstance(exc, DBAPIError) and exc.orig is not None else exc
    errno = _errno_of(orig)
    code = _ERROR_CODES.get(errno) if errno is not None else None
    message = _message_of(orig)

    if isinstance(exc, IntegrityError):
        kind = "constraint"
    elif isinstance(exc, ProgrammingError):
        kind = "syntax"
    elif isinstance(exc, OperationalError):
        kind = "auth" if errno in AUTH_ERRNOS else "connection"
    else:
        kind = "database"
    return DatabaseError(kind, message, code=code, errno=errno)


# -----------------------------------------------------------------------------
# 2) Pool
# -----------------------------------------------------------------------------

@dataclass
class ProbeResult:
    ok: bool
    error: Optional[DatabaseError] = None


@dataclass
class ExecuteResult:
    rowcount: int
    lastrowid: Optional[int]


def _parse_int(raw: str) -> Optional[int]:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


_TRUE = {"true", "1", "yes", "on"}
_FALSE = {"false", "0", "no", "off"}


def _to_bool(raw: str) -> bool:
    value = str(raw).strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(raw)


def _positive(convert: Callable[[str], Any]) -> Callable[[str], Any]:
    def parse(raw: str) -> Any:
        value = convert(str(raw).strip())
        if value <= 0:
            raise ValueError(raw)
        return value

    return parse


@dataclass(frozen=True)
class PoolLimits:
    max_connections: int
    queue_unbounded: bool
    pool_timeout: float
    connect_timeout: int
    query_timeout: int


_LIMIT_PARSERS = (
    ("max_connections", "DB_CONNECTION_LIMIT", _positive(int)),
    ("queue_unbounded", "DB_QUEUE_UNBOUNDED", _to_bool),
    ("pool_timeout", "DB_POOL_TIMEOUT", _positive(float)),
    ("connect_timeout", "DB_CONNECT_TIMEOUT", _positive(int)),
    ("query_timeout", "DB_QUERY_TIMEOUT", _positive(int)),
)


def parse_pool_limits(config: PoolConfig) -> PoolLimits:
    """Parse the raw pool tuning values, raising a ``config`` DatabaseError on the first bad one."""
    values: Dict[str, Any] = {}
    for field, env_name, parse in _LIMIT_PARSERS:
        raw = getattr(config, field)
        try:
            values[field] = parse(raw)
        except (TypeError, ValueError):
            raise DatabaseError(
                "config",
                f"invalid pool setting {env_name}={raw!r}",
                code="INVALID_POOL_SETTING",
            ) from None
    return PoolLimits(**values)


def build_engine(config: PoolConfig) -> Engine:
    port = _parse_int(config.port)
    if port is None:
        raise DatabaseError("config", f"invalid database port {config.port!r}", code="INVALID_PORT")
    limits = parse_pool_limits(config)

    url = URL.create(
        DRIVER,
        username=config.user,
        password=config.password,
        host=config.host,
        port=port,
        database=config.database,
    )
    # No overflow: the pool never grows past max_connections.
    # A bounded queue means checkout fails as soon as the pool is saturated.
    # No pre-ping: a readiness check stays a single round trip; stale
    # connections are recycled by age instead.
    return create_engine(
        url,
        poolclass=QueuePool,
        pool_size=limits.max_connections,
        max_overflow=0,
        pool_timeout=limits.pool_timeout if limits.queue_unbounded else 0,
        pool_pre_ping=False,
        pool_recycle=POOL_RECYCLE_SECONDS,
        connect_args={
            "connect_timeout": limits.connect_timeout,
            "read_timeout": limits.query_timeout,
            "write_timeout": limits.query_timeout,
        },
    )


class ConnectionPool:
    """
    Bounded, shared pool of backend connections.

    Connections are opened lazily on first checkout. After ``close()`` every
    operation fails with a ``DatabaseError`` of kind ``closed`` instead of
    reconnecting.
    """

    def __init__(self, config: PoolConfig, engine: Optional[Engine] = None):
        self.config = config
        self._lock = threading.Lock()
        self._closed = False
        self._setup_error: Optional[DatabaseError] = None
        self._engine: Optional[Engine] = engine
        if self._engine is None:
            try:
                self._engine = build_engine(config)
            except (DatabaseError, SQLAlchemyError, ValueError) as exc:
                self._setup_error = classify_error(exc)
                db_logger.error(
                    "Failed to create database connection pool",
                    host=config.host,
                    database=config.database,
                    error=self._setup_error.message,
                )

    @property
    def closed(self) -> bool:
        return self._closed

    def _require_engine(self) -> Engine:
        if self._closed:
            raise DatabaseError("closed", "connection pool is closed", code="POOL_CLOSED")
        if self._setup_error is not None:
            raise self._setup_error
        assert self._engine is not None
        return self._engine

    @contextmanager
    def _connection(self, *, begin: bool = False) -> Generator[Connection, None, None]:
        engine = self._require_engine()
        try:
            with (engine.begin() if begin else engine.connect()) as conn:
                yield conn
        except SQLAlchemyError as exc:
            raise classify_error(exc) from exc

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def fetch_all(self, sql: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        with self._connection() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(r) for r in result.mappings().all()]

    def fetch_one(self, sql: str, params: Optional[Dict[str, Any]] = None) -> Optional[Dict[str, Any]]:
        rows = self.fetch_all(sql, params=params)
        return rows[0] if rows else None

    def execute(self, sql: str, params: Optional[Dict[str, Any]] = None) -> ExecuteResult:
        """Run a statement in its own transaction."""
        with self._connection(begin=True) as conn:
            result = conn.execute(text(sql), params or {})
            return ExecuteResult(rowcount=result.rowcount, lastrowid=result.lastrowid)

    def probe(self) -> ProbeResult:
        """Single round trip. Never raises."""
        try:
            self.fetch_all("SELECT 1")
        except Exception as exc:
            return ProbeResult(ok=False, error=classify_error(exc))
        return ProbeResult(ok=True)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def status(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "closed": self._closed,
            "max_connections": _parse_int(self.config.max_connections) or self.config.max_connections,
        }
        pool = self._engine.pool if self._engine is not None else None
        if isinstance(pool, QueuePool) and not self._closed:
            info["checked_out"] = pool.checkedout()
            info["idle"] = pool.checkedin()
        if self._setup_error is not None:
            info["error"] = self._setup_error.message
        return info

    def close(self) -> bool:
        """Release every pooled connection. Returns False if already closed."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
        if self._engine is not None:
            self._engine.dispose()
        return True


def open_pool(config: PoolConfig) -> Optional[ConnectionPool]:
    """Return a pool for a configured PoolConfig, None otherwise. Does not connect."""
    if not config.is_configured:
        return None
    return ConnectionPool(config)
