"""
Liveness, readiness and runtime snapshots.

Liveness never looks at the database. Readiness probes the pool on every call;
a missing pool counts as ready unless strict mode asks for a database.
"""

from __future__ import annotations

import gc
import os
import platform
import resource
import sys
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from hlf_lab.core.config import Settings
from hlf_lab.core.logging import api_logger
from hlf_lab.domain.models import ReadinessReport
from hlf_lab.infra.db import ConnectionPool

_STARTED_AT = time.monotonic()


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def uptime_seconds() -> float:
    return time.monotonic() - _STARTED_AT


def health_snapshot(settings: Settings) -> Dict[str, Any]:
    return {
        "status": "healthy",
        "timestamp": utc_now_iso(),
        "environment": settings.ENVIRONMENT,
        "uptime": uptime_seconds(),
    }


def evaluate_readiness(
    pool: Optional[ConnectionPool],
    require_database: bool = False,
) -> ReadinessReport:
    checks = {"server": True, "database": False}

    if pool is None:
        checks["database"] = not require_database
    else:
        result = pool.probe()
        checks["database"] = result.ok
        if result.error is not None:
            api_logger.error("Database check failed", error=result.error.message, code=result.error.code)

    return ReadinessReport(checks=checks)


def _peak_rss_mb() -> int:
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    divisor = 1024 * 1024 if sys.platform == "darwin" else 1024
    return round(peak / divisor)


def runtime_info(settings: Settings, pool: Optional[ConnectionPool]) -> Dict[str, Any]:
    return {
        "application": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "python_version": platform.python_version(),
        "platform": sys.platform,
        "pid": os.getpid(),
        "memory": {
            "peak_rss": f"{_peak_rss_mb()} MB",
            "gc_objects": len(gc.get_objects()),
        },
        "uptime": f"{round(uptime_seconds())} seconds",
        "database": {
            "configured": pool is not None,
            "pool": pool.status() if pool is not None else None,
        },
    }
