from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from hlf_lab.core.config import Settings
from hlf_lab.infra.db import ConnectionPool
from hlf_lab.services.dependencies import get_app_settings, get_pool
from hlf_lab.services.health_service import (
    evaluate_readiness,
    health_snapshot,
    runtime_info,
    utc_now_iso,
)

router = APIRouter(tags=["probes"])


@router.get("/health")
def health(settings: Settings = Depends(get_app_settings)):
    """Liveness: answers as long as the process does."""
    return health_snapshot(settings)


@router.get("/ready")
def ready(
    settings: Settings = Depends(get_app_settings),
    pool: Optional[ConnectionPool] = Depends(get_pool),
):
    """Readiness: 200 when every check passes, 503 with the breakdown otherwise."""
    report = evaluate_readiness(pool, require_database=settings.READINESS_REQUIRE_DATABASE)
    return JSONResponse(
        status_code=report.status_code,
        content={
            "status": report.status,
            "timestamp": utc_now_iso(),
            "checks": report.checks,
        },
    )


@router.get("/")
def root(settings: Settings = Depends(get_app_settings)):
    return {
        "message": settings.APP_TITLE,
        "environment": settings.ENVIRONMENT,
        "version": settings.APP_VERSION,
        "timestamp": utc_now_iso(),
    }


@router.get("/info")
def info(
    settings: Settings = Depends(get_app_settings),
    pool: Optional[ConnectionPool] = Depends(get_pool),
):
    return runtime_info(settings, pool)
