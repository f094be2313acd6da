"""Database diagnostic endpoints."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from hlf_lab.core.config import PoolConfig
from hlf_lab.core.logging import api_logger
from hlf_lab.infra.db import DatabaseError
from hlf_lab.services.dependencies import get_diagnostics_service, get_pool_config
from hlf_lab.services.diagnostics_service import DiagnosticsService, unconfigured_payload

router = APIRouter(prefix="/db", tags=["database"])


@router.get("/test")
def db_test(
    config: PoolConfig = Depends(get_pool_config),
    service: Optional[DiagnosticsService] = Depends(get_diagnostics_service),
):
    """Connectivity, server metadata, tables and connection count, all or nothing."""
    if service is None:
        return JSONResponse(status_code=503, content=unconfigured_payload(config))

    try:
        report = service.connection_report()
    except DatabaseError as exc:
        api_logger.error("Database test failed", error=exc.message, code=exc.code, errno=exc.errno)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Database connection failed",
                "message": exc.message,
                "code": exc.code,
                "kind": exc.kind,
                "config": config.public_view(),
            },
        )

    return jsonable_encoder(
        {
            "status": "connected",
            "message": "Database connection successful",
            "connection": config.public_view(),
            "basic_connectivity": report.basic_connectivity,
            "server": report.server,
            "tables_count": report.tables_count,
            "tables": report.tables,
            "connections": report.connections,
        }
    )


@router.post("/write-test")
def db_write_test(
    config: PoolConfig = Depends(get_pool_config),
    service: Optional[DiagnosticsService] = Depends(get_diagnostics_service),
):
    """Create the scratch table if needed, insert a token, read it back."""
    if service is None:
        return JSONResponse(status_code=503, content=unconfigured_payload(config, include_config=False))

    try:
        result = service.write_round_trip()
    except DatabaseError as exc:
        api_logger.error("Database write test failed", error=exc.message, code=exc.code)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Database write test failed",
                "message": exc.message,
                "code": exc.code,
            },
        )

    return jsonable_encoder(
        {
            "status": "success",
            "message": "Database write test successful",
            "test": result,
        }
    )
