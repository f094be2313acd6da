"""FastAPI dependency providers. Everything comes from app.state, set at startup."""

from typing import Optional

from fastapi import Request

from hlf_lab.core.config import PoolConfig, Settings
from hlf_lab.infra.db import ConnectionPool
from hlf_lab.services.diagnostics_service import DiagnosticsService


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_pool_config(request: Request) -> PoolConfig:
    return request.app.state.pool_config


def get_pool(request: Request) -> Optional[ConnectionPool]:
    return request.app.state.pool


def get_diagnostics_service(request: Request) -> Optional[DiagnosticsService]:
    pool = get_pool(request)
    if pool is None:
        return None
    return DiagnosticsService.for_pool(pool)
