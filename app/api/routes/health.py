"""Liveness and dependency health for load balancers and uptime checks."""

from __future__ import annotations

from datetime import UTC, datetime

from fastapi import APIRouter

from app.cache.client import valkey_healthcheck
from app.core.config import settings
from app.database.connection import db_healthcheck
from app.schemas.common import HealthResponse


router = APIRouter(prefix="/health")


def overall_status(checks: dict[str, bool]) -> str:
    """Without Valkey the API still serves requests, only rate limits and job claims lapse."""
    if not checks["database"]:
        return "unhealthy"
    return "healthy" if all(checks.values()) else "degraded"


@router.get("", response_model=HealthResponse, summary="Database and Valkey health")
async def health_check() -> HealthResponse:
    checks = {
        "database": await db_healthcheck(),
        "cache": await valkey_healthcheck(),
    }
    return HealthResponse(
        status=overall_status(checks),
        version=settings.app_version,
        timestamp=datetime.now(UTC),
        checks=checks,
    )


@router.get("/live", summary="Process liveness")
async def liveness_check() -> dict:
    return {"status": "alive"}
