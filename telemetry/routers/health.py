"""Health check endpoints for container orchestration."""

from typing import Any

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse

from telemetry.database import check_database_connection
from telemetry.migrations import check_migrations_current
from telemetry.services.alert_engine import AlertEngine, get_alert_engine

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=None)
async def health_check(engine: AlertEngine = Depends(get_alert_engine)) -> Response:
    """Overall status: database connectivity plus rule snapshot details.

    Returns 503 with status "degraded" when the database is unreachable.
    """
    db_connected = await check_database_connection()
    snapshot = engine.rules.snapshot()
    resolver = engine.auto_resolver
    if resolver.stopping:
        auto_resolve = "stopped"
    elif resolver.sweeping:
        auto_resolve = "sweeping"
    else:
        auto_resolve = "idle"

    return JSONResponse(
        status_code=(
            status.HTTP_200_OK if db_connected else status.HTTP_503_SERVICE_UNAVAILABLE
        ),
        content={
            "status": "healthy" if db_connected else "degraded",
            "database": "connected" if db_connected else "disconnected",
            "rules_loaded": len(snapshot),
            "rules_generation": snapshot.generation,
            "notifications_enabled": engine.notifications.enabled,
            "auto_resolve": auto_resolve,
        },
    )


@router.get("/health/live")
async def liveness_check() -> dict[str, Any]:
    """Liveness check; does not touch external dependencies."""
    return {"status": "alive"}


@router.get("/health/ready", response_model=None)
async def readiness_check() -> Response:
    """Readiness check: ready once the database answers and its schema
    is at the latest migration."""
    if not await check_database_connection():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "disconnected"},
        )
    if not await check_migrations_current():
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "database": "migrations_pending"},
        )
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={"status": "ready", "database": "connected"},
    )
