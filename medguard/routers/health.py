"""Liveness and readiness probes."""

from typing import Any

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from medguard.config import settings
from medguard.database import check_database_connection

router = APIRouter(tags=["Health"])


@router.get("/health", response_model=None)
async def health_check() -> JSONResponse:
    """Readiness: can doses be checked right now?

    Dose checks need the log history, so an unreachable database makes
    the service ``degraded`` (503) rather than merely slow.
    """
    database_ok = await check_database_connection()
    return JSONResponse(
        status_code=status.HTTP_200_OK if database_ok else status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "status": "healthy" if database_ok else "degraded",
            "database": "connected" if database_ok else "disconnected",
            "dose_checks": "available" if database_ok else "unavailable",
            "timezone": settings.timezone,
        },
    )


@router.get("/health/live")
async def liveness_probe() -> dict[str, Any]:
    """The process is up; the database is not consulted."""
    return {"status": "alive"}
