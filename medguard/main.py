"""MedGuard FastAPI application."""

from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from medguard.config import settings
from medguard.core.dosage_safety.exceptions import MissingLogData
from medguard.database import close_database
from medguard.logging_config import get_logger, setup_logging
from medguard.middleware import CorrelationIdMiddleware
from medguard.routers import doses, health, medications, schedule

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Migrations are applied by `alembic upgrade head` before uvicorn starts
    logger.info("MedGuard API started", timezone=settings.timezone)
    yield
    logger.info("Shutting down MedGuard API...")
    await close_database()
    logger.info("MedGuard API shutdown complete")


app = FastAPI(
    title="MedGuard API",
    description="Medication tracking with advisory dosage safety checks",
    version="0.1.0",
    lifespan=lifespan,
)

# Middleware (order matters: first added = last executed)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(CorrelationIdMiddleware)


@app.exception_handler(MissingLogData)
async def missing_log_data_handler(request: Request, exc: MissingLogData) -> JSONResponse:
    """A dose cannot be judged safe without its history."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"detail": str(exc)},
    )


app.include_router(health.router)
app.include_router(medications.router)
app.include_router(doses.router)
app.include_router(schedule.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "MedGuard API",
        "version": "0.1.0",
        "docs": "/docs",
    }
