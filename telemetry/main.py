"""Telemetry alert service FastAPI application."""

import asyncio
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI

from telemetry.config import settings
from telemetry.database import close_database
from telemetry.logging_config import get_logger, setup_logging
from telemetry.middleware import CorrelationIdMiddleware
from telemetry.migrations import run_migrations
from telemetry.routers import alerts, health, machines, metrics, rules
from telemetry.services.alert_engine import get_alert_engine, set_alert_engine
from telemetry.services.scheduler import scheduler_lifespan

setup_logging(
    log_format=settings.log_format,
    log_level=settings.log_level,
    service_name=settings.service_name,
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Applies pending migrations, loads the rule snapshot before serving
    traffic and runs the background jobs until shutdown.
    """
    if settings.run_migrations_on_startup:
        await asyncio.to_thread(run_migrations)

    engine = get_alert_engine()
    await engine.start()
    logger.info("Telemetry alert service started")

    async with scheduler_lifespan(engine):
        yield
        logger.info("Shutting down telemetry alert service...")

    set_alert_engine(None)
    await close_database()
    logger.info("Telemetry alert service shutdown complete")


app = FastAPI(
    title="Telemetry Alert Service",
    description="Threshold alerting for industrial machine telemetry",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(CorrelationIdMiddleware)

app.include_router(health.router)
app.include_router(machines.router)
app.include_router(metrics.router)
app.include_router(alerts.router)
app.include_router(rules.router)


@app.get("/")
async def root() -> dict[str, Any]:
    """Root endpoint."""
    return {
        "name": "Telemetry Alert Service",
        "version": "0.1.0",
        "docs": "/docs",
    }
