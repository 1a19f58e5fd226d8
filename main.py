"""
FleetGuard API

Vehicle telemetry -> geofence arrivals / SLA, fuel mileage theft
detection, idle detection and fleet risk scoring.

Startup (lifespan):
- logging configured from settings
- settings warnings logged
- periodic risk batch started when RISK_BATCH_ENABLED=true
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from errors import register_exception_handlers
from logger_config import setup_logging
from routers import include_all_routers
from service_container import get_container
from settings import settings

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown tasks."""
    setup_logging(
        "",
        level=settings.app.log_level,
        log_to_file=settings.app.log_to_file,
    )
    logger.info(f"FleetGuard API v{settings.app.version} starting...")

    for warning in settings.validate():
        logger.warning(f"⚠️  {warning}")

    container = get_container()
    runner = None
    if settings.risk.batch_enabled:
        runner = container.batch_runner
        runner.start()
    else:
        logger.info("ℹ️  Risk batch disabled (set RISK_BATCH_ENABLED=true to enable)")

    logger.info("API ready for connections")

    yield  # App runs here

    if runner is not None:
        await runner.stop()
    logger.info("Shutting down FleetGuard API")


app = FastAPI(
    title="FleetGuard API",
    description=(
        "Geofence arrival SLA tracking, fuel theft detection, idle detection "
        "and risk scoring for vehicle fleets.\n\n"
        "Authentication: `x-role` header (FLEET, SUPERVISOR, OWNER), "
        "`x-vehicle-id` for FLEET devices."
    ),
    version=settings.app.version,
    lifespan=lifespan,
)

register_exception_handlers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.app.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "X-Role", "X-Vehicle-Id"],
    max_age=3600,
)
logger.info(f"✅ CORS configured with {len(settings.app.allowed_origins)} allowed origins")

include_all_routers(app)


@app.get("/health", tags=["Health"])
def health():
    """Liveness check with non-secret configuration."""
    container = get_container()
    runner = container.active_batch_runner
    return {
        "status": "healthy",
        "version": settings.app.version,
        "risk_batch_running": bool(runner and runner.running),
        "config": settings.to_dict(),
    }


if __name__ == "__main__":
    import os

    import uvicorn

    is_dev = os.getenv("DEV_MODE", "false").lower() == "true"

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "8000")),
        reload=is_dev,
        log_level="info",
        timeout_keep_alive=5,
    )
