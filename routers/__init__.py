"""
Routers package - one APIRouter per inbound interface

  telemetry_router   POST /api/telemetry                  FLEET
  sla_router         POST /api/sla/process                FLEET
                     POST /api/sla/sweep-missed           SUPERVISOR, OWNER
  fuel_router        POST /api/fuel                       SUPERVISOR
                     POST /api/fuel/daily-analysis        SUPERVISOR, OWNER
  risk_router        POST /api/risk/assess                OWNER
                     POST /api/risk/batch                 OWNER
"""

from .fuel_router import router as fuel_router
from .risk_router import router as risk_router
from .sla_router import router as sla_router
from .telemetry_router import router as telemetry_router

__all__ = [
    "telemetry_router",
    "sla_router",
    "fuel_router",
    "risk_router",
]


def include_all_routers(app):
    """Include all routers in the FastAPI app."""
    app.include_router(telemetry_router)  # /api/telemetry
    app.include_router(sla_router)  # /api/sla/*
    app.include_router(fuel_router)  # /api/fuel/*
    app.include_router(risk_router)  # /api/risk/*
