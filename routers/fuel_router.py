"""
Fuel Router
Fuel entries and daily fuel analysis
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from auth import CallerIdentity, require_roles
from fleetguard.models import FuelAnalysisResult, FuelEntry, FuelIngestResult, UserRole
from fleetguard.orchestrators import FleetOrchestrator
from service_container import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/fuel", tags=["Fuel"])


class DailyFuelAnalysisRequest(BaseModel):
    vehicle_id: str
    route_id: Optional[str] = None
    day: Optional[date] = Field(None, alias="date")

    model_config = ConfigDict(populate_by_name=True)


@router.post("", response_model=FuelIngestResult)
def create_fuel_entry(
    entry: FuelEntry,
    caller: CallerIdentity = Depends(require_roles(UserRole.SUPERVISOR)),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """
    Record a fuel fill and analyze it against the previous fill.

    The entry is stored even when the analysis is skipped (no previous
    entry, missing odometer, odometer reset, zero quantity); the reason
    is in `analysis.status`.
    """
    if entry.entered_by is None:
        entry = entry.model_copy(update={"entered_by": caller.role.value})
    return orchestrator.ingest_fuel_entry(entry)


@router.post("/daily-analysis", response_model=FuelAnalysisResult)
def daily_fuel_analysis(
    request: DailyFuelAnalysisRequest,
    caller: CallerIdentity = Depends(
        require_roles(UserRole.SUPERVISOR, UserRole.OWNER)
    ),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """Fuel filled vs. distance logged on a day, against the route baseline."""
    return orchestrator.run_daily_fuel_analysis(
        request.vehicle_id, route_id=request.route_id, day=request.day
    )
