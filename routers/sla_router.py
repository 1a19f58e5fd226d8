"""
SLA Router
Route SLA checks and the MISSED-arrival sweep
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel

from auth import CallerIdentity, ensure_vehicle_access, require_roles
from fleetguard.models import MissedSweepResult, SlaProcessResult, UserRole
from fleetguard.orchestrators import FleetOrchestrator
from service_container import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sla", tags=["SLA"])


class SlaProcessRequest(BaseModel):
    vehicle_id: str
    latitude: float
    longitude: float
    recorded_at: Optional[datetime] = None


class MissedSweepRequest(BaseModel):
    now: Optional[datetime] = None


@router.post("/process", response_model=SlaProcessResult)
def process_sla(
    request: SlaProcessRequest,
    caller: CallerIdentity = Depends(require_roles(UserRole.FLEET)),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """
    Check a position against the geofence of the vehicle's active route.

    Terminal statuses: NO_ACTIVE_ROUTE, NO_GEOFENCE, ALREADY_RECORDED,
    OUTSIDE_GEOFENCE, NO_SCHEDULE, RECORDED, BARE_ARRIVAL.
    """
    ensure_vehicle_access(caller, request.vehicle_id)
    return orchestrator.process_route_sla(
        request.vehicle_id, request.latitude, request.longitude, request.recorded_at
    )


@router.post("/sweep-missed")
def sweep_missed(
    request: Optional[MissedSweepRequest] = Body(None),
    caller: CallerIdentity = Depends(
        require_roles(UserRole.SUPERVISOR, UserRole.OWNER)
    ),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """Log MISSED for every schedule whose window closed today without an arrival."""
    result: MissedSweepResult = orchestrator.sweep_missed_arrivals(
        request.now if request else None
    )
    return {**result.model_dump(mode="json"), "missed_count": result.missed_count}
