"""
Telemetry Router
Position ingest from FLEET devices
"""

import logging

from fastapi import APIRouter, Depends

from auth import CallerIdentity, ensure_vehicle_access, require_roles
from fleetguard.models import PositionIngestResult, PositionSample, UserRole
from fleetguard.orchestrators import FleetOrchestrator
from service_container import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/telemetry", tags=["Telemetry"])


@router.post("", response_model=PositionIngestResult)
def ingest_position(
    sample: PositionSample,
    caller: CallerIdentity = Depends(require_roles(UserRole.FLEET)),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """
    Ingest one GPS position.

    Samples closer than the per-vehicle spacing to the previous accepted
    sample come back with status RATE_LIMITED and are not stored.
    Geofence entries detected by this sample are listed in `arrivals`.
    """
    ensure_vehicle_access(caller, sample.vehicle_id)
    return orchestrator.ingest_position(sample)
