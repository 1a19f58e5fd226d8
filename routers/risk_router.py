"""
Risk Router
Per-event risk assessment and the periodic risk batch (OWNER only)
"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Body, Depends
from pydantic import BaseModel, ConfigDict, Field

from auth import CallerIdentity, require_roles
from fleetguard.models import RiskBatchResult, UserRole, VehicleRiskResult
from fleetguard.orchestrators import FleetOrchestrator
from service_container import get_orchestrator

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/risk", tags=["Risk"])


class RiskAssessRequest(BaseModel):
    vehicle_id: str
    route_id: Optional[str] = None
    day: Optional[date] = Field(None, alias="date")

    model_config = ConfigDict(populate_by_name=True)


class RiskBatchRequest(BaseModel):
    vehicle_id: Optional[str] = None


@router.post("/assess", response_model=VehicleRiskResult)
def assess_risk(
    request: RiskAssessRequest,
    caller: CallerIdentity = Depends(require_roles(UserRole.OWNER)),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """
    Per-event risk: fuel theft (2) + late arrival (1) + excessive idle (1).
    HIGH >= 3, MEDIUM == 2, else LOW.
    """
    return orchestrator.assess_event_risk(
        request.vehicle_id, route_id=request.route_id, day=request.day
    )


@router.post("/batch")
def run_batch(
    request: Optional[RiskBatchRequest] = Body(None),
    caller: CallerIdentity = Depends(require_roles(UserRole.OWNER)),
    orchestrator: FleetOrchestrator = Depends(get_orchestrator),
):
    """
    Periodic risk for one vehicle or the whole fleet:
    low mileage (3) + idle (2) + SLA (3). HIGH >= 6, MEDIUM >= 3.

    Per-vehicle failures are listed in `errors`; the run itself succeeds.
    """
    result: RiskBatchResult = orchestrator.run_risk_batch(
        request.vehicle_id if request else None
    )
    return {
        **result.model_dump(mode="json"),
        "vehicles_evaluated": result.vehicles_evaluated,
    }
