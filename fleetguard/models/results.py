"""
Result models returned by the services and the orchestrator.

Business outcomes are expressed through the status enums below and are
never raised as exceptions.
"""

from datetime import date, datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from .fleet_models import ArrivalStatus, FuelAnalysisRecord, FuelEntry, RiskLevel


class IngestStatus(str, Enum):
    ACCEPTED = "ACCEPTED"
    RATE_LIMITED = "RATE_LIMITED"


class ArrivalOutcome(str, Enum):
    """What happened to one OUTSIDE -> INSIDE transition"""

    RECORDED = "RECORDED"
    BARE_ARRIVAL = "BARE_ARRIVAL"  # schedule time unparseable, logged without status
    NO_SCHEDULE = "NO_SCHEDULE"
    ALREADY_RECORDED = "ALREADY_RECORDED"


class SlaProcessStatus(str, Enum):
    NO_ACTIVE_ROUTE = "NO_ACTIVE_ROUTE"
    NO_GEOFENCE = "NO_GEOFENCE"
    ALREADY_RECORDED = "ALREADY_RECORDED"
    OUTSIDE_GEOFENCE = "OUTSIDE_GEOFENCE"
    NO_SCHEDULE = "NO_SCHEDULE"
    RECORDED = "RECORDED"
    BARE_ARRIVAL = "BARE_ARRIVAL"


class FuelAnalysisStatus(str, Enum):
    ANALYZED = "ANALYZED"
    PARTIAL = "PARTIAL"  # no expected mileage baseline, theft not evaluated
    NO_PREVIOUS_ENTRY = "NO_PREVIOUS_ENTRY"
    MISSING_ODOMETER = "MISSING_ODOMETER"
    NON_POSITIVE_DISTANCE = "NON_POSITIVE_DISTANCE"
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"  # zero / negative fuel quantity


class TransitionEvent(BaseModel):
    vehicle_id: str
    geofence_id: str
    distance_meters: float


class ArrivalEvaluation(BaseModel):
    """Lateness of one arrival against its schedule; delay may be negative"""

    status: ArrivalStatus
    delay_minutes: int
    scheduled_time: datetime
    grace_minutes: int


class ArrivalLogResult(BaseModel):
    vehicle_id: str
    geofence_id: str
    outcome: ArrivalOutcome
    status: Optional[ArrivalStatus] = None
    delay_minutes: Optional[int] = None
    scheduled_time: Optional[datetime] = None


class PositionIngestResult(BaseModel):
    vehicle_id: str
    status: IngestStatus
    retry_after_seconds: float = 0.0
    transitions: List[TransitionEvent] = Field(default_factory=list)
    arrivals: List[ArrivalLogResult] = Field(default_factory=list)


class SlaProcessResult(BaseModel):
    vehicle_id: str
    status: SlaProcessStatus
    geofence_id: Optional[str] = None
    arrival_status: Optional[ArrivalStatus] = None
    delay_minutes: Optional[int] = None


class MissedArrival(BaseModel):
    vehicle_id: str
    geofence_id: str


class MissedSweepResult(BaseModel):
    day: date
    missed: List[MissedArrival] = Field(default_factory=list)

    @property
    def missed_count(self) -> int:
        return len(self.missed)


class TheftAssessment(BaseModel):
    theft_flag: bool
    variance: float


class FuelAnalysisResult(BaseModel):
    vehicle_id: str
    status: FuelAnalysisStatus
    analysis: Optional[FuelAnalysisRecord] = None


class FuelIngestResult(BaseModel):
    entry: FuelEntry
    analysis: FuelAnalysisResult


class RiskResult(BaseModel):
    risk_score: int
    risk_level: RiskLevel


class VehicleRiskResult(BaseModel):
    vehicle_id: str
    policy: str
    fuel_risk: bool
    sla_risk: bool
    idle_risk: bool
    idle_samples: int
    risk_score: int
    risk_level: RiskLevel


class VehicleRiskError(BaseModel):
    vehicle_id: str
    error: str


class RiskBatchResult(BaseModel):
    run_at: datetime
    results: List[VehicleRiskResult] = Field(default_factory=list)
    errors: List[VehicleRiskError] = Field(default_factory=list)

    @property
    def vehicles_evaluated(self) -> int:
        return len(self.results)
