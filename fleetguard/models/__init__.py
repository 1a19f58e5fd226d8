"""Pydantic models for type safety and validation."""

from .fleet_models import (
    ArrivalLog,
    ArrivalStatus,
    FuelAnalysisRecord,
    FuelEntry,
    GeoPoint,
    Geofence,
    GeofenceAssignment,
    GeofenceState,
    PositionSample,
    RiskAssessment,
    RiskLevel,
    UserRole,
    VehicleRouteAssignment,
)
from .results import (
    ArrivalEvaluation,
    ArrivalLogResult,
    ArrivalOutcome,
    FuelAnalysisResult,
    FuelAnalysisStatus,
    FuelIngestResult,
    IngestStatus,
    MissedArrival,
    MissedSweepResult,
    PositionIngestResult,
    RiskBatchResult,
    RiskResult,
    SlaProcessResult,
    SlaProcessStatus,
    TheftAssessment,
    TransitionEvent,
    VehicleRiskError,
    VehicleRiskResult,
)

__all__ = [
    "ArrivalEvaluation",
    "ArrivalLog",
    "ArrivalLogResult",
    "ArrivalOutcome",
    "ArrivalStatus",
    "FuelAnalysisRecord",
    "FuelAnalysisResult",
    "FuelAnalysisStatus",
    "FuelEntry",
    "FuelIngestResult",
    "GeoPoint",
    "Geofence",
    "GeofenceAssignment",
    "GeofenceState",
    "IngestStatus",
    "MissedArrival",
    "MissedSweepResult",
    "PositionIngestResult",
    "PositionSample",
    "RiskAssessment",
    "RiskBatchResult",
    "RiskLevel",
    "RiskResult",
    "SlaProcessResult",
    "SlaProcessStatus",
    "TheftAssessment",
    "TransitionEvent",
    "UserRole",
    "VehicleRiskError",
    "VehicleRiskResult",
    "VehicleRouteAssignment",
]
