"""Service layer for business logic."""

from .arrival_evaluator import ArrivalEvaluator, ScheduleParseError, parse_time_of_day
from .geo_math import distance_meters, is_within, validate_coordinates
from .geofence_state_tracker import (
    GeofenceStateTracker,
    InMemoryTransitionStateStore,
    RedisTransitionStateStore,
    TransitionStateStore,
)
from .idle_detector import IdleConfig, IdleDetector
from .mileage_analyzer import MileageAnalyzer, TheftRule
from .risk_aggregator import BatchRiskPolicy, EventRiskPolicy, assess_risk

__all__ = [
    "ArrivalEvaluator",
    "BatchRiskPolicy",
    "EventRiskPolicy",
    "GeofenceStateTracker",
    "IdleConfig",
    "IdleDetector",
    "InMemoryTransitionStateStore",
    "MileageAnalyzer",
    "RedisTransitionStateStore",
    "ScheduleParseError",
    "TheftRule",
    "TransitionStateStore",
    "assess_risk",
    "distance_meters",
    "is_within",
    "parse_time_of_day",
    "validate_coordinates",
]
