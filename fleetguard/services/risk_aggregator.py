"""
Risk Aggregator Service

Combines three independent signals (fuel, SLA, idle) into a risk score
and a LOW / MEDIUM / HIGH level. Every evaluation is recomputed from its
inputs; there is no hysteresis between runs.

Two scoring policies exist and are NOT interchangeable:

EventRiskPolicy (per-event risk, one vehicle on one day)
    fuel theft flag      2
    late arrival         1
    excessive idle       1
    HIGH >= 3, MEDIUM == 2, else LOW

BatchRiskPolicy (periodic batch run over the fleet)
    low mileage          3   (actual < 70% of expected)
    idle risk            2
    SLA risk             3   (any LATE / MISSED in the trailing 7 days)
    HIGH >= 6, MEDIUM >= 3, else LOW

Example Usage:
    EventRiskPolicy().assess(fuel_theft=True, late_arrival=False, excessive_idle=False)
    # RiskResult(risk_score=2, risk_level=MEDIUM)
"""

from typing import Optional

import structlog

from fleetguard.models import RiskLevel, RiskResult

logger = structlog.get_logger()


class EventRiskPolicy:
    """Per-event risk scoring"""

    name = "event"

    FUEL_THEFT_WEIGHT = 2
    LATE_ARRIVAL_WEIGHT = 1
    EXCESSIVE_IDLE_WEIGHT = 1

    HIGH_THRESHOLD = 3
    MEDIUM_SCORE = 2

    def score(self, fuel_theft: bool, late_arrival: bool, excessive_idle: bool) -> int:
        return (
            self.FUEL_THEFT_WEIGHT * bool(fuel_theft)
            + self.LATE_ARRIVAL_WEIGHT * bool(late_arrival)
            + self.EXCESSIVE_IDLE_WEIGHT * bool(excessive_idle)
        )

    def level(self, score: int) -> RiskLevel:
        if score >= self.HIGH_THRESHOLD:
            return RiskLevel.HIGH
        if score == self.MEDIUM_SCORE:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def assess(
        self, fuel_theft: bool, late_arrival: bool, excessive_idle: bool
    ) -> RiskResult:
        score = self.score(fuel_theft, late_arrival, excessive_idle)
        return RiskResult(risk_score=score, risk_level=self.level(score))


class BatchRiskPolicy:
    """Periodic batch risk scoring"""

    name = "batch"

    LOW_MILEAGE_WEIGHT = 3
    IDLE_RISK_WEIGHT = 2
    SLA_RISK_WEIGHT = 3

    HIGH_THRESHOLD = 6
    MEDIUM_THRESHOLD = 3

    def __init__(self, low_mileage_ratio: float = 0.7):
        self.low_mileage_ratio = low_mileage_ratio

    def is_low_mileage(
        self, expected_mileage: Optional[float], actual_mileage: Optional[float]
    ) -> bool:
        """actual < expected * ratio; False when either value is missing or zero"""
        if not expected_mileage or not actual_mileage:
            return False
        return actual_mileage < expected_mileage * self.low_mileage_ratio

    def score(self, low_mileage: bool, idle_risk: bool, sla_risk: bool) -> int:
        return (
            self.LOW_MILEAGE_WEIGHT * bool(low_mileage)
            + self.IDLE_RISK_WEIGHT * bool(idle_risk)
            + self.SLA_RISK_WEIGHT * bool(sla_risk)
        )

    def level(self, score: int) -> RiskLevel:
        if score >= self.HIGH_THRESHOLD:
            return RiskLevel.HIGH
        if score >= self.MEDIUM_THRESHOLD:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def assess(self, low_mileage: bool, idle_risk: bool, sla_risk: bool) -> RiskResult:
        score = self.score(low_mileage, idle_risk, sla_risk)
        return RiskResult(risk_score=score, risk_level=self.level(score))


def assess_risk(fuel_theft: bool, late_arrival: bool, excessive_idle: bool) -> RiskResult:
    """Per-event risk (EventRiskPolicy)"""
    return EventRiskPolicy().assess(fuel_theft, late_arrival, excessive_idle)
