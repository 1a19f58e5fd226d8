"""
Mileage Analyzer Service

Detects fuel-efficiency anomalies consistent with fuel theft or leakage.

Two theft rules exist and are kept as named policies:

- TheftRule.TOLERANCE (default): theft when actual mileage drops more than
  tolerance_percent below the expected mileage.
      expected=10, tolerance=15%  ->  theft below 8.5 km/L
- TheftRule.RATIO: theft when actual mileage is below expected * ratio
  (fixed 0.5 by default, i.e. half the expected mileage).

The per-entry path (previous fill -> current fill) never divides by a
zero fuel quantity: it reports INSUFFICIENT_DATA instead.
"""

from datetime import date
from enum import Enum
from typing import Optional

import structlog

from fleetguard.models import (
    FuelAnalysisRecord,
    FuelAnalysisResult,
    FuelAnalysisStatus,
    FuelEntry,
    TheftAssessment,
)

logger = structlog.get_logger()


class TheftRule(str, Enum):
    TOLERANCE = "tolerance"
    RATIO = "ratio"


class MileageAnalyzer:
    """
    Mileage and fuel theft heuristics.

    Example Usage:
        analyzer = MileageAnalyzer(tolerance_percent=15)
        analyzer.calculate_mileage(100, 10)          # 10.0
        analyzer.analyze_fuel_theft(10, 7)           # theft_flag=True, variance=3.0
    """

    DEFAULT_TOLERANCE_PERCENT = 15.0
    DEFAULT_THEFT_RATIO = 0.5

    def __init__(
        self,
        tolerance_percent: float = DEFAULT_TOLERANCE_PERCENT,
        theft_ratio: float = DEFAULT_THEFT_RATIO,
        theft_rule: TheftRule = TheftRule.TOLERANCE,
    ):
        self.tolerance_percent = tolerance_percent
        self.theft_ratio = theft_ratio
        self.theft_rule = TheftRule(theft_rule)

    @staticmethod
    def calculate_mileage(distance_km: float, fuel_liters: Optional[float]) -> float:
        """km per liter rounded to 2 decimals; 0 when no fuel was given"""
        if not fuel_liters or fuel_liters <= 0:
            return 0.0
        return round(distance_km / fuel_liters, 2)

    def analyze_fuel_theft(
        self,
        route_expected_mileage: float,
        actual_mileage: float,
        tolerance_percent: Optional[float] = None,
    ) -> TheftAssessment:
        """
        Tolerance rule. Positive variance means worse than expected.
        """
        if tolerance_percent is None:
            tolerance_percent = self.tolerance_percent

        allowed_drop = route_expected_mileage * (tolerance_percent / 100)
        theft = actual_mileage < (route_expected_mileage - allowed_drop)

        return TheftAssessment(
            theft_flag=theft,
            variance=round(route_expected_mileage - actual_mileage, 2),
        )

    def analyze_fuel_theft_ratio(
        self,
        expected_mileage: float,
        actual_mileage: float,
        ratio: Optional[float] = None,
    ) -> TheftAssessment:
        """Ratio rule: theft when actual < expected * ratio"""
        if ratio is None:
            ratio = self.theft_ratio

        return TheftAssessment(
            theft_flag=actual_mileage < expected_mileage * ratio,
            variance=round(expected_mileage - actual_mileage, 2),
        )

    def assess_theft(self, expected_mileage: float, actual_mileage: float) -> TheftAssessment:
        """Apply the configured rule"""
        if self.theft_rule == TheftRule.RATIO:
            return self.analyze_fuel_theft_ratio(expected_mileage, actual_mileage)
        return self.analyze_fuel_theft(expected_mileage, actual_mileage)

    def analyze_entry_pair(
        self,
        current: FuelEntry,
        previous: Optional[FuelEntry],
        expected_mileage: Optional[float],
    ) -> FuelAnalysisResult:
        """
        Analyze a new fuel entry against the entry immediately before it.

        Skips (without error) when there is no previous entry, an odometer
        reading is missing, or the distance is not positive (odometer reset
        or rollback). A missing expected mileage gives a PARTIAL record
        with no theft evaluation.
        """
        vehicle_id = current.vehicle_id

        if previous is None:
            return self._skipped(vehicle_id, FuelAnalysisStatus.NO_PREVIOUS_ENTRY)

        if current.odometer_reading is None or previous.odometer_reading is None:
            return self._skipped(vehicle_id, FuelAnalysisStatus.MISSING_ODOMETER)

        distance = round(current.odometer_reading - previous.odometer_reading, 2)
        if distance <= 0:
            return self._skipped(
                vehicle_id, FuelAnalysisStatus.NON_POSITIVE_DISTANCE, distance=distance
            )

        if current.fuel_quantity is None or current.fuel_quantity <= 0:
            return self._skipped(vehicle_id, FuelAnalysisStatus.INSUFFICIENT_DATA)

        return self.build_analysis(
            vehicle_id=vehicle_id,
            analysis_date=current.fuel_date,
            fuel_given=current.fuel_quantity,
            distance_km=distance,
            expected_mileage=expected_mileage,
        )

    def analyze_daily(
        self,
        vehicle_id: str,
        analysis_date: date,
        fuel_given: float,
        distance_km: float,
        route_expected_mileage: Optional[float],
    ) -> FuelAnalysisResult:
        """
        Daily analysis: fuel filled on a day vs. distance logged that day,
        against the route baseline. Always uses the tolerance rule.
        """
        if not fuel_given or fuel_given <= 0:
            return self._skipped(vehicle_id, FuelAnalysisStatus.INSUFFICIENT_DATA)

        if distance_km is None or distance_km <= 0:
            return self._skipped(
                vehicle_id, FuelAnalysisStatus.NON_POSITIVE_DISTANCE, distance=distance_km
            )

        return self.build_analysis(
            vehicle_id=vehicle_id,
            analysis_date=analysis_date,
            fuel_given=fuel_given,
            distance_km=round(distance_km, 2),
            expected_mileage=route_expected_mileage,
            rule=TheftRule.TOLERANCE,
        )

    def build_analysis(
        self,
        vehicle_id: str,
        analysis_date: date,
        fuel_given: float,
        distance_km: float,
        expected_mileage: Optional[float],
        rule: Optional[TheftRule] = None,
    ) -> FuelAnalysisResult:
        """Mileage + theft evaluation for a known distance and fuel amount"""
        actual = self.calculate_mileage(distance_km, fuel_given)

        if not expected_mileage:
            record = FuelAnalysisRecord(
                vehicle_id=vehicle_id,
                analysis_date=analysis_date,
                fuel_given=fuel_given,
                distance_covered=distance_km,
                actual_mileage=actual,
            )
            logger.info(
                "fuel_analysis_partial",
                vehicle_id=vehicle_id,
                reason="no_expected_mileage",
                actual_mileage=actual,
            )
            return FuelAnalysisResult(
                vehicle_id=vehicle_id, status=FuelAnalysisStatus.PARTIAL, analysis=record
            )

        rule = TheftRule(rule) if rule is not None else self.theft_rule
        if rule == TheftRule.RATIO:
            assessment = self.analyze_fuel_theft_ratio(expected_mileage, actual)
        else:
            assessment = self.analyze_fuel_theft(expected_mileage, actual)

        record = FuelAnalysisRecord(
            vehicle_id=vehicle_id,
            analysis_date=analysis_date,
            fuel_given=fuel_given,
            distance_covered=distance_km,
            expected_mileage=expected_mileage,
            actual_mileage=actual,
            fuel_variance=assessment.variance,
            theft_flag=assessment.theft_flag,
        )

        if assessment.theft_flag:
            logger.warning(
                "fuel_theft_suspected",
                vehicle_id=vehicle_id,
                expected_mileage=expected_mileage,
                actual_mileage=actual,
                variance=assessment.variance,
                rule=rule.value,
            )

        return FuelAnalysisResult(
            vehicle_id=vehicle_id, status=FuelAnalysisStatus.ANALYZED, analysis=record
        )

    @staticmethod
    def _skipped(
        vehicle_id: str, status: FuelAnalysisStatus, **context
    ) -> FuelAnalysisResult:
        logger.info("fuel_analysis_skipped", vehicle_id=vehicle_id, reason=status.value, **context)
        return FuelAnalysisResult(vehicle_id=vehicle_id, status=status)
