"""
Vehicle Repository - vehicles, routes and risk assessments
"""

import logging
from typing import List, Optional

from fleetguard.models import RiskAssessment
from fleetguard.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


class VehicleRepository(BaseRepository):
    """Repository for vehicle / route baselines and risk snapshots."""

    def list_vehicle_ids(self) -> List[str]:
        with self._cursor("list_vehicle_ids") as cursor:
            cursor.execute("SELECT vehicle_id FROM vehicles ORDER BY vehicle_id")
            return [str(row["vehicle_id"]) for row in cursor.fetchall()]

    def get_expected_mileage(self, vehicle_id: str) -> Optional[float]:
        """Vehicle mileage baseline (km/L), None when not configured."""
        with self._cursor("get_vehicle_expected_mileage") as cursor:
            cursor.execute(
                "SELECT expected_mileage FROM vehicles WHERE vehicle_id = %s",
                (vehicle_id,),
            )
            row = cursor.fetchone()

        if not row or row["expected_mileage"] is None:
            return None
        return float(row["expected_mileage"])

    def get_route_expected_mileage(self, route_id: str) -> Optional[float]:
        """Route mileage baseline (km/L), None when not configured."""
        with self._cursor("get_route_expected_mileage") as cursor:
            cursor.execute(
                "SELECT expected_mileage FROM routes WHERE route_id = %s",
                (route_id,),
            )
            row = cursor.fetchone()

        if not row or row["expected_mileage"] is None:
            return None
        return float(row["expected_mileage"])

    def insert_risk_assessment(self, assessment: RiskAssessment) -> None:
        """Append a risk snapshot; earlier snapshots are kept."""
        with self._cursor("insert_risk_assessment") as cursor:
            cursor.execute(
                """
                INSERT INTO risk_assessments
                    (vehicle_id, route_id, assessment_date, fuel_risk, sla_risk,
                     idle_risk, risk_score, risk_level, policy)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            """,
                (
                    assessment.vehicle_id,
                    assessment.route_id,
                    assessment.assessment_date,
                    assessment.fuel_risk,
                    assessment.sla_risk,
                    assessment.idle_risk,
                    assessment.risk_score,
                    assessment.risk_level.value,
                    assessment.policy,
                ),
            )
