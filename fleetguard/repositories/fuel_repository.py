"""
Fuel Repository - fuel entries, distance logs and fuel analysis records

Tables:
    fuel_entries    fills recorded by supervisors (immutable)
    distance_logs   kilometres covered per vehicle per day
    fuel_analysis   derived mileage / theft records
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from fleetguard.models import FuelAnalysisRecord, FuelEntry
from fleetguard.repositories.base_repository import BaseRepository

logger = logging.getLogger(__name__)


def _row_to_entry(row: Dict[str, Any]) -> FuelEntry:
    odometer = row.get("odometer_reading")
    return FuelEntry(
        fuel_entry_id=str(row["fuel_entry_id"]) if row.get("fuel_entry_id") else None,
        vehicle_id=str(row["vehicle_id"]),
        fuel_date=row["fuel_date"],
        fuel_quantity=float(row["fuel_quantity"] or 0),
        odometer_reading=float(odometer) if odometer is not None else None,
        fuel_station=row.get("fuel_station"),
        entered_by=row.get("entered_by"),
    )


def _row_to_analysis(row: Dict[str, Any]) -> FuelAnalysisRecord:
    def _opt(value):
        return float(value) if value is not None else None

    return FuelAnalysisRecord(
        vehicle_id=str(row["vehicle_id"]),
        analysis_date=row["analysis_date"],
        fuel_given=float(row["fuel_given"]),
        distance_covered=float(row["distance_covered"]),
        actual_mileage=float(row["actual_mileage"]),
        expected_mileage=_opt(row.get("expected_mileage")),
        fuel_variance=_opt(row.get("fuel_variance")),
        theft_flag=bool(row["theft_flag"]),
    )


class FuelRepository(BaseRepository):
    """Repository for fuel data."""

    def insert_entry(self, entry: FuelEntry) -> FuelEntry:
        """Insert a fuel entry and return it with its generated id."""
        with self._cursor("insert_fuel_entry") as cursor:
            cursor.execute(
                """
                INSERT INTO fuel_entries
                    (vehicle_id, fuel_date, fuel_quantity, odometer_reading,
                     fuel_station, entered_by)
                VALUES (%s, %s, %s, %s, %s, %s)
            """,
                (
                    entry.vehicle_id,
                    entry.fuel_date,
                    entry.fuel_quantity,
                    entry.odometer_reading,
                    entry.fuel_station,
                    entry.entered_by,
                ),
            )
            entry_id = cursor.lastrowid

        return entry.model_copy(update={"fuel_entry_id": str(entry_id)})

    def get_previous_entry(self, vehicle_id: str, before: date) -> Optional[FuelEntry]:
        """Latest fuel entry of a vehicle with fuel_date strictly before `before`."""
        with self._cursor("get_previous_fuel_entry") as cursor:
            cursor.execute(
                """
                SELECT fuel_entry_id, vehicle_id, fuel_date, fuel_quantity,
                       odometer_reading, fuel_station, entered_by
                FROM fuel_entries
                WHERE vehicle_id = %s AND fuel_date < %s
                ORDER BY fuel_date DESC, fuel_entry_id DESC
                LIMIT 1
            """,
                (vehicle_id, before),
            )
            row = cursor.fetchone()

        return _row_to_entry(row) if row else None

    def sum_fuel_for_day(self, vehicle_id: str, day: date) -> float:
        """Total liters filled by a vehicle on a day."""
        with self._cursor("sum_fuel_for_day") as cursor:
            cursor.execute(
                """
                SELECT COALESCE(SUM(fuel_quantity), 0) AS total
                FROM fuel_entries
                WHERE vehicle_id = %s AND fuel_date = %s
            """,
                (vehicle_id, day),
            )
            row = cursor.fetchone()
        return float(row["total"]) if row else 0.0

    def get_distance_for_day(self, vehicle_id: str, day: date) -> float:
        """Kilometres logged for a vehicle on a day."""
        with self._cursor("get_distance_for_day") as cursor:
            cursor.execute(
                """
                SELECT COALESCE(SUM(distance_km), 0) AS distance
                FROM distance_logs
                WHERE vehicle_id = %s AND log_date = %s
            """,
                (vehicle_id, day),
            )
            row = cursor.fetchone()
        return float(row["distance"]) if row else 0.0

    def insert_analysis(self, record: FuelAnalysisRecord) -> None:
        with self._cursor("insert_fuel_analysis") as cursor:
            cursor.execute(
                """
                INSERT INTO fuel_analysis
                    (vehicle_id, analysis_date, fuel_given, distance_covered,
                     expected_mileage, actual_mileage, fuel_variance, theft_flag)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """,
                (
                    record.vehicle_id,
                    record.analysis_date,
                    record.fuel_given,
                    record.distance_covered,
                    record.expected_mileage,
                    record.actual_mileage,
                    record.fuel_variance,
                    record.theft_flag,
                ),
            )

    def get_analysis_for_day(
        self, vehicle_id: str, day: date
    ) -> Optional[FuelAnalysisRecord]:
        """Latest analysis record of a vehicle for a day."""
        with self._cursor("get_fuel_analysis_for_day") as cursor:
            cursor.execute(
                """
                SELECT vehicle_id, analysis_date, fuel_given, distance_covered,
                       expected_mileage, actual_mileage, fuel_variance, theft_flag
                FROM fuel_analysis
                WHERE vehicle_id = %s AND analysis_date = %s
                ORDER BY fuel_analysis_id DESC
                LIMIT 1
            """,
                (vehicle_id, day),
            )
            row = cursor.fetchone()

        return _row_to_analysis(row) if row else None

    def get_latest_analysis(self, vehicle_id: str) -> Optional[FuelAnalysisRecord]:
        """Most recent analysis record of a vehicle (batch low-mileage check)."""
        with self._cursor("get_latest_fuel_analysis") as cursor:
            cursor.execute(
                """
                SELECT vehicle_id, analysis_date, fuel_given, distance_covered,
                       expected_mileage, actual_mileage, fuel_variance, theft_flag
                FROM fuel_analysis
                WHERE vehicle_id = %s
                ORDER BY analysis_date DESC, fuel_analysis_id DESC
                LIMIT 1
            """,
                (vehicle_id,),
            )
            row = cursor.fetchone()

        return _row_to_analysis(row) if row else None
