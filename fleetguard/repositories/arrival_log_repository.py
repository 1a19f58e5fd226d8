"""
Arrival Log Repository - geofence_logs

geofence_logs carries UNIQUE (vehicle_id, geofence_id, log_date): the
datastore enforces one log per (vehicle, geofence, day) even when two
requests pass the duplicate check at the same time.
"""

import logging
from datetime import date
from typing import Optional

from fleetguard.models import ArrivalLog, ArrivalStatus
from fleetguard.repositories.base_repository import BaseRepository, format_time_of_day

logger = logging.getLogger(__name__)


class ArrivalLogRepository(BaseRepository):
    """Repository for arrival (SLA) logs."""

    def exists_for_day(self, vehicle_id: str, geofence_id: str, log_date: date) -> bool:
        with self._cursor("arrival_exists_for_day") as cursor:
            cursor.execute(
                """
                SELECT 1 FROM geofence_logs
                WHERE vehicle_id = %s AND geofence_id = %s AND log_date = %s
                LIMIT 1
            """,
                (vehicle_id, geofence_id, log_date),
            )
            return cursor.fetchone() is not None

    def insert(self, log: ArrivalLog) -> bool:
        """
        Insert one arrival log.

        Returns:
            False when a log for the same (vehicle, geofence, day) already
            existed and nothing was written.
        """
        with self._cursor("insert_arrival_log") as cursor:
            cursor.execute(
                """
                INSERT IGNORE INTO geofence_logs
                    (vehicle_id, geofence_id, log_date, arrival_time,
                     scheduled_time, delay_minutes, status)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """,
                (
                    log.vehicle_id,
                    log.geofence_id,
                    log.log_date,
                    log.arrival_time,
                    log.scheduled_time,
                    log.delay_minutes,
                    log.status.value if log.status else None,
                ),
            )
            inserted = cursor.rowcount == 1

        if not inserted:
            logger.info(
                f"Arrival log already present for {log.vehicle_id}/{log.geofence_id} "
                f"on {log.log_date}"
            )
        return inserted

    def latest_for_vehicle(
        self, vehicle_id: str, on_or_before: Optional[date] = None
    ) -> Optional[ArrivalLog]:
        """Most recent log of a vehicle (optionally not after a given day)."""
        query = """
            SELECT vehicle_id, geofence_id, log_date, arrival_time,
                   scheduled_time, delay_minutes, status
            FROM geofence_logs
            WHERE vehicle_id = %s
        """
        params = [vehicle_id]
        if on_or_before is not None:
            query += " AND log_date <= %s"
            params.append(on_or_before)
        query += " ORDER BY log_date DESC, geofence_log_id DESC LIMIT 1"

        with self._cursor("latest_arrival_log") as cursor:
            cursor.execute(query, tuple(params))
            row = cursor.fetchone()

        if not row:
            return None
        return ArrivalLog(
            vehicle_id=str(row["vehicle_id"]),
            geofence_id=str(row["geofence_id"]),
            log_date=row["log_date"],
            arrival_time=row["arrival_time"],
            scheduled_time=format_time_of_day(row["scheduled_time"]),
            delay_minutes=row["delay_minutes"],
            status=ArrivalStatus(row["status"]) if row["status"] else None,
        )

    def count_late_or_missed_since(self, vehicle_id: str, since: date) -> int:
        """LATE / MISSED logs of a vehicle with log_date >= since."""
        with self._cursor("count_late_or_missed") as cursor:
            cursor.execute(
                """
                SELECT COUNT(*) AS cnt FROM geofence_logs
                WHERE vehicle_id = %s AND log_date >= %s
                  AND status IN ('LATE', 'MISSED')
            """,
                (vehicle_id, since),
            )
            row = cursor.fetchone()
        return int(row["cnt"]) if row else 0
