"""
Telemetry Repository - GPS position samples (gps_logs)

Positions are stored as a MySQL POINT built from 'POINT(lng lat)' text;
callers only ever see latitude / longitude numbers.
"""

import logging
from datetime import datetime
from typing import List

from fleetguard.models import PositionSample
from fleetguard.repositories.base_repository import (
    BaseRepository,
    point_from_wkt,
    point_to_wkt,
)

logger = logging.getLogger(__name__)


class TelemetryRepository(BaseRepository):
    """Repository for position samples."""

    def insert_position(self, sample: PositionSample) -> None:
        """Append one accepted position sample."""
        with self._cursor("insert_position") as cursor:
            cursor.execute(
                """
                INSERT INTO gps_logs (vehicle_id, location, speed, ignition, recorded_at)
                VALUES (%s, ST_GeomFromText(%s), %s, %s, %s)
            """,
                (
                    sample.vehicle_id,
                    point_to_wkt(sample.point),
                    sample.speed,
                    sample.ignition,
                    sample.timestamp,
                ),
            )

    def list_positions(
        self, vehicle_id: str, window_start: datetime, window_end: datetime
    ) -> List[PositionSample]:
        """Samples of a vehicle with window_start <= recorded_at <= window_end."""
        with self._cursor("list_positions") as cursor:
            cursor.execute(
                """
                SELECT vehicle_id, ST_AsText(location) AS location,
                       speed, ignition, recorded_at
                FROM gps_logs
                WHERE vehicle_id = %s
                  AND recorded_at BETWEEN %s AND %s
                ORDER BY recorded_at
            """,
                (vehicle_id, window_start, window_end),
            )
            rows = cursor.fetchall()

        samples = []
        for row in rows:
            point = point_from_wkt(row["location"])
            if point is None:
                continue
            samples.append(
                PositionSample(
                    vehicle_id=row["vehicle_id"],
                    latitude=point.lat,
                    longitude=point.lng,
                    speed=float(row["speed"] or 0),
                    ignition=bool(row["ignition"]),
                    timestamp=row["recorded_at"],
                )
            )
        return samples
