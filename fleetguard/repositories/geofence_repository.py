"""
Geofence Repository - geofences, schedule assignments and route assignments

Tables:
    geofences             circular regions (center POINT, radius_meters)
    geofence_assignments  per-vehicle schedule at a geofence
    vehicle_assignments   vehicle -> route, open while end_time IS NULL
"""

import logging
from typing import Any, Dict, List, Optional

from fleetguard.models import Geofence, GeofenceAssignment, VehicleRouteAssignment
from fleetguard.repositories.base_repository import (
    BaseRepository,
    format_time_of_day,
    point_from_wkt,
)

logger = logging.getLogger(__name__)

_GEOFENCE_COLUMNS = """
    g.geofence_id, g.company_id, g.route_id, g.name,
    ST_AsText(g.center) AS center, g.radius_meters,
    g.is_active, g.expected_time_minutes
"""


def _row_to_geofence(row: Dict[str, Any]) -> Optional[Geofence]:
    center = point_from_wkt(row["center"])
    if center is None or not row["radius_meters"] or row["radius_meters"] <= 0:
        logger.warning(f"Skipping malformed geofence {row['geofence_id']}")
        return None
    return Geofence(
        geofence_id=str(row["geofence_id"]),
        company_id=row.get("company_id"),
        route_id=row.get("route_id"),
        name=row.get("name"),
        center=center,
        radius_meters=float(row["radius_meters"]),
        is_active=bool(row["is_active"]),
        expected_time_minutes=row.get("expected_time_minutes"),
    )


def _row_to_assignment(row: Dict[str, Any]) -> GeofenceAssignment:
    return GeofenceAssignment(
        geofence_id=str(row["geofence_id"]),
        vehicle_id=str(row["vehicle_id"]),
        expected_entry_time=format_time_of_day(row["expected_entry_time"]) or "",
        grace_minutes=int(row["grace_minutes"] or 0),
        window_end_time=format_time_of_day(row.get("window_end_time")),
        is_active=bool(row.get("is_active", True)),
    )


class GeofenceRepository(BaseRepository):
    """Repository for geofences and their schedules."""

    def list_active_for_vehicle(self, vehicle_id: str) -> List[Geofence]:
        """
        Active geofences a vehicle is evaluated against: those it has an
        active schedule at, plus those on its currently assigned route.
        """
        with self._cursor("list_active_for_vehicle") as cursor:
            cursor.execute(
                f"""
                SELECT DISTINCT {_GEOFENCE_COLUMNS}
                FROM geofences g
                WHERE g.is_active = 1
                  AND (
                    g.geofence_id IN (
                        SELECT ga.geofence_id FROM geofence_assignments ga
                        WHERE ga.vehicle_id = %s AND ga.is_active = 1
                    )
                    OR g.route_id IN (
                        SELECT va.route_id FROM vehicle_assignments va
                        WHERE va.vehicle_id = %s AND va.end_time IS NULL
                    )
                  )
                ORDER BY g.geofence_id
            """,
                (vehicle_id, vehicle_id),
            )
            rows = cursor.fetchall()

        geofences = [_row_to_geofence(row) for row in rows]
        return [g for g in geofences if g is not None]

    def get_assignment(
        self, geofence_id: str, vehicle_id: str
    ) -> Optional[GeofenceAssignment]:
        """First active schedule for (geofence, vehicle); duplicates are ignored."""
        with self._cursor("get_assignment") as cursor:
            cursor.execute(
                """
                SELECT geofence_id, vehicle_id, expected_entry_time,
                       grace_minutes, window_end_time, is_active
                FROM geofence_assignments
                WHERE geofence_id = %s AND vehicle_id = %s AND is_active = 1
                ORDER BY assignment_id
                LIMIT 1
            """,
                (geofence_id, vehicle_id),
            )
            row = cursor.fetchone()

        return _row_to_assignment(row) if row else None

    def list_active_assignments(self) -> List[GeofenceAssignment]:
        """All active schedules on active geofences (MISSED sweep)."""
        with self._cursor("list_active_assignments") as cursor:
            cursor.execute(
                """
                SELECT ga.geofence_id, ga.vehicle_id, ga.expected_entry_time,
                       ga.grace_minutes, ga.window_end_time, ga.is_active
                FROM geofence_assignments ga
                JOIN geofences g ON g.geofence_id = ga.geofence_id
                WHERE ga.is_active = 1 AND g.is_active = 1
                ORDER BY ga.assignment_id
            """
            )
            rows = cursor.fetchall()

        return [_row_to_assignment(row) for row in rows]

    def get_active_route_assignment(
        self, vehicle_id: str
    ) -> Optional[VehicleRouteAssignment]:
        """Currently open route assignment of a vehicle."""
        with self._cursor("get_active_route_assignment") as cursor:
            cursor.execute(
                """
                SELECT vehicle_id, route_id
                FROM vehicle_assignments
                WHERE vehicle_id = %s AND end_time IS NULL
                ORDER BY start_time DESC
                LIMIT 1
            """,
                (vehicle_id,),
            )
            row = cursor.fetchone()

        if not row:
            return None
        return VehicleRouteAssignment(
            vehicle_id=str(row["vehicle_id"]), route_id=str(row["route_id"])
        )

    def get_route_geofence(self, route_id: str) -> Optional[Geofence]:
        """Active geofence of a route."""
        with self._cursor("get_route_geofence") as cursor:
            cursor.execute(
                f"""
                SELECT {_GEOFENCE_COLUMNS}
                FROM geofences g
                WHERE g.route_id = %s AND g.is_active = 1
                ORDER BY g.geofence_id
                LIMIT 1
            """,
                (route_id,),
            )
            row = cursor.fetchone()

        return _row_to_geofence(row) if row else None
