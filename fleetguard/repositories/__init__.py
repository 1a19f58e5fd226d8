"""
Repositories - pymysql adapters for the datastore
"""

from .arrival_log_repository import ArrivalLogRepository
from .base_repository import BaseRepository, format_time_of_day, point_from_wkt, point_to_wkt
from .fuel_repository import FuelRepository
from .geofence_repository import GeofenceRepository
from .telemetry_repository import TelemetryRepository
from .vehicle_repository import VehicleRepository

__all__ = [
    "ArrivalLogRepository",
    "BaseRepository",
    "FuelRepository",
    "GeofenceRepository",
    "TelemetryRepository",
    "VehicleRepository",
    "format_time_of_day",
    "point_from_wkt",
    "point_to_wkt",
]
