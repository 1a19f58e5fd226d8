"""
Fleet Data Models
=================

Records and inputs handled by the risk engine: position samples,
geofences and their schedules, arrival logs, fuel entries and the
derived fuel / risk records.

Coordinates are carried as numbers (GeoPoint). Any text encoding
used by the datastore (e.g. POINT(lng lat)) stays in the repositories.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════════
# ENUMS
# ══════════════════════════════════════════════════════════════════════════════


class ArrivalStatus(str, Enum):
    """SLA classification of an arrival"""

    ON_TIME = "ON_TIME"
    LATE = "LATE"
    MISSED = "MISSED"


class RiskLevel(str, Enum):
    """Categorical risk summary"""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class GeofenceState(str, Enum):
    """Remembered position of a vehicle relative to one geofence"""

    INSIDE = "INSIDE"
    OUTSIDE = "OUTSIDE"


class UserRole(str, Enum):
    """Roles consumed from the x-role header"""

    FLEET = "FLEET"
    SUPERVISOR = "SUPERVISOR"
    OWNER = "OWNER"


# ══════════════════════════════════════════════════════════════════════════════
# GEOGRAPHY & TELEMETRY
# ══════════════════════════════════════════════════════════════════════════════


class GeoPoint(BaseModel):
    """WGS84 coordinate"""

    lat: float
    lng: float

    model_config = ConfigDict(frozen=True)


class PositionSample(BaseModel):
    """One GPS fix reported by a vehicle device"""

    vehicle_id: str
    latitude: float
    longitude: float
    speed: Optional[float] = 0.0  # km/h
    ignition: bool = True
    timestamp: Optional[datetime] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vehicle_id": "V-1001",
                "latitude": 12.9716,
                "longitude": 77.5946,
                "speed": 42.5,
                "ignition": True,
                "timestamp": "2026-03-02T09:58:00+05:30",
            }
        }
    )

    @property
    def point(self) -> GeoPoint:
        return GeoPoint(lat=self.latitude, lng=self.longitude)


# ══════════════════════════════════════════════════════════════════════════════
# GEOFENCES & SCHEDULES
# ══════════════════════════════════════════════════════════════════════════════


class Geofence(BaseModel):
    """Circular region representing an expected stop"""

    geofence_id: str
    center: GeoPoint
    radius_meters: float = Field(gt=0)
    company_id: Optional[str] = None
    route_id: Optional[str] = None
    name: Optional[str] = None
    is_active: bool = True
    expected_time_minutes: Optional[int] = None


class GeofenceAssignment(BaseModel):
    """Schedule a vehicle is expected to meet at a geofence"""

    geofence_id: str
    vehicle_id: str
    expected_entry_time: str  # time of day, HH:MM[:SS]
    grace_minutes: int = Field(0, ge=0)
    window_end_time: Optional[str] = None  # after this, no arrival == MISSED
    is_active: bool = True


class VehicleRouteAssignment(BaseModel):
    """Currently open vehicle -> route assignment"""

    vehicle_id: str
    route_id: str


class ArrivalLog(BaseModel):
    """Append-only arrival record, at most one per (vehicle, geofence, day)"""

    vehicle_id: str
    geofence_id: str
    log_date: date
    arrival_time: Optional[datetime] = None
    scheduled_time: Optional[str] = None
    delay_minutes: Optional[int] = Field(None, ge=0)
    status: Optional[ArrivalStatus] = None


# ══════════════════════════════════════════════════════════════════════════════
# FUEL
# ══════════════════════════════════════════════════════════════════════════════


class FuelEntry(BaseModel):
    """Fuel fill recorded by a supervisor"""

    vehicle_id: str
    fuel_date: date
    fuel_quantity: float  # liters
    odometer_reading: Optional[float] = None  # km
    fuel_station: Optional[str] = None
    entered_by: Optional[str] = None
    fuel_entry_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "vehicle_id": "V-1001",
                "fuel_date": "2026-03-02",
                "fuel_quantity": 40.0,
                "odometer_reading": 15230.0,
                "fuel_station": "HP Koramangala",
            }
        }
    )


class FuelAnalysisRecord(BaseModel):
    """Mileage analysis derived from fuel given and distance covered"""

    vehicle_id: str
    analysis_date: date
    fuel_given: float
    distance_covered: float
    actual_mileage: float
    expected_mileage: Optional[float] = None
    fuel_variance: Optional[float] = None
    theft_flag: bool = False


# ══════════════════════════════════════════════════════════════════════════════
# RISK
# ══════════════════════════════════════════════════════════════════════════════


class RiskAssessment(BaseModel):
    """Risk snapshot; historical rows are kept, never overwritten"""

    vehicle_id: str
    assessment_date: date
    fuel_risk: bool
    sla_risk: bool
    idle_risk: bool
    risk_score: int
    risk_level: RiskLevel
    policy: str
    route_id: Optional[str] = None
