"""
Geo Math

Great-circle distance and point-in-circle containment used by the
geofence state tracker.
"""

from math import atan2, cos, radians, sin, sqrt
from typing import Optional

from fleetguard.models import GeoPoint

EARTH_RADIUS_METERS = 6_371_000


def distance_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Haversine distance between two GPS coordinates in meters.

    Non-finite inputs propagate as NaN; callers validate ranges first
    (see validate_coordinates).
    """
    lat1, lon1, lat2, lon2 = map(radians, [lat1, lon1, lat2, lon2])
    dlat = lat2 - lat1
    dlon = lon2 - lon1

    a = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlon / 2) ** 2
    c = 2 * atan2(sqrt(a), sqrt(1 - a))

    return EARTH_RADIUS_METERS * c


def distance_between(a: GeoPoint, b: GeoPoint) -> float:
    """distance_meters for two GeoPoints"""
    return distance_meters(a.lat, a.lng, b.lat, b.lng)


def is_within(point: GeoPoint, center: GeoPoint, radius_meters: float) -> bool:
    """True when point lies on or inside the circle (center, radius_meters)"""
    return distance_between(point, center) <= radius_meters


def validate_coordinates(latitude: Optional[float], longitude: Optional[float]) -> bool:
    """Latitude in [-90, 90] and longitude in [-180, 180], both present and finite"""
    if latitude is None or longitude is None:
        return False
    try:
        lat = float(latitude)
        lng = float(longitude)
    except (TypeError, ValueError):
        return False
    # NaN fails both comparisons
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0
