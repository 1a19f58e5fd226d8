"""FleetGuard - geofence SLA, fuel mileage and risk engine."""

__version__ = "1.0.0"
