"""
Telemetry Rate Limiting Utilities
=================================

Per-vehicle minimum spacing between accepted position samples.
Samples arriving faster than the interval are dropped, not queued.
"""

import os
from threading import Lock
from time import time
from typing import Dict, Optional, Tuple

from settings import TELEMETRY

# vehicle_id -> time of the last accepted sample
_last_accepted: Dict[str, float] = {}
_store_lock = Lock()


def current_time() -> float:
    """Get current timestamp"""
    return time()


def is_rate_limiting_enabled() -> bool:
    """Check if rate limiting is enabled (can be disabled for testing)"""
    return os.getenv("SKIP_RATE_LIMIT", "").lower() not in ("1", "true", "yes")


def get_min_interval_seconds() -> float:
    """Minimum spacing between accepted samples of one vehicle"""
    return TELEMETRY.rate_limit_interval_seconds


def check_vehicle_rate_limit(
    vehicle_id: str,
    interval_seconds: Optional[float] = None,
    now: Optional[float] = None,
) -> Tuple[bool, float]:
    """
    Check (and record) a sample for a vehicle.

    Args:
        vehicle_id: Vehicle identifier
        interval_seconds: Override for the configured spacing
        now: Override for the current time (tests)

    Returns:
        Tuple of (allowed: bool, retry_after_seconds: float)

    Examples:
        >>> check_vehicle_rate_limit("V-1", now=100.0)
        (True, 0.0)
        >>> check_vehicle_rate_limit("V-1", now=101.0)
        (False, 2.0)
    """
    if not is_rate_limiting_enabled():
        return True, 0.0

    interval = get_min_interval_seconds() if interval_seconds is None else interval_seconds
    now = current_time() if now is None else now

    with _store_lock:
        last = _last_accepted.get(vehicle_id)
        if last is not None and now - last < interval:
            return False, round(interval - (now - last), 3)

        _last_accepted[vehicle_id] = now
        return True, 0.0


def forget_vehicle(vehicle_id: str) -> None:
    """Drop the spacing record of a vehicle"""
    with _store_lock:
        _last_accepted.pop(vehicle_id, None)


def reset_rate_limits() -> None:
    """Clear all spacing records (tests)"""
    with _store_lock:
        _last_accepted.clear()
