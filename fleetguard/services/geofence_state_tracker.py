"""
Geofence State Tracker

Turns position updates into OUTSIDE -> INSIDE transition events per
(vehicle, geofence) pair, suppressing repeats while the vehicle stays
inside.

The remembered INSIDE/OUTSIDE state lives in a TransitionStateStore
owned by the service instance:

- InMemoryTransitionStateStore: process-local, lost on restart. After a
  restart a vehicle already inside a geofence produces one redundant
  transition; the arrival path absorbs it with its same-day duplicate
  check.
- RedisTransitionStateStore: shared between instances and restarts.

Updates for one vehicle are serialized with a per-vehicle lock, so
concurrent samples for different vehicles never contend on the same
state.

Example Usage:
    tracker = GeofenceStateTracker(InMemoryTransitionStateStore())
    events = tracker.on_position_update("V-1", 12.97, 77.59, geofences)
"""

from abc import ABC, abstractmethod
from threading import Lock
from typing import Dict, Iterable, List, Tuple

import structlog

from fleetguard.models import GeoPoint, Geofence, GeofenceState, TransitionEvent
from fleetguard.services.geo_math import distance_between

logger = structlog.get_logger()


class TransitionStateStore(ABC):
    """Keyed (vehicle_id, geofence_id) -> GeofenceState, default OUTSIDE"""

    LOCK_STRIPES = 64

    def __init__(self) -> None:
        self._locks = [Lock() for _ in range(self.LOCK_STRIPES)]

    def lock_for(self, vehicle_id: str) -> Lock:
        """Lock serializing updates of one vehicle (striped by hash)"""
        return self._locks[hash(vehicle_id) % self.LOCK_STRIPES]

    @abstractmethod
    def get(self, vehicle_id: str, geofence_id: str) -> GeofenceState:
        ...

    @abstractmethod
    def set(self, vehicle_id: str, geofence_id: str, state: GeofenceState) -> None:
        ...


class InMemoryTransitionStateStore(TransitionStateStore):
    """Process-local state store"""

    def __init__(self) -> None:
        super().__init__()
        self._state: Dict[Tuple[str, str], GeofenceState] = {}

    def get(self, vehicle_id: str, geofence_id: str) -> GeofenceState:
        return self._state.get((vehicle_id, geofence_id), GeofenceState.OUTSIDE)

    def set(self, vehicle_id: str, geofence_id: str, state: GeofenceState) -> None:
        self._state[(vehicle_id, geofence_id)] = state

    def reset(self) -> None:
        self._state.clear()


class RedisTransitionStateStore(TransitionStateStore):
    """
    Redis-backed state store, one hash per vehicle:

        <prefix>:<vehicle_id>  ->  {geofence_id: "INSIDE" | "OUTSIDE"}

    The hash expires after ttl_seconds without updates, which resets a
    parked vehicle to OUTSIDE.
    """

    def __init__(self, client, key_prefix: str, ttl_seconds: int = 86400) -> None:
        super().__init__()
        self.client = client
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, vehicle_id: str) -> str:
        return f"{self.key_prefix}:{vehicle_id}"

    def get(self, vehicle_id: str, geofence_id: str) -> GeofenceState:
        raw = self.client.hget(self._key(vehicle_id), geofence_id)
        if raw is None:
            return GeofenceState.OUTSIDE
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        try:
            return GeofenceState(raw)
        except ValueError:
            logger.warning(
                "geofence_state_corrupt",
                vehicle_id=vehicle_id,
                geofence_id=geofence_id,
                raw=raw,
            )
            return GeofenceState.OUTSIDE

    def set(self, vehicle_id: str, geofence_id: str, state: GeofenceState) -> None:
        key = self._key(vehicle_id)
        pipe = self.client.pipeline()
        pipe.hset(key, geofence_id, state.value)
        pipe.expire(key, self.ttl_seconds)
        pipe.execute()


class GeofenceStateTracker:
    """Per-vehicle, per-geofence INSIDE/OUTSIDE state machine"""

    def __init__(self, store: TransitionStateStore) -> None:
        self.store = store

    def on_position_update(
        self,
        vehicle_id: str,
        lat: float,
        lng: float,
        active_geofences: Iterable[Geofence],
    ) -> List[TransitionEvent]:
        """
        Evaluate one position against every active geofence.

        Returns one TransitionEvent per geofence the vehicle has just
        entered. Leaving a geofence always resets its state to OUTSIDE,
        even if the entry was never seen.
        """
        point = GeoPoint(lat=lat, lng=lng)
        events: List[TransitionEvent] = []

        with self.store.lock_for(vehicle_id):
            for geofence in active_geofences:
                if not geofence.is_active:
                    continue

                distance = distance_between(point, geofence.center)
                inside = distance <= geofence.radius_meters

                if not inside:
                    self.store.set(vehicle_id, geofence.geofence_id, GeofenceState.OUTSIDE)
                    continue

                previous = self.store.get(vehicle_id, geofence.geofence_id)
                if previous == GeofenceState.OUTSIDE:
                    self.store.set(vehicle_id, geofence.geofence_id, GeofenceState.INSIDE)
                    events.append(
                        TransitionEvent(
                            vehicle_id=vehicle_id,
                            geofence_id=geofence.geofence_id,
                            distance_meters=round(distance, 2),
                        )
                    )
                    logger.info(
                        "geofence_entered",
                        vehicle_id=vehicle_id,
                        geofence_id=geofence.geofence_id,
                        distance_m=round(distance, 1),
                    )

        return events

    def revert_entry(self, vehicle_id: str, geofence_id: str) -> None:
        """
        Undo an emitted entry whose arrival could not be stored, so the
        next inside sample emits it again.
        """
        with self.store.lock_for(vehicle_id):
            self.store.set(vehicle_id, geofence_id, GeofenceState.OUTSIDE)
        logger.info("geofence_entry_reverted", vehicle_id=vehicle_id, geofence_id=geofence_id)

    def state_of(self, vehicle_id: str, geofence_id: str) -> GeofenceState:
        return self.store.get(vehicle_id, geofence_id)
