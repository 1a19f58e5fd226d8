"""
Service Container for Dependency Injection
===========================================

Builds the FleetOrchestrator once per process from settings and hands it
to the routers. Tests swap it through set_orchestrator() / reset().
"""

import logging
from typing import Optional

from fleetguard.orchestrators import FleetOrchestrator, OrchestratorConfig, RiskBatchRunner
from fleetguard.repositories import (
    ArrivalLogRepository,
    FuelRepository,
    GeofenceRepository,
    TelemetryRepository,
    VehicleRepository,
)
from fleetguard.services import (
    GeofenceStateTracker,
    InMemoryTransitionStateStore,
    RedisTransitionStateStore,
    TransitionStateStore,
)

logger = logging.getLogger(__name__)


class ServiceContainer:
    """
    Centralized service container for dependency injection.

    Managed instances (lazy):
    - Settings
    - TransitionStateStore (Redis when REDIS_ENABLED, else in-memory)
    - FleetOrchestrator
    - RiskBatchRunner
    """

    _instance: Optional["ServiceContainer"] = None

    def __init__(self) -> None:
        """Initialize services lazily"""
        self._orchestrator: Optional[FleetOrchestrator] = None
        self._state_store: Optional[TransitionStateStore] = None
        self._batch_runner: Optional[RiskBatchRunner] = None

    @classmethod
    def get_instance(cls) -> "ServiceContainer":
        """Get singleton instance"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @property
    def settings(self):
        """Get settings instance"""
        from settings import settings

        return settings

    def _build_state_store(self) -> TransitionStateStore:
        redis_cfg = self.settings.redis
        if not redis_cfg.enabled:
            return InMemoryTransitionStateStore()

        import redis

        client = redis.Redis(
            host=redis_cfg.host,
            port=redis_cfg.port,
            password=redis_cfg.password,
            db=redis_cfg.db,
            ssl=redis_cfg.ssl,
            socket_timeout=5,
            socket_connect_timeout=5,
        )
        logger.info(f"✅ Geofence state in Redis at {redis_cfg.host}:{redis_cfg.port}")
        return RedisTransitionStateStore(
            client,
            key_prefix=redis_cfg.key_prefix,
            ttl_seconds=redis_cfg.state_ttl_seconds,
        )

    @property
    def state_store(self) -> TransitionStateStore:
        if self._state_store is None:
            self._state_store = self._build_state_store()
        return self._state_store

    @property
    def orchestrator(self) -> FleetOrchestrator:
        """FleetOrchestrator wired to MySQL repositories (lazy loaded)"""
        if self._orchestrator is None:
            db_config = self.settings.database.get_connection_dict()
            self._orchestrator = FleetOrchestrator(
                telemetry_repo=TelemetryRepository(db_config),
                geofence_repo=GeofenceRepository(db_config),
                arrival_repo=ArrivalLogRepository(db_config),
                fuel_repo=FuelRepository(db_config),
                vehicle_repo=VehicleRepository(db_config),
                tracker=GeofenceStateTracker(self.state_store),
                config=OrchestratorConfig.from_settings(self.settings),
            )
        return self._orchestrator

    def set_orchestrator(self, orchestrator: FleetOrchestrator) -> None:
        """Replace the orchestrator (tests)"""
        self._orchestrator = orchestrator

    @property
    def batch_runner(self) -> RiskBatchRunner:
        if self._batch_runner is None:
            self._batch_runner = RiskBatchRunner(
                self.orchestrator,
                interval_seconds=self.settings.risk.batch_interval_seconds,
            )
        return self._batch_runner

    @property
    def active_batch_runner(self) -> Optional[RiskBatchRunner]:
        """Batch runner if one was created, without creating it"""
        return self._batch_runner

    def reset(self) -> None:
        """Reset all services (useful for testing)"""
        self._orchestrator = None
        self._state_store = None
        self._batch_runner = None


# Global container instance (singleton pattern)
container = ServiceContainer.get_instance()


def get_container() -> ServiceContainer:
    """Get service container instance"""
    return ServiceContainer.get_instance()


def get_orchestrator() -> FleetOrchestrator:
    """FastAPI dependency returning the shared orchestrator"""
    return get_container().orchestrator
