"""
FleetGuard Settings
Centralized configuration from environment variables

All tunables of the risk engine (rate limiting, mileage tolerance,
idle thresholds, risk batch) live here so they can be changed per
deployment without touching code.
Sensitive data MUST come from environment variables.
"""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _get_env(key: str, default: str = "") -> str:
    return os.getenv(key, default)


def _get_env_int(key: str, default: int) -> int:
    return int(os.getenv(key, str(default)))


def _get_env_float(key: str, default: float) -> float:
    return float(os.getenv(key, str(default)))


def _get_env_bool(key: str, default: bool = False) -> bool:
    return os.getenv(key, str(default)).lower() in ("true", "1", "yes")


def _get_env_list(key: str, default: str = "", separator: str = ",") -> List[str]:
    value = os.getenv(key, default)
    return [item.strip() for item in value.split(separator) if item.strip()]


# =============================================================================
# DATABASE SETTINGS
# =============================================================================
@dataclass
class DatabaseSettings:
    """MySQL database configuration - ALL from environment."""

    host: str = field(default_factory=lambda: _get_env("MYSQL_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("MYSQL_PORT", 3306))
    user: str = field(default_factory=lambda: _get_env("MYSQL_USER", "fleetguard"))
    password: str = field(default_factory=lambda: _get_env("MYSQL_PASSWORD", ""))
    database: str = field(
        default_factory=lambda: _get_env("MYSQL_DATABASE", "fleetguard")
    )
    charset: str = "utf8mb4"

    # Bounded storage timeouts (seconds). A timeout is a transient failure.
    connect_timeout: int = field(
        default_factory=lambda: _get_env_int("MYSQL_CONNECT_TIMEOUT", 5)
    )
    read_timeout: int = field(
        default_factory=lambda: _get_env_int("MYSQL_READ_TIMEOUT", 10)
    )
    write_timeout: int = field(
        default_factory=lambda: _get_env_int("MYSQL_WRITE_TIMEOUT", 10)
    )

    def get_connection_dict(self) -> Dict:
        """Return connection dictionary for pymysql."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "password": self.password,
            "database": self.database,
            "charset": self.charset,
            "autocommit": True,
            "connect_timeout": self.connect_timeout,
            "read_timeout": self.read_timeout,
            "write_timeout": self.write_timeout,
        }


# =============================================================================
# REDIS SETTINGS
# =============================================================================
@dataclass
class RedisSettings:
    """
    Redis configuration for the shared geofence transition state.

    Disabled by default: a single instance keeps the state in process.
    Enable it when running more than one API instance so that every
    instance sees the same INSIDE/OUTSIDE state per vehicle.
    """

    enabled: bool = field(default_factory=lambda: _get_env_bool("REDIS_ENABLED", False))
    host: str = field(default_factory=lambda: _get_env("REDIS_HOST", "localhost"))
    port: int = field(default_factory=lambda: _get_env_int("REDIS_PORT", 6379))
    password: Optional[str] = field(
        default_factory=lambda: _get_env("REDIS_PASSWORD") or None
    )
    ssl: bool = field(default_factory=lambda: _get_env_bool("REDIS_SSL", False))
    db: int = field(default_factory=lambda: _get_env_int("REDIS_DB", 0))

    key_prefix: str = field(
        default_factory=lambda: _get_env(
            "REDIS_STATE_PREFIX", "fleetguard:geofence_state"
        )
    )
    state_ttl_seconds: int = field(
        default_factory=lambda: _get_env_int("REDIS_STATE_TTL", 86400)
    )


# =============================================================================
# TELEMETRY INGEST SETTINGS
# =============================================================================
@dataclass
class TelemetrySettings:
    """Position ingest validation and per-vehicle spacing."""

    rate_limit_interval_seconds: float = field(
        default_factory=lambda: _get_env_float("TELEMETRY_MIN_INTERVAL_SECONDS", 3.0)
    )
    max_speed_kmh: float = field(
        default_factory=lambda: _get_env_float("TELEMETRY_MAX_SPEED_KMH", 180.0)
    )


# =============================================================================
# MILEAGE / FUEL THEFT SETTINGS
# =============================================================================
@dataclass
class MileageSettings:
    """Fuel mileage anomaly configuration."""

    # Allowed drop below expected mileage before flagging theft (percent)
    tolerance_percent: float = field(
        default_factory=lambda: _get_env_float("MILEAGE_TOLERANCE_PCT", 15.0)
    )
    # Alternative fixed rule: actual < expected * ratio
    theft_ratio: float = field(
        default_factory=lambda: _get_env_float("MILEAGE_THEFT_RATIO", 0.5)
    )
    # "tolerance" or "ratio" - rule used on each new fuel entry
    theft_rule: str = field(
        default_factory=lambda: _get_env("MILEAGE_THEFT_RULE", "tolerance")
    )
    # Batch risk: low mileage when actual < expected * ratio
    low_mileage_ratio: float = field(
        default_factory=lambda: _get_env_float("LOW_MILEAGE_RATIO", 0.7)
    )


# =============================================================================
# IDLE SETTINGS
# =============================================================================
@dataclass
class IdleSettings:
    """Idle sample counting thresholds."""

    idle_speed_threshold_kmh: float = field(
        default_factory=lambda: _get_env_float("IDLE_SPEED_THRESHOLD_KMH", 0.0)
    )

    # Per-event risk assessment
    event_window_hours: int = field(
        default_factory=lambda: _get_env_int("IDLE_EVENT_WINDOW_HOURS", 24)
    )
    event_sample_threshold: int = field(
        default_factory=lambda: _get_env_int("IDLE_EVENT_THRESHOLD", 50)
    )

    # Periodic batch risk
    batch_window_hours: int = field(
        default_factory=lambda: _get_env_int("IDLE_BATCH_WINDOW_HOURS", 24)
    )
    batch_sample_threshold: int = field(
        default_factory=lambda: _get_env_int("IDLE_BATCH_THRESHOLD", 60)
    )


# =============================================================================
# RISK SETTINGS
# =============================================================================
@dataclass
class RiskSettings:
    """Risk aggregation and batch scheduling."""

    event_late_delay_minutes: int = field(
        default_factory=lambda: _get_env_int("RISK_EVENT_LATE_DELAY_MINUTES", 10)
    )
    sla_lookback_days: int = field(
        default_factory=lambda: _get_env_int("RISK_SLA_LOOKBACK_DAYS", 7)
    )
    batch_enabled: bool = field(
        default_factory=lambda: _get_env_bool("RISK_BATCH_ENABLED", False)
    )
    batch_interval_seconds: int = field(
        default_factory=lambda: _get_env_int("RISK_BATCH_INTERVAL_SECONDS", 3600)
    )


# =============================================================================
# APPLICATION SETTINGS
# =============================================================================
@dataclass
class AppSettings:
    """General application settings."""

    debug: bool = field(default_factory=lambda: _get_env_bool("DEBUG", False))
    log_level: str = field(default_factory=lambda: _get_env("LOG_LEVEL", "INFO"))
    log_to_file: bool = field(
        default_factory=lambda: _get_env_bool("LOG_TO_FILE", False)
    )
    version: str = "1.0.0"

    # Wall clock used for schedules (expected_entry_time) and "today"
    system_tz: str = field(default_factory=lambda: _get_env("SYSTEM_TZ", "UTC"))

    allowed_origins: List[str] = field(
        default_factory=lambda: _get_env_list(
            "ALLOWED_ORIGINS", "http://localhost:3000,http://localhost:5173"
        )
    )


# =============================================================================
# GLOBAL SETTINGS INSTANCE
# =============================================================================
class Settings:
    """Global settings container - singleton pattern."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialize()
        return cls._instance

    def _initialize(self):
        """Initialize all settings."""
        self.database = DatabaseSettings()
        self.redis = RedisSettings()
        self.telemetry = TelemetrySettings()
        self.mileage = MileageSettings()
        self.idle = IdleSettings()
        self.risk = RiskSettings()
        self.app = AppSettings()

    def validate(self) -> List[str]:
        """Validate settings and return list of warnings."""
        warnings = []

        if not self.database.password:
            warnings.append("MYSQL_PASSWORD not set")

        if not self.redis.enabled:
            warnings.append(
                "Redis disabled - geofence state is process-local "
                "(one redundant arrival per vehicle/geofence possible after restart)"
            )

        if self.mileage.theft_rule not in ("tolerance", "ratio"):
            warnings.append(
                f"Unknown MILEAGE_THEFT_RULE '{self.mileage.theft_rule}' - "
                "falling back to 'tolerance'"
            )

        return warnings

    def to_dict(self) -> Dict:
        """Export settings as dictionary (for debugging, excludes secrets)."""
        return {
            "version": self.app.version,
            "debug": self.app.debug,
            "database_host": self.database.host,
            "redis_enabled": self.redis.enabled,
            "redis_host": self.redis.host if self.redis.enabled else None,
            "rate_limit_interval_seconds": self.telemetry.rate_limit_interval_seconds,
            "theft_rule": self.mileage.theft_rule,
            "risk_batch_enabled": self.risk.batch_enabled,
        }


# Create global settings instance
settings = Settings()


# Sections imported directly by the orchestrator and the rate limiter
DATABASE = settings.database
TELEMETRY = settings.telemetry
