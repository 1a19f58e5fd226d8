"""
Idle Detector

Counts idle samples (ignition on, speed at or below the idle speed
threshold) inside a trailing time window and flags the vehicle when the
count exceeds a threshold.

Two windows are used by the risk engine, each with its own threshold:
    per-event risk:   24h window, more than 50 idle samples
    periodic batch:   24h window, more than 60 idle samples
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Iterable, Tuple

from fleetguard.models import PositionSample


@dataclass
class IdleConfig:
    """Configuration for one idle window"""

    window_hours: int = 24
    sample_threshold: int = 50
    idle_speed_threshold_kmh: float = 0.0


class IdleDetector:
    def __init__(self, config: IdleConfig = None):
        self.config = config or IdleConfig()

    def is_idle_sample(self, sample: PositionSample) -> bool:
        speed = sample.speed or 0.0
        return bool(sample.ignition) and speed <= self.config.idle_speed_threshold_kmh

    def count_idle_samples(
        self,
        samples: Iterable[PositionSample],
        window_start: datetime,
        window_end: datetime,
    ) -> int:
        """Idle samples with window_start <= timestamp <= window_end"""
        count = 0
        for sample in samples:
            if sample.timestamp is None:
                continue
            if window_start <= sample.timestamp <= window_end and self.is_idle_sample(sample):
                count += 1
        return count

    def is_excessive(self, count: int, threshold: int = None) -> bool:
        if threshold is None:
            threshold = self.config.sample_threshold
        return count > threshold

    def window_ending_at(self, window_end: datetime) -> Tuple[datetime, datetime]:
        return window_end - timedelta(hours=self.config.window_hours), window_end
