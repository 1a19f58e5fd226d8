"""
Risk Batch Runner

Periodic job re-evaluating batch risk for the whole fleet. Started from
the FastAPI lifespan when RISK_BATCH_ENABLED is set. Each run executes
FleetOrchestrator.run_risk_batch in the default executor so the event
loop is never blocked by datastore I/O.
"""

import asyncio
import logging
from typing import Optional

from fleetguard.models import RiskBatchResult

logger = logging.getLogger(__name__)


class RiskBatchRunner:
    """asyncio loop around FleetOrchestrator.run_risk_batch"""

    def __init__(self, orchestrator, interval_seconds: float = 3600):
        self.orchestrator = orchestrator
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None
        self.last_result: Optional[RiskBatchResult] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> Optional[RiskBatchResult]:
        """One batch run; a failed run is logged and returns None."""
        loop = asyncio.get_running_loop()
        try:
            result = await loop.run_in_executor(None, self.orchestrator.run_risk_batch)
        except Exception as e:
            logger.error(f"Risk batch run failed: {e}", exc_info=True)
            return None

        self.last_result = result
        logger.info(
            f"📊 Risk batch done: {result.vehicles_evaluated} vehicles, "
            f"{len(result.errors)} errors"
        )
        return result

    async def _loop(self) -> None:
        while True:
            await self.run_once()
            await asyncio.sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop())
        logger.info(f"✅ Risk batch runner started (every {self.interval_seconds}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Risk batch runner stopped")
