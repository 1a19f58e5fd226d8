"""
Orchestrators - entry points wiring services and repositories
"""

from .fleet_orchestrator import FleetOrchestrator, OrchestratorConfig
from .risk_batch_runner import RiskBatchRunner

__all__ = ["FleetOrchestrator", "OrchestratorConfig", "RiskBatchRunner"]
