"""Pipeline services: consolidation, validation, orchestration."""

from ecadflow.core.services.consolidation import (
    ConsolidationEngine,
    FlagThenLowestSourcePolicy,
    FlagThenRecencyPolicy,
    get_policy,
)
from ecadflow.core.services.orchestrator import ParallelOrchestrator
from ecadflow.core.services.pipeline import build_validator, run_pipeline
from ecadflow.core.services.summary import FileError, RunSummary, StationError, StationResult

__all__ = [
    "ConsolidationEngine",
    "FileError",
    "FlagThenLowestSourcePolicy",
    "FlagThenRecencyPolicy",
    "ParallelOrchestrator",
    "RunSummary",
    "StationError",
    "StationResult",
    "build_validator",
    "get_policy",
    "run_pipeline",
]
