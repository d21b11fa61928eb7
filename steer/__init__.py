"""steer: run a named task across a fleet of servers."""

__version__ = "0.1.0"

from steer.models import (
    Configuration,
    ExecutionContext,
    PerTargetResult,
    RunResult,
    Server,
    TargetCriteria,
)
from steer.services.orchestrator import Orchestrator, RunRequest

__all__ = [
    "__version__",
    "Configuration",
    "ExecutionContext",
    "Orchestrator",
    "PerTargetResult",
    "RunRequest",
    "RunResult",
    "Server",
    "TargetCriteria",
]
