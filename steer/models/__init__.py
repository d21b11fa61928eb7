"""Data models for steer."""

from steer.models.configuration import Configuration
from steer.models.context import (
    AbortPolicy,
    ExecutionContext,
    ExecutionMode,
    TargetCriteria,
)
from steer.models.notification import Level, NotificationEvent
from steer.models.result import (
    Outcome,
    PerTargetResult,
    RunResult,
    StepResult,
)
from steer.models.server import Server

__all__ = [
    "AbortPolicy",
    "Configuration",
    "ExecutionContext",
    "ExecutionMode",
    "Level",
    "NotificationEvent",
    "Outcome",
    "PerTargetResult",
    "RunResult",
    "Server",
    "StepResult",
    "TargetCriteria",
]
