"""Run request and execution context models."""

from dataclasses import dataclass, field
from enum import Enum

from steer.models.server import Server

OptionValue = bool | str


class ExecutionMode(Enum):
    """How targets are scheduled relative to each other."""

    SERIES = "series"
    PARALLEL = "parallel"


class AbortPolicy(Enum):
    """What a per-target failure does to targets not yet started."""

    STOP = "stop"
    CONTINUE = "continue"


@dataclass(frozen=True)
class TargetCriteria:
    """Which servers a run should act on.

    Empty ``servers`` and ``roles`` means every configured server.
    """

    servers: tuple[str, ...] = ()
    roles: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.servers and not self.roles


@dataclass(frozen=True)
class ExecutionContext:
    """Everything the executor needs to run one task."""

    task: str
    targets: tuple[Server, ...]
    mode: ExecutionMode = ExecutionMode.SERIES
    abort_policy: AbortPolicy = AbortPolicy.STOP
    sudo: bool = False
    options: dict[str, OptionValue] = field(default_factory=dict)
    max_concurrency: int = 10

    def option(self, name: str, default: OptionValue | None = None) -> OptionValue | None:
        """Get a task-specific option by name."""
        return self.options.get(name, default)
