"""Execution result models."""

from dataclasses import dataclass, field
from enum import Enum

from steer.models.server import Server


class Outcome(Enum):
    """Per-target outcome."""

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


@dataclass
class StepResult:
    """Result of one remote step."""

    returncode: int | None = 0
    stdout: str = ""
    stderr: str = ""
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.error is None and self.returncode == 0

    @property
    def detail(self) -> str:
        """Human-readable failure reason."""
        if self.error:
            return self.error
        if self.returncode != 0:
            return f"exited with status {self.returncode}"
        return ""


@dataclass
class PerTargetResult:
    """Outcome of a task on one target."""

    server: Server
    outcome: Outcome
    stdout: str | None = None
    stderr: str | None = None
    error: str | None = None
    duration: float = 0.0

    @property
    def success(self) -> bool:
        return self.outcome is Outcome.SUCCESS


@dataclass
class RunResult:
    """Outcome of a whole run, one entry per resolved target."""

    task: str
    results: list[PerTargetResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return all(r.success for r in self.results)

    @property
    def exit_code(self) -> int:
        return 0 if self.success else 1

    def count(self, outcome: Outcome) -> int:
        return sum(1 for r in self.results if r.outcome is outcome)

    def summary(self) -> str:
        """One-line counts summary."""
        return (
            f"{self.task}: {self.count(Outcome.SUCCESS)} succeeded, "
            f"{self.count(Outcome.FAILURE)} failed, "
            f"{self.count(Outcome.SKIPPED)} skipped "
            f"({len(self.results)} targets)"
        )
