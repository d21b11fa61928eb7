"""Task and step base classes.

A task turns an ExecutionContext into an ordered list of steps for each
target. Steps are executed strictly in order; the first failing step ends
that target's run.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass

from steer.errors import TaskOptionError
from steer.models import ExecutionContext, Server, StepResult
from steer.protocols import RemoteExecutor


class Step(ABC):
    """One unit of remote work."""

    @abstractmethod
    async def run(self, remote: RemoteExecutor, server: Server, sudo: bool) -> StepResult:
        """Execute the step on ``server``."""

    @abstractmethod
    def describe(self) -> str:
        """Short description for progress notifications."""


@dataclass
class CommandStep(Step):
    """Run a shell command."""

    command: str

    async def run(self, remote, server, sudo):
        return await remote.run(server, self.command, sudo=sudo)

    def describe(self) -> str:
        return f"run: {self.command}"


@dataclass
class UploadStep(Step):
    """Copy a local file to the server."""

    local_path: str
    remote_path: str

    async def run(self, remote, server, sudo):
        return await remote.put(server, self.local_path, self.remote_path)

    def describe(self) -> str:
        return f"upload: {self.local_path} -> {self.remote_path}"


@dataclass
class DownloadStep(Step):
    """Copy a file from the server to the control host."""

    remote_path: str
    local_path: str

    async def run(self, remote, server, sudo):
        return await remote.get(server, self.remote_path, self.local_path)

    def describe(self) -> str:
        return f"download: {self.remote_path} -> {self.local_path}"


class Task(ABC):
    """Base class for named tasks.

    Subclasses set ``name`` and ``description`` and implement ``steps``.
    ``validate`` runs before any lock is taken.
    """

    name: str = ""
    description: str = ""
    required_options: tuple[str, ...] = ()
    uses_host_lock = True

    def validate(self, options: dict) -> None:
        """Check task options.

        Raises:
            TaskOptionError: If a required option is missing or not a string
        """
        for option in self.required_options:
            value = options.get(option)
            if value is None or value is True or value == "":
                raise TaskOptionError(f"Task '{self.name}' requires --{option} <value>")

    @abstractmethod
    def steps(self, server: Server, context: ExecutionContext) -> list[Step]:
        """Ordered steps to run on ``server``."""

    def get_name(self) -> str:
        return self.name or self.__class__.__name__.replace("Task", "").lower()
