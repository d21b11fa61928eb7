"""Protocol interfaces for dependency inversion.

The orchestration core depends on these abstractions, not on the asyncssh
transport, so tests and extensions can supply their own implementations.

Usage Example:

    from steer.protocols import RemoteExecutor

    class RecordingExecutor:
        async def run(self, server, command, *, sudo=False):
            return StepResult(stdout=f"ran {command}")
        ...

    executor = TaskExecutor(RecordingExecutor(), locks, collector)
"""

from typing import Protocol, runtime_checkable

from steer.models import Server, StepResult


@runtime_checkable
class RemoteExecutor(Protocol):
    """Protocol for running steps on a remote server.

    A non-zero exit status is reported in the returned StepResult.
    Transport failures (cannot connect, SFTP failure) raise
    RemoteExecutionError. Retrying connection failures is the
    implementation's concern.
    """

    async def run(self, server: Server, command: str, *, sudo: bool = False) -> StepResult:
        """Run a shell command on ``server``.

        Args:
            server: Target server
            command: Shell command line
            sudo: Run through non-interactive sudo

        Returns:
            StepResult with exit status and captured output

        Raises:
            RemoteExecutionError: If the command could not be issued
        """
        ...

    async def put(self, server: Server, local_path: str, remote_path: str) -> StepResult:
        """Upload a local file to ``server``."""
        ...

    async def get(self, server: Server, remote_path: str, local_path: str) -> StepResult:
        """Download a file from ``server``."""
        ...

    async def close(self) -> None:
        """Release transport resources at the end of a run."""
        ...
