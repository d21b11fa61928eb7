"""asyncssh-backed RemoteExecutor."""

import logging
from pathlib import Path

import asyncssh

from steer.errors import RemoteExecutionError
from steer.models import Server, StepResult
from steer.services.pool import ConnectionPool
from steer.utils.shell import sudo_wrap

logger = logging.getLogger(__name__)


def _decode(stream: str | bytes | None) -> str:
    if stream is None:
        return ""
    if isinstance(stream, bytes):
        return stream.decode("utf-8", errors="replace")
    return stream


class SSHRemoteExecutor:
    """Runs commands and transfers files over pooled SSH connections."""

    def __init__(self, pool: ConnectionPool):
        self.pool = pool

    @classmethod
    def from_settings(cls, settings) -> "SSHRemoteExecutor":
        """Create an executor with a pool configured from Settings."""
        return cls(
            ConnectionPool(
                username=settings.ssh_user,
                connect_timeout=settings.connect_timeout,
                known_hosts=settings.known_hosts,
            )
        )

    async def _connection(self, server: Server) -> asyncssh.SSHClientConnection:
        """Get SSH connection with automatic one-time retry on failure.

        Raises:
            RemoteExecutionError: If connection fails after retry
        """
        try:
            return await self.pool.get_connection(server)
        except (OSError, asyncssh.Error) as first_error:
            logger.warning(
                "Connection to %s failed: %s, retrying after cleanup",
                server.name,
                first_error,
            )
        try:
            await self.pool.remove_connection(server.name)
            conn = await self.pool.get_connection(server)
            logger.info("Retry connection to %s succeeded", server.name)
            return conn
        except (OSError, asyncssh.Error) as retry_error:
            logger.error("Retry connection to %s failed: %s", server.name, retry_error)
            raise RemoteExecutionError(
                server.name, f"cannot connect: {retry_error}"
            ) from retry_error

    async def run(self, server: Server, command: str, *, sudo: bool = False) -> StepResult:
        """Run a shell command, returning its exit status and output."""
        conn = await self._connection(server)
        full_command = sudo_wrap(command) if sudo else command
        logger.debug("Running on %s: %s", server.name, full_command)

        try:
            result = await conn.run(full_command, check=False)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(server.name, f"command failed to run: {e}") from e

        returncode = result.returncode
        if returncode is None:
            # Killed by a signal or the channel closed without a status
            returncode = -1
        return StepResult(
            returncode=returncode,
            stdout=_decode(result.stdout),
            stderr=_decode(result.stderr),
        )

    async def put(self, server: Server, local_path: str, remote_path: str) -> StepResult:
        """Upload a file with SFTP."""
        source = Path(local_path)
        if not source.exists():
            return StepResult(returncode=None, error=f"Source file not found: {local_path}")

        conn = await self._connection(server)
        try:
            async with conn.start_sftp_client() as sftp:
                await sftp.put(local_path, remote_path)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(server.name, f"upload failed: {e}") from e

        size = source.stat().st_size
        return StepResult(stdout=f"Uploaded {local_path} -> {remote_path} ({size} bytes)\n")

    async def get(self, server: Server, remote_path: str, local_path: str) -> StepResult:
        """Download a file with SFTP."""
        conn = await self._connection(server)
        try:
            async with conn.start_sftp_client() as sftp:
                await sftp.get(remote_path, local_path)
        except (OSError, asyncssh.Error) as e:
            raise RemoteExecutionError(server.name, f"download failed: {e}") from e

        dest = Path(local_path)
        size = dest.stat().st_size if dest.exists() else 0
        return StepResult(stdout=f"Downloaded {remote_path} -> {local_path} ({size} bytes)\n")

    async def close(self) -> None:
        await self.pool.close_all()
