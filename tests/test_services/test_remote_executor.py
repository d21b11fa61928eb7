"""Tests for the asyncssh-backed RemoteExecutor."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import asyncssh
import pytest

from steer.errors import RemoteExecutionError
from steer.models import Server
from steer.protocols import RemoteExecutor
from steer.services.pool import ConnectionPool
from steer.services.remote import SSHRemoteExecutor


@pytest.fixture
def conn() -> MagicMock:
    conn = MagicMock()
    conn.is_closed.return_value = False
    conn.run = AsyncMock()
    return conn


@pytest.fixture
def pool(conn: MagicMock) -> MagicMock:
    pool = MagicMock(spec=ConnectionPool)
    pool.get_connection = AsyncMock(return_value=conn)
    pool.remove_connection = AsyncMock()
    pool.close_all = AsyncMock()
    return pool


@pytest.fixture
def remote(pool: MagicMock) -> SSHRemoteExecutor:
    return SSHRemoteExecutor(pool)


def _completed(returncode, stdout="", stderr="") -> MagicMock:
    result = MagicMock()
    result.returncode = returncode
    result.stdout = stdout
    result.stderr = stderr
    return result


def test_satisfies_protocol(remote: SSHRemoteExecutor):
    assert isinstance(remote, RemoteExecutor)


@pytest.mark.asyncio
async def test_run_returns_status_and_output(remote, conn):
    conn.run.return_value = _completed(0, "up 3 days\n", "")

    result = await remote.run(Server("web1"), "uptime")

    conn.run.assert_awaited_once_with("uptime", check=False)
    assert result.success
    assert result.stdout == "up 3 days\n"


@pytest.mark.asyncio
async def test_run_nonzero_exit_is_not_an_exception(remote, conn):
    conn.run.return_value = _completed(2, "", b"ls: cannot access\n")

    result = await remote.run(Server("web1"), "ls /missing")

    assert result.returncode == 2
    assert result.stderr == "ls: cannot access\n"
    assert result.detail == "exited with status 2"


@pytest.mark.asyncio
async def test_run_without_exit_status(remote, conn):
    conn.run.return_value = _completed(None)
    result = await remote.run(Server("web1"), "sleep 100")
    assert result.returncode == -1


@pytest.mark.asyncio
async def test_run_with_sudo(remote, conn):
    conn.run.return_value = _completed(0)
    await remote.run(Server("web1"), "systemctl restart nginx", sudo=True)
    conn.run.assert_awaited_once_with(
        "sudo -n -- sh -c 'systemctl restart nginx'", check=False
    )


@pytest.mark.asyncio
async def test_connection_retried_once(remote, pool, conn):
    conn.run.return_value = _completed(0)
    pool.get_connection.side_effect = [ConnectionRefusedError("refused"), conn]

    result = await remote.run(Server("web1"), "true")

    assert result.success
    pool.remove_connection.assert_awaited_once_with("web1")


@pytest.mark.asyncio
async def test_connection_failure_after_retry(remote, pool):
    pool.get_connection.side_effect = OSError("No route to host")

    with pytest.raises(RemoteExecutionError, match="cannot connect: No route to host") as exc_info:
        await remote.run(Server("web1"), "true")
    assert exc_info.value.server == "web1"


@pytest.mark.asyncio
async def test_channel_error_is_transport_error(remote, conn):
    conn.run.side_effect = asyncssh.ChannelOpenError(2, "open failed")

    with pytest.raises(RemoteExecutionError, match="command failed to run"):
        await remote.run(Server("web1"), "true")


@pytest.mark.asyncio
async def test_put_uploads_with_sftp(remote, conn, tmp_path: Path):
    source = tmp_path / "app.conf"
    source.write_text("listen 80\n")
    sftp = AsyncMock()
    conn.start_sftp_client.return_value.__aenter__.return_value = sftp

    result = await remote.put(Server("web1"), str(source), "/etc/app.conf")

    sftp.put.assert_awaited_once_with(str(source), "/etc/app.conf")
    assert result.success
    assert "(10 bytes)" in result.stdout


@pytest.mark.asyncio
async def test_put_missing_source(remote, pool, tmp_path: Path):
    result = await remote.put(Server("web1"), str(tmp_path / "nope"), "/tmp/x")

    assert not result.success
    assert result.detail.startswith("Source file not found")
    pool.get_connection.assert_not_awaited()


@pytest.mark.asyncio
async def test_get_downloads_with_sftp(remote, conn, tmp_path: Path):
    sftp = AsyncMock()
    conn.start_sftp_client.return_value.__aenter__.return_value = sftp
    dest = tmp_path / "syslog.web1"

    result = await remote.get(Server("web1"), "/var/log/syslog", str(dest))

    sftp.get.assert_awaited_once_with("/var/log/syslog", str(dest))
    assert result.success


@pytest.mark.asyncio
async def test_get_failure(remote, conn, tmp_path: Path):
    sftp = AsyncMock()
    sftp.get.side_effect = asyncssh.SFTPNoSuchFile("No such file")
    conn.start_sftp_client.return_value.__aenter__.return_value = sftp

    with pytest.raises(RemoteExecutionError, match="download failed"):
        await remote.get(Server("web1"), "/missing", str(tmp_path / "x"))


@pytest.mark.asyncio
async def test_close_closes_pool(remote, pool):
    await remote.close()
    pool.close_all.assert_awaited_once()
