"""Run-scope and per-host locks.

Two scopes are supported:

- LOCAL: a marker file on the control host, held for the whole run so two
  steer invocations on this machine never overlap.
- HOST: a marker file on each target, held only while that target's steps
  run so two invocations (from anywhere) never touch one host at once.

Markers hold one line, ``<user>@<host>:<pid> <ISO timestamp>``. A marker is
stale once it is older than ``stale_after`` or when its holder is a process on
this machine that no longer exists; stale markers are moved
aside and re-created exclusively, so two reclaimers cannot both win. Release is
idempotent and never raises, so cleanup code can call it unconditionally.
"""

import asyncio
import getpass
import logging
import os
import socket
import time
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path

import psutil

from steer.errors import LockAcquisitionError, LockHeldError, RemoteExecutionError
from steer.models import Server
from steer.protocols import RemoteExecutor
from steer.utils.shell import quote_path

logger = logging.getLogger(__name__)

# Exit status used by the remote acquire command when a marker already exists
HELD_STATUS = 75


class LockScope(Enum):
    LOCAL = "local"
    HOST = "host"


def current_holder() -> str:
    """Identity of this process: ``user@host:pid``."""
    try:
        user = getpass.getuser()
    except (KeyError, OSError):
        user = "unknown"
    return f"{user}@{socket.gethostname()}:{os.getpid()}"


def holder_is_dead(holder: str) -> bool:
    """Whether ``holder`` is provably no longer running.

    Only holders on this machine can be checked; remote holders are assumed
    alive.
    """
    _, _, location = holder.rpartition("@")
    host, _, pid_str = location.rpartition(":")
    if host != socket.gethostname() or not pid_str.isdigit():
        return False
    return not psutil.pid_exists(int(pid_str))


@dataclass(frozen=True)
class LockToken:
    """A lock marker, either ours or the one currently in the way."""

    scope: LockScope
    holder: str
    acquired_at: datetime
    stale_after: timedelta
    target: str | None = None

    def describe(self) -> str:
        if self.scope is LockScope.LOCAL:
            return "Local run lock"
        return f"Lock on {self.target}"

    def age(self, now: datetime | None = None) -> timedelta:
        return (now or datetime.now()) - self.acquired_at

    def is_stale(self, now: datetime | None = None) -> bool:
        """Whether the marker may be reclaimed."""
        return self.age(now) > self.stale_after or holder_is_dead(self.holder)

    def to_marker(self) -> str:
        return f"{self.holder} {self.acquired_at.isoformat(timespec='seconds')}"

    @classmethod
    def from_marker(
        cls,
        text: str,
        scope: LockScope,
        stale_after: timedelta,
        target: str | None = None,
    ) -> "LockToken | None":
        """Parse a marker line, or None if it is unreadable."""
        parts = text.strip().split()
        if len(parts) != 2:
            return None
        try:
            acquired_at = datetime.fromisoformat(parts[1])
        except ValueError:
            return None
        return cls(scope, parts[0], acquired_at, stale_after, target)


class LockManager:
    """Acquires and releases steer locks.

    Holds at most one token per (scope, server). Acquiring a disabled scope
    returns None and releasing it is a no-op, so callers need not check
    which scopes are enabled.
    """

    def __init__(
        self,
        remote: RemoteExecutor | None,
        lock_path: Path | str,
        remote_lock_path: str = "/tmp/steer.lock",
        stale_after: timedelta = timedelta(hours=1),
        wait: float = 0,
        local: bool = True,
        per_host: bool = True,
        poll_interval: float = 0.5,
    ) -> None:
        """Initialize lock manager.

        Args:
            remote: Executor used to manage per-host markers
            lock_path: Local run-scope marker path
            remote_lock_path: Marker path on each target
            stale_after: Age after which a marker may be reclaimed
            wait: Seconds to keep retrying a held local lock before failing
            local: Enable the LOCAL scope
            per_host: Enable the HOST scope
            poll_interval: Seconds between local lock retries
        """
        self.remote = remote
        self.lock_path = Path(lock_path)
        self.remote_lock_path = remote_lock_path
        self.stale_after = stale_after
        self.wait = wait
        self.local = local
        self.per_host = per_host
        self.poll_interval = poll_interval
        self.holder = current_holder()
        self._held: dict[tuple[LockScope, str | None], LockToken] = {}

    @classmethod
    def from_settings(cls, settings, remote: RemoteExecutor | None) -> "LockManager":
        return cls(
            remote,
            lock_path=settings.lock_path,
            remote_lock_path=settings.remote_lock_path,
            stale_after=timedelta(seconds=settings.lock_stale_seconds),
            wait=settings.lock_wait_seconds,
            local=settings.locks_local,
            per_host=settings.locks_remote,
        )

    def enabled(self, scope: LockScope) -> bool:
        return self.local if scope is LockScope.LOCAL else self.per_host

    def is_held(self, scope: LockScope, server: Server | None = None) -> bool:
        return self._key(scope, server) in self._held

    @staticmethod
    def _key(scope: LockScope, server: Server | None) -> tuple[LockScope, str | None]:
        if scope is LockScope.HOST:
            if server is None:
                raise ValueError("HOST scope needs a server")
            return scope, server.name
        return scope, None

    def _new_token(self, scope: LockScope, target: str | None = None) -> LockToken:
        return LockToken(
            scope,
            self.holder,
            datetime.now().replace(microsecond=0),
            self.stale_after,
            target,
        )

    async def acquire(self, scope: LockScope, server: Server | None = None) -> LockToken | None:
        """Acquire a lock, reclaiming a stale marker if one is in the way.

        Args:
            scope: LOCAL for the run, HOST for one target
            server: Target server (HOST scope only)

        Returns:
            Our token, or None if the scope is disabled

        Raises:
            LockHeldError: If a live marker is held by someone else
            LockAcquisitionError: If the marker cannot be written
        """
        key = self._key(scope, server)
        if not self.enabled(scope):
            return None
        if key in self._held:
            return self._held[key]

        if scope is LockScope.LOCAL:
            token = await self._acquire_local()
        else:
            token = await self._acquire_remote(server)

        self._held[key] = token
        logger.info("%s acquired by %s", token.describe(), token.holder)
        return token

    async def release(self, scope: LockScope, server: Server | None = None) -> None:
        """Release a lock. Releasing a lock that is not held is a no-op."""
        token = self._held.pop(self._key(scope, server), None)
        if token is None:
            return

        if scope is LockScope.LOCAL:
            self._release_local(token)
        else:
            await self._release_remote(token, server)
        logger.info("%s released", token.describe())

    @asynccontextmanager
    async def hold(
        self, scope: LockScope, server: Server | None = None
    ) -> AsyncIterator[LockToken | None]:
        """Hold a lock for the duration of a block, releasing on every exit."""
        token = await self.acquire(scope, server)
        try:
            yield token
        finally:
            await self.release(scope, server)

    # Local markers
    #
    # A marker is only ever created by hard-linking a fully written temp file
    # into place, which fails if the path exists. Reclaiming moves the stale
    # marker aside first and puts it back if it turns out not to be the one
    # judged stale, so competing reclaimers always race through the same
    # exclusive create.

    def _scratch_path(self, tag: str) -> Path:
        return self.lock_path.with_name(f".{self.lock_path.name}.{tag}.{uuid.uuid4().hex}")

    def _read_local_text(self) -> str | None:
        try:
            return self.lock_path.read_text()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LockAcquisitionError(f"Cannot read lock {self.lock_path}: {e}") from e

    def _read_local(self) -> LockToken | None:
        text = self._read_local_text()
        if text is None:
            return None
        return LockToken.from_marker(text, LockScope.LOCAL, self.stale_after)

    def _create_local(self, token: LockToken) -> bool:
        scratch = self._scratch_path("new")
        try:
            scratch.write_text(token.to_marker() + "\n")
            os.link(scratch, self.lock_path)
        except FileExistsError:
            return False
        except OSError as e:
            raise LockAcquisitionError(f"Cannot create lock {self.lock_path}: {e}") from e
        finally:
            scratch.unlink(missing_ok=True)
        return True

    def _break_stale_local(self, stale_text: str) -> None:
        """Remove the marker if it still reads ``stale_text``."""
        aside = self._scratch_path("stale")
        try:
            os.rename(self.lock_path, aside)
        except FileNotFoundError:
            return
        except OSError as e:
            raise LockAcquisitionError(f"Cannot reclaim lock {self.lock_path}: {e}") from e

        try:
            if aside.read_text() != stale_text:
                logger.warning("Lock %s changed hands while reclaiming it", self.lock_path)
                try:
                    os.link(aside, self.lock_path)
                except FileExistsError:
                    logger.warning("Lock %s was re-created before it could be restored", self.lock_path)
        except OSError as e:
            raise LockAcquisitionError(f"Cannot reclaim lock {self.lock_path}: {e}") from e
        finally:
            aside.unlink(missing_ok=True)

    async def _acquire_local(self) -> LockToken:
        deadline = time.monotonic() + self.wait
        while True:
            token = self._new_token(LockScope.LOCAL)
            if self._create_local(token):
                return token

            text = self._read_local_text()
            if text is None:
                continue
            existing = LockToken.from_marker(text, LockScope.LOCAL, self.stale_after)
            if existing is None or existing.is_stale():
                logger.warning(
                    "Reclaiming stale lock %s (%s)",
                    self.lock_path,
                    existing.to_marker() if existing else "unreadable",
                )
                self._break_stale_local(text)
                continue

            if time.monotonic() >= deadline:
                raise LockHeldError(existing)
            logger.debug("Waiting for lock %s held by %s", self.lock_path, existing.holder)
            await asyncio.sleep(self.poll_interval)

    def _release_local(self, token: LockToken) -> None:
        try:
            current = self._read_local()
        except LockAcquisitionError as e:
            logger.warning("Cannot verify lock before release: %s", e)
            return
        if current is None:
            logger.warning("Lock %s vanished before release", self.lock_path)
            return
        if current.holder != token.holder:
            logger.warning(
                "Lock %s was reclaimed by %s, leaving it in place",
                self.lock_path,
                current.holder,
            )
            return
        self.lock_path.unlink(missing_ok=True)

    # Remote markers

    async def _acquire_remote(self, server: Server) -> LockToken:
        if self.remote is None:
            raise LockAcquisitionError(f"No remote executor to lock {server.name}")

        token = self._new_token(LockScope.HOST, server.name)
        path = quote_path(self.remote_lock_path)
        marker = quote_path(token.to_marker())
        create = (
            f"if ( set -C; printf '%s\\n' {marker} > {path} ) 2>/dev/null; then exit 0; fi; "
            f"cat {path}; exit {HELD_STATUS}"
        )
        try:
            result = await self.remote.run(server, create)
            if result.success:
                return token
            if result.returncode != HELD_STATUS:
                raise LockAcquisitionError(f"Cannot lock {server.name}: {result.detail}")

            existing = LockToken.from_marker(
                result.stdout, LockScope.HOST, self.stale_after, server.name
            )
            if existing is not None and not existing.is_stale():
                raise LockHeldError(existing)

            logger.warning(
                "Reclaiming stale lock on %s (%s)",
                server.name,
                existing.to_marker() if existing else "unreadable",
            )
            # Move the marker aside, restore it if it is no longer the stale one,
            # then retry the exclusive create once
            stale = quote_path(result.stdout.strip())
            reclaim = (
                f'aside={path}.$$; if mv {path} "$aside" 2>/dev/null; then '
                f'if [ "$(cat "$aside")" != {stale} ]; then ln "$aside" {path} 2>/dev/null; fi; '
                f'rm -f "$aside"; fi; {create}'
            )
            result = await self.remote.run(server, reclaim)
            if result.success:
                return token
            if result.returncode != HELD_STATUS:
                raise LockAcquisitionError(
                    f"Cannot reclaim lock on {server.name}: {result.detail}"
                )
            winner = LockToken.from_marker(
                result.stdout, LockScope.HOST, self.stale_after, server.name
            )
            if winner is not None and not winner.is_stale():
                raise LockHeldError(winner)
            raise LockAcquisitionError(f"Cannot reclaim lock on {server.name}: lost a race")
        except RemoteExecutionError as e:
            raise LockAcquisitionError(f"Cannot lock {server.name}: {e.detail}") from e

    async def _release_remote(self, token: LockToken, server: Server) -> None:
        path = quote_path(self.remote_lock_path)
        marker = quote_path(token.to_marker())
        command = f'if [ "$(cat {path} 2>/dev/null)" = {marker} ]; then rm -f {path}; fi'
        try:
            result = await self.remote.run(server, command)
        except RemoteExecutionError as e:
            logger.warning("Could not release lock on %s: %s", server.name, e.detail)
            return
        if not result.success:
            logger.warning("Could not release lock on %s: %s", server.name, result.detail)
