"""Shared test fixtures."""

import asyncio
from pathlib import Path

import pytest

from steer.channels.base import NotificationChannel
from steer.config.settings import Settings
from steer.models import Configuration, Level, NotificationEvent, Server, StepResult
from steer.services.locking import LockManager
from steer.services.notify import NotificationDispatcher


class FakeRemote:
    """In-memory RemoteExecutor.

    Every server succeeds with ``"<name> ok"`` on stdout unless given a
    scripted result or error. ``delays`` overrides ``delay`` per server. Calls
    are recorded in order.
    """

    def __init__(self, delay: float = 0) -> None:
        self.delay = delay
        self.delays: dict[str, float] = {}
        self.results: dict[str, StepResult] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[str, str]] = []
        self.sudo_calls: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def _step(self, server: Server, description: str) -> StepResult:
        self.calls.append((server.name, description))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            delay = self.delays.get(server.name, self.delay)
            if delay:
                await asyncio.sleep(delay)
            if server.name in self.errors:
                raise self.errors[server.name]
            return self.results.get(server.name, StepResult(stdout=f"{server.name} ok\n"))
        finally:
            self.in_flight -= 1

    async def run(self, server, command, *, sudo=False):
        if sudo:
            self.sudo_calls.append(server.name)
        return await self._step(server, command)

    async def put(self, server, local_path, remote_path):
        return await self._step(server, f"put {local_path} {remote_path}")

    async def get(self, server, remote_path, local_path):
        return await self._step(server, f"get {remote_path} {local_path}")

    async def close(self):
        self.closed = True

    def servers_called(self) -> list[str]:
        return [name for name, _ in self.calls]


@pytest.fixture
def fake_remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Settings isolated from the environment."""
    return Settings(
        lock_path=tmp_path / "steer.lock",
        log_colors=False,
        mail_from="steer@control.example.com",
    )


@pytest.fixture
def local_locks(fake_remote: FakeRemote, tmp_path: Path) -> LockManager:
    """Lock manager with the local run lock only."""
    return LockManager(fake_remote, lock_path=tmp_path / "steer.lock", per_host=False)


@pytest.fixture
def web_cluster() -> Configuration:
    """web1, web2 (role web) and db1 (role db)."""
    return Configuration(
        [
            Server("web1", roles=("web",)),
            Server("web2", roles=("web",)),
            Server("db1", roles=("db",)),
        ],
        source="memory",
    )


@pytest.fixture
def remote_factory() -> type[FakeRemote]:
    return FakeRemote


class RecordingChannel(NotificationChannel):
    """Keeps every delivered event in memory."""

    def __init__(self, level: Level = Level.DEBUG, settings: Settings | None = None) -> None:
        super().__init__("memory", level, settings or Settings())
        self.events: list[NotificationEvent] = []
        self.flushed = 0
        self.closed = False

    async def deliver(self, event: NotificationEvent) -> None:
        self.events.append(event)

    async def flush(self) -> None:
        self.flushed += 1

    async def close(self) -> None:
        self.closed = True

    def messages(self, level: Level | None = None) -> list[str]:
        return [e.text() for e in self.events if level is None or e.level is level]


@pytest.fixture
def recorder() -> RecordingChannel:
    return RecordingChannel()


@pytest.fixture
def dispatcher(recorder: RecordingChannel) -> NotificationDispatcher:
    return NotificationDispatcher([recorder])


@pytest.fixture
def channel_factory() -> type[RecordingChannel]:
    return RecordingChannel
