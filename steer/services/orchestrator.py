"""The steer orchestrator: one task run from configuration to verdict.

A run moves through these states::

    IDLE -> CONFIG_LOADED -> TARGETS_RESOLVED -> LOCKED -> EXECUTING
         -> UNLOCKED -> REPORTED -> SUCCESS | FAILURE

Failures before LOCKED abort the run without contacting any host. Once the
run lock is held it is released on every exit path, including unexpected
errors, which are re-raised as FatalError after the release.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum

from steer.config.loader import load_configuration
from steer.errors import FatalError, SteerError, UnknownExtensionError, UnknownTaskError
from steer.models import (
    AbortPolicy,
    Configuration,
    ExecutionContext,
    ExecutionMode,
    Outcome,
    RunResult,
    Server,
    TargetCriteria,
)
from steer.models.context import OptionValue
from steer.protocols import RemoteExecutor
from steer.registry import Registries
from steer.services.executor import TaskExecutor
from steer.services.locking import LockManager, LockScope
from steer.services.notify import NotificationDispatcher
from steer.services.output import OutputCollector, Stream
from steer.services.report import format_output
from steer.services.resolver import resolve_targets
from steer.tasks.base import Task

logger = logging.getLogger(__name__)


class RunState(Enum):
    IDLE = "idle"
    CONFIG_LOADED = "config_loaded"
    TARGETS_RESOLVED = "targets_resolved"
    LOCKED = "locked"
    EXECUTING = "executing"
    UNLOCKED = "unlocked"
    REPORTED = "reported"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass
class RunRequest:
    """One invocation: which task, where, and how."""

    task: str
    config_uri: str | None = None
    configuration: Configuration | None = None
    criteria: TargetCriteria = field(default_factory=TargetCriteria)
    mode: ExecutionMode = ExecutionMode.SERIES
    abort_policy: AbortPolicy = AbortPolicy.STOP
    sudo: bool = False
    options: dict[str, OptionValue] = field(default_factory=dict)
    capture: frozenset[Stream] = field(default_factory=frozenset)
    max_concurrency: int = 10


class Orchestrator:
    """Composes resolution, locking, execution and notification into a run."""

    def __init__(
        self,
        registries: Registries,
        remote: RemoteExecutor,
        locks: LockManager,
        dispatcher: NotificationDispatcher | None = None,
        step_timeout: float | None = None,
    ) -> None:
        self.registries = registries
        self.remote = remote
        self.locks = locks
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.step_timeout = step_timeout
        self.state = RunState.IDLE

    @classmethod
    def from_settings(
        cls,
        settings,
        registries: Registries,
        dispatcher: NotificationDispatcher | None = None,
    ) -> "Orchestrator":
        """Create an orchestrator with the SSH transport configured from Settings."""
        from steer.services.remote import SSHRemoteExecutor

        remote = SSHRemoteExecutor.from_settings(settings)
        return cls(
            registries,
            remote,
            LockManager.from_settings(settings, remote),
            dispatcher,
            step_timeout=settings.step_timeout or None,
        )

    def _transition(self, state: RunState) -> None:
        logger.debug("Run state %s -> %s", self.state.value, state.value)
        self.state = state

    def load_configuration(self, uri: str) -> Configuration:
        """Load a configuration through the loader registry."""
        return load_configuration(uri, self.registries.loaders)

    def lookup_task(self, name: str) -> Task:
        """Find a registered task.

        Raises:
            UnknownTaskError: If no task has that name
        """
        try:
            return self.registries.tasks.lookup(name)
        except UnknownExtensionError:
            raise UnknownTaskError(name, self.registries.tasks.keys()) from None

    async def steer(self, request: RunRequest) -> RunResult:
        """Run a task across its targets and report the outcome.

        Returns:
            RunResult with one entry per resolved target

        Raises:
            ConfigLoadError, TargetResolutionError, TaskError,
            LockAcquisitionError: Setup failed; no host was contacted
            FatalError: Unexpected error during execution (locks released)
        """
        self.state = RunState.IDLE
        await self.dispatcher.open()
        try:
            return await self._steer(request)
        finally:
            await self.dispatcher.close()
            await self.remote.close()

    async def _steer(self, request: RunRequest) -> RunResult:
        try:
            task, targets = self._prepare(request)
            await self.locks.acquire(LockScope.LOCAL)
        except SteerError as e:
            logger.error("Run setup failed: %s", e)
            await self.dispatcher.fatal(str(e))
            self._transition(RunState.FAILURE)
            raise
        self._transition(RunState.LOCKED)

        context = ExecutionContext(
            task=request.task,
            targets=tuple(targets),
            mode=request.mode,
            abort_policy=request.abort_policy,
            sudo=request.sudo,
            options=dict(request.options),
            max_concurrency=request.max_concurrency,
        )
        collector = OutputCollector(capture=request.capture)
        executor = TaskExecutor(
            self.remote,
            self.locks,
            collector,
            self.dispatcher,
            step_timeout=self.step_timeout,
        )

        failure: Exception | None = None
        try:
            self._transition(RunState.EXECUTING)
            await self.dispatcher.info(
                f"Starting {request.task} on {len(targets)} server(s) "
                f"({context.mode.value}): {', '.join(s.name for s in targets)}"
            )
            results = await executor.execute(task, context)
        except Exception as e:
            logger.exception("Unexpected error while running %s", request.task)
            failure = e
        finally:
            await self.locks.release(LockScope.LOCAL)
            self._transition(RunState.UNLOCKED)

        if failure is not None:
            partial = RunResult(task=request.task, results=executor.partial_results(context))
            await self.dispatcher.fatal(f"{request.task} aborted: {failure}")
            await self.dispatcher.error(partial.summary())
            self._transition(RunState.FAILURE)
            raise FatalError(f"{request.task} aborted: {failure}", result=partial) from failure

        result = RunResult(task=request.task, results=results)
        await self._report(result, bool(request.capture))
        self._transition(RunState.SUCCESS if result.success else RunState.FAILURE)
        return result

    def _prepare(self, request: RunRequest) -> tuple[Task, list[Server]]:
        configuration = request.configuration
        if configuration is None and request.config_uri:
            configuration = self.load_configuration(request.config_uri)
        self._transition(RunState.CONFIG_LOADED)

        task = self.lookup_task(request.task)
        task.validate(request.options)

        targets = resolve_targets(request.criteria, configuration)
        self._transition(RunState.TARGETS_RESOLVED)
        return task, targets

    async def _report(self, result: RunResult, captured: bool) -> None:
        if captured:
            output = format_output(result)
            if output:
                await self.dispatcher.info(output)
        if result.success:
            await self.dispatcher.info(result.summary())
        else:
            failed = [
                r.server.name for r in result.results if r.outcome is Outcome.FAILURE
            ]
            await self.dispatcher.error(f"{result.summary()}; failed: {', '.join(failed)}")
        self._transition(RunState.REPORTED)
