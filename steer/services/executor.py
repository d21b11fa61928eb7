"""Runs a task's steps against every resolved target.

Series mode processes targets in order. Parallel mode runs up to
``max_concurrency`` targets at once with an asyncio.Semaphore. In both modes
the returned results follow the resolved target order, one entry per target.

With AbortPolicy.STOP, the first failure stops new targets from starting.
Targets already running finish; targets never started are recorded as
SKIPPED.

An unexpected exception in one target also stops new targets from starting,
but is only re-raised once every running target has settled, so no remote
step outlives the call.
"""

import asyncio
import logging
import time
from contextlib import nullcontext

from steer.errors import LockAcquisitionError, RemoteExecutionError
from steer.models import (
    AbortPolicy,
    ExecutionContext,
    ExecutionMode,
    Outcome,
    PerTargetResult,
    Server,
)
from steer.protocols import RemoteExecutor
from steer.services.locking import LockManager, LockScope
from steer.services.notify import NotificationDispatcher
from steer.services.output import OutputCollector, Stream
from steer.tasks.base import Task

logger = logging.getLogger(__name__)


class TaskExecutor:
    """Applies a task to targets in series or in parallel."""

    def __init__(
        self,
        remote: RemoteExecutor,
        locks: LockManager,
        collector: OutputCollector,
        dispatcher: NotificationDispatcher | None = None,
        step_timeout: float | None = None,
    ) -> None:
        """Initialize executor.

        Args:
            remote: Transport used to run steps
            locks: Lock manager for per-host locks
            collector: Receives captured output
            dispatcher: Receives per-target progress events
            step_timeout: Seconds before a step counts as failed (None: no limit)
        """
        self.remote = remote
        self.locks = locks
        self.collector = collector
        self.dispatcher = dispatcher or NotificationDispatcher()
        self.step_timeout = step_timeout
        self._settled: dict[str, PerTargetResult] = {}

    async def execute(self, task: Task, context: ExecutionContext) -> list[PerTargetResult]:
        """Run ``task`` on every target in ``context``.

        Returns:
            One PerTargetResult per target, in target order

        Raises:
            Exception: Whatever a target raised unexpectedly, once no target
                is still running. ``partial_results`` then describes the run.
        """
        logger.info(
            "Executing %s on %d targets (%s, abort=%s)",
            context.task,
            len(context.targets),
            context.mode.value,
            context.abort_policy.value,
        )
        self._settled = {}
        if context.mode is ExecutionMode.PARALLEL:
            return await self._run_parallel(task, context)
        return await self._run_series(task, context)

    def partial_results(self, context: ExecutionContext) -> list[PerTargetResult]:
        """Results so far, in target order; unfinished targets count as skipped."""
        return [
            self._settled.get(server.name) or PerTargetResult(server, Outcome.SKIPPED)
            for server in context.targets
        ]

    async def _run_series(self, task: Task, context: ExecutionContext) -> list[PerTargetResult]:
        results: list[PerTargetResult] = []
        for index, server in enumerate(context.targets):
            result = await self._run_target(task, server, context)
            results.append(result)
            if not result.success and context.abort_policy is AbortPolicy.STOP:
                remaining = context.targets[index + 1:]
                if remaining:
                    await self.dispatcher.warn(
                        f"Aborting after failure on {server.name}; "
                        f"skipping {len(remaining)} remaining target(s)"
                    )
                results.extend(self._skipped(s) for s in remaining)
                break
        return results

    async def _run_parallel(self, task: Task, context: ExecutionContext) -> list[PerTargetResult]:
        semaphore = asyncio.Semaphore(max(1, context.max_concurrency))
        aborted = asyncio.Event()

        async def run_one(server: Server) -> PerTargetResult:
            async with semaphore:
                if aborted.is_set():
                    return self._skipped(server)
                try:
                    result = await self._run_target(task, server, context)
                except Exception:
                    aborted.set()
                    raise
                if not result.success and context.abort_policy is AbortPolicy.STOP:
                    # Set before notifying: delivery may yield to queued targets
                    first_failure = not aborted.is_set()
                    aborted.set()
                    if first_failure:
                        await self.dispatcher.warn(
                            f"Aborting after failure on {server.name}; "
                            "no new targets will start"
                        )
                return result

        outcomes = await asyncio.gather(
            *(run_one(s) for s in context.targets), return_exceptions=True
        )
        for outcome in outcomes:
            if isinstance(outcome, BaseException):
                raise outcome
        return list(outcomes)

    def _skipped(self, server: Server) -> PerTargetResult:
        result = PerTargetResult(server=server, outcome=Outcome.SKIPPED)
        self._settled[server.name] = result
        return result

    async def _run_target(
        self, task: Task, server: Server, context: ExecutionContext
    ) -> PerTargetResult:
        try:
            result = await self._attempt(task, server, context)
        except Exception as e:
            self._settled[server.name] = PerTargetResult(
                server=server,
                outcome=Outcome.FAILURE,
                stdout=self.collector.get(server.name, Stream.STDOUT),
                stderr=self.collector.get(server.name, Stream.STDERR),
                error=f"unexpected error: {e}",
            )
            raise
        self._settled[server.name] = result
        return result

    async def _attempt(
        self, task: Task, server: Server, context: ExecutionContext
    ) -> PerTargetResult:
        """Lock the host, run every step in order, unlock, record the outcome."""
        start = time.monotonic()
        self.collector.start(server.name)
        await self.dispatcher.info(f"Starting {context.task}", component=server.name)

        error: str | None = None
        lock = self.locks.hold(LockScope.HOST, server) if task.uses_host_lock else nullcontext()
        try:
            async with lock:
                error = await self._run_steps(task, server, context)
        except LockAcquisitionError as e:
            error = str(e)

        duration = time.monotonic() - start
        result = PerTargetResult(
            server=server,
            outcome=Outcome.FAILURE if error else Outcome.SUCCESS,
            stdout=self.collector.get(server.name, Stream.STDOUT),
            stderr=self.collector.get(server.name, Stream.STDERR),
            error=error,
            duration=duration,
        )
        if error:
            logger.warning("%s failed on %s: %s", context.task, server.name, error)
            await self.dispatcher.error(f"Failed: {error}", component=server.name)
        else:
            await self.dispatcher.info(
                f"Finished {context.task} in {duration:.1f}s", component=server.name
            )
        return result

    async def _run_steps(
        self, task: Task, server: Server, context: ExecutionContext
    ) -> str | None:
        """Run steps in order; return the first failure's detail, or None."""
        for step in task.steps(server, context):
            await self.dispatcher.debug(step.describe(), component=server.name)
            try:
                if self.step_timeout:
                    result = await asyncio.wait_for(
                        step.run(self.remote, server, context.sudo), self.step_timeout
                    )
                else:
                    result = await step.run(self.remote, server, context.sudo)
            except TimeoutError:
                return f"{step.describe()}: timed out after {self.step_timeout:g}s"
            except RemoteExecutionError as e:
                return f"{step.describe()}: {e.detail}"

            self.collector.append(server.name, Stream.STDOUT, result.stdout)
            self.collector.append(server.name, Stream.STDERR, result.stderr)
            if not result.success:
                return f"{step.describe()}: {result.detail}"
        return None

