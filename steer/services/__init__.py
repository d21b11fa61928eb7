"""Services for steer."""

from steer.services.executor import TaskExecutor
from steer.services.locking import LockManager, LockScope, LockToken
from steer.services.notify import NotificationDispatcher
from steer.services.orchestrator import Orchestrator, RunRequest, RunState
from steer.services.output import OutputCollector, Stream
from steer.services.pool import ConnectionPool
from steer.services.remote import SSHRemoteExecutor
from steer.services.report import format_output, format_report
from steer.services.resolver import match_server, resolve_targets

__all__ = [
    "ConnectionPool",
    "LockManager",
    "LockScope",
    "LockToken",
    "NotificationDispatcher",
    "Orchestrator",
    "OutputCollector",
    "RunRequest",
    "RunState",
    "SSHRemoteExecutor",
    "Stream",
    "TaskExecutor",
    "format_output",
    "format_report",
    "match_server",
    "resolve_targets",
]
