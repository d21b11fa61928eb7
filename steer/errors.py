"""Exception hierarchy for steer.

Setup errors (configuration, target resolution, task lookup, locking) abort
the run before any remote host is contacted. Remote execution errors are
caught per target and recorded in the run result. Notification channel errors
are logged and never propagated.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from steer.models import RunResult
    from steer.services.locking import LockToken


class SteerError(Exception):
    """Base class for all steer errors."""


class ConfigLoadError(SteerError):
    """Configuration could not be loaded."""


class TargetResolutionError(SteerError):
    """Target criteria could not be turned into a target set."""


class UnknownServerError(TargetResolutionError):
    """A server token matched no configured server."""

    def __init__(self, token: str):
        self.token = token
        super().__init__(f"No server matches '{token}'")


class AmbiguousServerError(TargetResolutionError):
    """A server abbreviation matched more than one configured server."""

    def __init__(self, token: str, candidates: list[str]):
        """Initialize ambiguity error.

        Args:
            token: Abbreviation as requested
            candidates: Every server name the abbreviation matches
        """
        self.token = token
        self.candidates = candidates
        super().__init__(
            f"Server abbreviation '{token}' is ambiguous: {', '.join(candidates)}"
        )


class NoTargetsError(TargetResolutionError):
    """Resolution produced an empty target set."""


class NoConfigurationError(TargetResolutionError):
    """Criteria need a configuration but none was loaded."""


class TaskError(SteerError):
    """Task could not be prepared."""


class UnknownTaskError(TaskError):
    """No task is registered under the requested name."""

    def __init__(self, name: str, available: list[str]):
        self.name = name
        self.available = available
        super().__init__(f"Unknown task '{name}'. Available: {', '.join(available)}")


class TaskOptionError(TaskError):
    """A task option is missing or invalid."""


class LockAcquisitionError(SteerError):
    """A lock could not be acquired."""


class LockHeldError(LockAcquisitionError):
    """A live, non-stale lock is already held by someone else."""

    def __init__(self, token: "LockToken"):
        self.token = token
        super().__init__(
            f"{token.describe()} is held by {token.holder} "
            f"since {token.acquired_at:%Y-%m-%d %H:%M:%S}"
        )


class RemoteExecutionError(SteerError):
    """The transport could not run a step on a server."""

    def __init__(self, server: str, detail: str):
        self.server = server
        self.detail = detail
        super().__init__(f"{server}: {detail}")


class NotificationChannelError(SteerError):
    """A notification channel failed to open, deliver or flush."""

    def __init__(self, channel: str, original_error: Exception):
        self.channel = channel
        self.original_error = original_error
        super().__init__(f"Notification channel {channel} failed: {original_error}")


class UnknownExtensionError(SteerError):
    """Registry lookup found nothing under the requested key."""

    def __init__(self, kind: str, key: str, available: list[str]):
        self.kind = kind
        self.key = key
        self.available = available
        super().__init__(
            f"No {kind} registered for '{key}'. Available: {', '.join(available) or 'none'}"
        )


class FatalError(SteerError):
    """Unexpected error during execution, raised after locks are released.

    ``result`` holds what is known about each target when the run stopped,
    so callers can still report it.
    """

    def __init__(self, message: str, result: "RunResult | None" = None):
        self.result = result
        super().__init__(message)
