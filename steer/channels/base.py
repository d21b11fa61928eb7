"""Notification channel base class."""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from steer.models import Level, NotificationEvent

if TYPE_CHECKING:
    from steer.config.settings import Settings


class NotificationChannel(ABC):
    """Base class for notification channels.

    A channel is created from a URI and a minimum level. Immediate channels
    deliver in ``deliver``; deferred channels buffer and deliver in
    ``flush``, which the dispatcher calls once at the end of a run.
    """

    deferred = False

    def __init__(self, uri: str, level: Level, settings: "Settings"):
        self.uri = uri
        self.level = level
        self.settings = settings

    def accepts(self, event: NotificationEvent) -> bool:
        return event.level >= self.level

    async def open(self) -> None:
        """Prepare the channel before the first event."""

    @abstractmethod
    async def deliver(self, event: NotificationEvent) -> None:
        """Deliver or queue one event."""

    async def flush(self) -> None:
        """Deliver anything queued."""

    async def close(self) -> None:
        """Release resources; called once after the final flush."""

    def get_name(self) -> str:
        return self.uri or self.__class__.__name__
