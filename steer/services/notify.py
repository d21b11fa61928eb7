"""Fan-out of leveled notification events to channels.

Events go to every channel whose minimum level is at or below the event's
level, in registration order. A failing channel is logged and counted but
never stops delivery to the others, and never fails the run.
"""

import logging
from collections import defaultdict

from steer.channels.base import NotificationChannel
from steer.errors import NotificationChannelError
from steer.models import Level, NotificationEvent

logger = logging.getLogger(__name__)


class NotificationDispatcher:
    """Delivers events to registered channels."""

    def __init__(self, channels: list[NotificationChannel] | None = None) -> None:
        self.channels: list[NotificationChannel] = list(channels or [])
        self._failed: set[int] = set()
        self._error_counts: dict[str, int] = defaultdict(int)
        self._opened = False

    def add_channel(self, channel: NotificationChannel) -> None:
        self.channels.append(channel)

    def get_error_stats(self) -> dict[str, int]:
        """Delivery failures by channel name."""
        return dict(self._error_counts)

    def _record_failure(self, channel: NotificationChannel, action: str, error: Exception) -> None:
        wrapped = NotificationChannelError(channel.get_name(), error)
        self._error_counts[channel.get_name()] += 1
        logger.warning("%s (during %s)", wrapped, action)

    async def open(self) -> None:
        """Open every channel; a channel that cannot open is disabled."""
        if self._opened:
            return
        self._opened = True
        for index, channel in enumerate(self.channels):
            try:
                await channel.open()
            except Exception as e:
                self._failed.add(index)
                self._record_failure(channel, "open", e)

    async def dispatch(self, event: NotificationEvent) -> int:
        """Deliver an event to every accepting channel.

        Returns:
            Number of channels that took the event
        """
        delivered = 0
        for index, channel in enumerate(self.channels):
            if index in self._failed or not channel.accepts(event):
                continue
            try:
                await channel.deliver(event)
                delivered += 1
            except Exception as e:
                self._record_failure(channel, "deliver", e)
        return delivered

    async def notify(self, level: Level, message: str, component: str = "steer") -> int:
        return await self.dispatch(NotificationEvent(level, message, component))

    async def debug(self, message: str, component: str = "steer") -> int:
        return await self.notify(Level.DEBUG, message, component)

    async def info(self, message: str, component: str = "steer") -> int:
        return await self.notify(Level.INFO, message, component)

    async def warn(self, message: str, component: str = "steer") -> int:
        return await self.notify(Level.WARN, message, component)

    async def error(self, message: str, component: str = "steer") -> int:
        return await self.notify(Level.ERROR, message, component)

    async def fatal(self, message: str, component: str = "steer") -> int:
        return await self.notify(Level.FATAL, message, component)

    async def close(self) -> None:
        """Flush deferred channels, then close every channel.

        Each channel is flushed and closed even if an earlier one fails.
        """
        for index, channel in enumerate(self.channels):
            if index not in self._failed:
                try:
                    await channel.flush()
                except Exception as e:
                    self._record_failure(channel, "flush", e)
            try:
                await channel.close()
            except Exception as e:
                self._record_failure(channel, "close", e)
        self._opened = False
