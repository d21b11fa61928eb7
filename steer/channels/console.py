"""Default stderr echo channel."""

import sys
from typing import TextIO

from steer.channels.base import NotificationChannel
from steer.models import Level, NotificationEvent
from steer.utils.console import COLORS

LEVEL_COLORS = {
    Level.DEBUG: COLORS["bright_black"],
    Level.INFO: COLORS["bright_green"],
    Level.WARN: COLORS["bright_yellow"],
    Level.ERROR: COLORS["bright_red"],
    Level.FATAL: COLORS["bg_red"] + COLORS["bold"],
}


class ConsoleChannel(NotificationChannel):
    """Echoes events to stderr as ``[LEVEL] message``."""

    def __init__(self, uri, level, settings, stream: TextIO | None = None):
        super().__init__(uri, level, settings)
        self.stream = stream or sys.stderr
        self.use_colors = settings.log_colors and self.stream.isatty()

    async def deliver(self, event: NotificationEvent) -> None:
        tag = f"[{event.level.name}]"
        if self.use_colors:
            tag = f"{LEVEL_COLORS[event.level]}{tag}{COLORS['reset']}"
        self.stream.write(f"{tag} {event.text()}\n")
        self.stream.flush()

    def get_name(self) -> str:
        return "console"
