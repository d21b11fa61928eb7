"""Notification event models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum


class Level(IntEnum):
    """Notification severity, ordered."""

    DEBUG = 10
    INFO = 20
    WARN = 30
    ERROR = 40
    FATAL = 50

    @classmethod
    def parse(cls, name: str) -> "Level":
        """Parse a level name such as ``warn`` or ``WARNING``.

        Raises:
            ValueError: If the name is not a known level
        """
        key = name.strip().upper()
        if key == "WARNING":
            key = "WARN"
        try:
            return cls[key]
        except KeyError:
            valid = ", ".join(level.name.lower() for level in cls)
            raise ValueError(f"Unknown level '{name}' (expected one of: {valid})") from None

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class NotificationEvent:
    """A leveled progress message."""

    level: Level
    message: str
    component: str = "steer"
    timestamp: datetime = field(default_factory=datetime.now)

    def text(self) -> str:
        """Message prefixed with its component, unless it comes from the core."""
        if self.component == "steer":
            return self.message
        return f"{self.component}: {self.message}"
