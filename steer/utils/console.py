"""Log formatting for the steer console."""

import logging
import re
from datetime import datetime

_SGR = {
    "reset": 0,
    "bold": 1,
    "dim": 2,
    "green": 32,
    "yellow": 33,
    "magenta": 35,
    "white": 37,
    "bg_red": 41,
    "bright_black": 90,
    "bright_red": 91,
    "bright_green": 92,
    "bright_yellow": 93,
    "bright_blue": 94,
    "bright_magenta": 95,
    "bright_cyan": 96,
}

COLORS = {name: f"\033[{code}m" for name, code in _SGR.items()}

_LEVEL_STYLE = {
    logging.DEBUG: COLORS["bright_black"],
    logging.INFO: COLORS["bright_green"],
    logging.WARNING: COLORS["bright_yellow"],
    logging.ERROR: COLORS["bright_red"],
    logging.CRITICAL: COLORS["bg_red"] + COLORS["bold"],
}

# First matching prefix wins; anything else is white
_COMPONENT_STYLE = [
    ("steer.services.orchestrator", COLORS["bright_cyan"]),
    ("steer.services.locking", COLORS["bright_blue"]),
    ("steer.services.pool", COLORS["bright_magenta"]),
    ("steer.services.remote", COLORS["magenta"]),
    ("steer.services.notify", COLORS["yellow"]),
    ("steer.channels", COLORS["yellow"]),
    ("steer.config", COLORS["green"]),
]

_HOST_RE = re.compile(r"(\w+@[\w.\-]+:\d+)")
_DURATION_RE = re.compile(r"(\d+\.?\d*s)\b")


class ColorfulFormatter(logging.Formatter):
    """``HH:MM:SS.mmm | LEVEL | component | message`` with optional ANSI colors.

    Connection targets (``user@host:port``) and durations in the message are
    highlighted when colors are on.
    """

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors

    def _paint(self, text: str, style: str) -> str:
        return f"{style}{text}{COLORS['reset']}" if self.use_colors else text

    @staticmethod
    def _component_style(name: str) -> str:
        matches = [style for prefix, style in _COMPONENT_STYLE if name.startswith(prefix)]
        return matches[0] if matches else COLORS["white"]

    def _message(self, record: logging.LogRecord) -> str:
        message = record.getMessage()
        if self.use_colors:
            message = _HOST_RE.sub(self._paint(r"\1", COLORS["bright_magenta"]), message)
            message = _DURATION_RE.sub(self._paint(r"\1", COLORS["bright_yellow"]), message)
        return message

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created)
        stamp = self._paint(f"{created:%H:%M:%S}.{int(record.msecs):03d}", COLORS["dim"])
        level = self._paint(
            f"{record.levelname:<8}", _LEVEL_STYLE.get(record.levelno, COLORS["white"])
        )
        component = record.name.removeprefix("steer.")
        component = self._paint(f"{component:<22}", self._component_style(record.name))
        bar = self._paint("|", COLORS["dim"])

        line = f"{stamp} {bar} {level} {bar} {component} {bar} {self._message(record)}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line
