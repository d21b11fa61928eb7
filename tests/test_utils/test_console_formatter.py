"""Tests for ColorfulFormatter."""

import logging
import sys

from steer.utils import COLORS, ColorfulFormatter


def _record(name: str, level: int, msg: str, *args) -> logging.LogRecord:
    return logging.LogRecord(name, level, __file__, 1, msg, args, None)


def test_plain_format_strips_package_prefix():
    formatter = ColorfulFormatter(use_colors=False)
    line = formatter.format(_record("steer.services.locking", logging.INFO, "Lock on %s acquired", "web1"))

    _, level, component, message = [part.strip() for part in line.split("|")]
    assert level == "INFO"
    assert component == "services.locking"
    assert message == "Lock on web1 acquired"
    assert "\033[" not in line


def test_colors_highlight_hosts_and_durations():
    formatter = ColorfulFormatter(use_colors=True)
    line = formatter.format(
        _record("steer.services.pool", logging.WARNING, "ops@web1:22 slow after 2.5s")
    )

    assert f"{COLORS['bright_magenta']}ops@web1:22{COLORS['reset']}" in line
    assert f"{COLORS['bright_yellow']}2.5s{COLORS['reset']}" in line


def test_exception_appended():
    formatter = ColorfulFormatter(use_colors=False)
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = logging.LogRecord("steer", logging.ERROR, __file__, 1, "failed", (), sys.exc_info())
    assert "RuntimeError: boom" in formatter.format(record)
