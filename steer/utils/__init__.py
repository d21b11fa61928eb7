"""Utilities for steer."""

from steer.utils.console import COLORS, ColorfulFormatter
from steer.utils.hostrange import expand_hostnames
from steer.utils.shell import quote_path, sudo_wrap

__all__ = [
    "COLORS",
    "ColorfulFormatter",
    "expand_hostnames",
    "quote_path",
    "sudo_wrap",
]
