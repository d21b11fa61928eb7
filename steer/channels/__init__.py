"""Notification channels, keyed by URI scheme."""

from steer.channels.base import NotificationChannel
from steer.channels.console import ConsoleChannel
from steer.channels.file import FileChannel
from steer.channels.irc import IRCChannel
from steer.channels.mail import MailChannel
from steer.registry import Registry


def register_builtin_channels(channels: Registry) -> None:
    channels.register("console", ConsoleChannel)
    channels.register("file", FileChannel)
    channels.register("irc", IRCChannel)
    channels.register("mailto", MailChannel)


__all__ = [
    "ConsoleChannel",
    "FileChannel",
    "IRCChannel",
    "MailChannel",
    "NotificationChannel",
    "register_builtin_channels",
]
