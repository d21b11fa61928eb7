"""Capability registries keyed by name.

Loaders, notification channels and tasks are looked up by string key at
startup. Extensions add entries with ``register``; nothing is imported by
name here.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from steer.errors import UnknownExtensionError

if TYPE_CHECKING:
    from steer.channels.base import NotificationChannel
    from steer.config.settings import Settings
    from steer.models import Configuration, Level
    from steer.tasks.base import Task

logger = logging.getLogger(__name__)

T = TypeVar("T")

LoaderFactory = Callable[[str], "Configuration"]
ChannelFactory = Callable[[str, "Level", "Settings"], "NotificationChannel"]


class Registry(Generic[T]):
    """Mapping from a string key to a registered implementation."""

    def __init__(self, kind: str):
        self.kind = kind
        self._entries: dict[str, T] = {}

    def register(self, key: str, entry: T, replace: bool = False) -> None:
        """Register an implementation under ``key``.

        Args:
            key: Lookup key (URI scheme or task name)
            entry: Implementation or factory
            replace: Allow overriding an existing entry

        Raises:
            ValueError: If the key is taken and ``replace`` is False
        """
        key = key.lower()
        if key in self._entries and not replace:
            raise ValueError(f"{self.kind} '{key}' is already registered")
        self._entries[key] = entry
        logger.debug("Registered %s: %s", self.kind, key)

    def lookup(self, key: str) -> T:
        """Get the implementation registered under ``key``.

        Raises:
            UnknownExtensionError: If nothing is registered under the key
        """
        try:
            return self._entries[key.lower()]
        except KeyError:
            raise UnknownExtensionError(self.kind, key, self.keys()) from None

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and key.lower() in self._entries

    def keys(self) -> list[str]:
        return sorted(self._entries)


@dataclass
class Registries:
    """All capability registries for one process."""

    loaders: Registry[LoaderFactory] = field(default_factory=lambda: Registry("loader"))
    channels: Registry[ChannelFactory] = field(
        default_factory=lambda: Registry("notification channel")
    )
    tasks: Registry["Task"] = field(default_factory=lambda: Registry("task"))

    @classmethod
    def default(cls) -> "Registries":
        """Create registries holding the built-in loaders, channels and tasks."""
        from steer.channels import register_builtin_channels
        from steer.config.loader import register_builtin_loaders
        from steer.tasks import register_builtin_tasks

        registries = cls()
        register_builtin_loaders(registries.loaders)
        register_builtin_channels(registries.channels)
        register_builtin_tasks(registries.tasks)
        return registries

    def extend(self, register: Callable[["Registries"], Any]) -> None:
        """Apply an extension's registration callable."""
        register(self)
