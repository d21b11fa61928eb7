"""Runtime settings from environment variables.

Centralized environment variable parsing and validation.
"""

import logging
import os
import socket
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

LOCK_TYPES = ("none", "local", "remote", "both")


def _default_lock_path() -> Path:
    return Path(tempfile.gettempdir()) / "steer.lock"


@dataclass
class Settings:
    """Runtime settings from environment.

    Handles parsing, validation, and defaults for all env vars.
    """

    # Configuration source
    config_uri: str | None = field(default=None)

    # Logging
    log_level: str = field(default="WARNING")
    log_colors: bool = field(default=True)

    # Locking
    lock_type: str = field(default="both")
    lock_path: Path = field(default_factory=_default_lock_path)
    remote_lock_path: str = field(default="/tmp/steer.lock")
    lock_stale_seconds: int = field(default=3600)
    lock_wait_seconds: int = field(default=0)

    # Execution
    max_parallel: int = field(default=10)
    step_timeout: int = field(default=0)

    # SSH transport
    ssh_user: str | None = field(default=None)
    connect_timeout: int = field(default=30)
    known_hosts: str | None = field(default=None)

    # Notification channels
    smtp_host: str = field(default="localhost")
    smtp_port: int = field(default=25)
    mail_from: str = field(default_factory=lambda: f"steer@{socket.getfqdn()}")
    irc_nick: str = field(default="steer")

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from STEER_* environment variables.

        Returns:
            Settings instance with values from environment
        """
        defaults = cls()
        return cls(
            config_uri=os.getenv("STEER_CONFIG") or None,
            log_level=os.getenv("STEER_LOG_LEVEL", "WARNING").upper(),
            log_colors=cls._get_bool("STEER_LOG_COLORS", True),
            lock_type=cls._get_lock_type(),
            lock_path=Path(os.getenv("STEER_LOCK_PATH", str(defaults.lock_path))),
            remote_lock_path=os.getenv("STEER_REMOTE_LOCK_PATH", "/tmp/steer.lock"),
            lock_stale_seconds=cls._get_int("STEER_LOCK_STALE_SECONDS", 3600),
            lock_wait_seconds=cls._get_int("STEER_LOCK_WAIT_SECONDS", 0),
            max_parallel=cls._get_int("STEER_MAX_PARALLEL", 10),
            step_timeout=cls._get_int("STEER_STEP_TIMEOUT", 0),
            ssh_user=os.getenv("STEER_SSH_USER") or None,
            connect_timeout=cls._get_int("STEER_CONNECT_TIMEOUT", 30),
            known_hosts=os.getenv("STEER_KNOWN_HOSTS") or None,
            smtp_host=os.getenv("STEER_SMTP_HOST", "localhost"),
            smtp_port=cls._get_int("STEER_SMTP_PORT", 25),
            mail_from=os.getenv("STEER_MAIL_FROM", defaults.mail_from),
            irc_nick=os.getenv("STEER_IRC_NICK", "steer"),
        )

    @staticmethod
    def _get_int(key: str, default: int) -> int:
        """Get integer from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Integer value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default

        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid int for %s: %s, using default %d", key, value, default)
            return default

    @staticmethod
    def _get_bool(key: str, default: bool) -> bool:
        """Get boolean from environment.

        Args:
            key: Environment variable key
            default: Default value if not set

        Returns:
            Boolean value from environment or default
        """
        value = os.getenv(key)
        if value is None:
            return default
        return value.lower() in ("1", "true", "yes", "on")

    @staticmethod
    def _get_lock_type() -> str:
        """Get lock type from environment with validation.

        Returns:
            One of "none", "local", "remote", "both"
        """
        lock_type = os.getenv("STEER_LOCK", "").lower()
        if lock_type in LOCK_TYPES:
            return lock_type
        if lock_type:
            logger.warning("Invalid STEER_LOCK: %s, using default 'both'", lock_type)
        return "both"

    @property
    def locks_local(self) -> bool:
        return self.lock_type in ("local", "both")

    @property
    def locks_remote(self) -> bool:
        return self.lock_type in ("remote", "both")
