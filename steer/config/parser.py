"""Configuration file parser.

Reads block-structured server declarations::

    # web tier
    <Server web[1-4].example.com www.example.com>
        Role web frontend
        Port 2222
    </Server>

    <Server db1.example.com>
        Role db
    </Server>

A block names one or more hosts (with range expansion) and may carry any
number of ``Role`` lines and at most one ``Port`` line. Keywords are
case-insensitive; ``#`` starts a comment.
"""

import logging
import re
from pathlib import Path
from typing import NoReturn

from steer.errors import ConfigLoadError
from steer.models import Configuration, Server
from steer.utils.hostrange import expand_hostnames

logger = logging.getLogger(__name__)

_OPEN_RE = re.compile(r"^<\s*server\s+(.+?)\s*>$", re.IGNORECASE)
_CLOSE_RE = re.compile(r"^<\s*/\s*server\s*>$", re.IGNORECASE)
_KV_RE = re.compile(r"^(\w+)\s+(.+)$")


class ConfigFileParser:
    """Parser for steer configuration files."""

    def __init__(self, config_path: Path | str):
        """Initialize parser.

        Args:
            config_path: Path to the configuration file
        """
        self.config_path = Path(config_path)

    def parse(self) -> Configuration:
        """Parse the file into a Configuration.

        Returns:
            Configuration with servers in declared order

        Raises:
            ConfigLoadError: If the file is unreadable or malformed
        """
        try:
            content = self.config_path.read_text()
            logger.debug("Reading configuration from %s", self.config_path)
        except OSError as e:
            raise ConfigLoadError(f"Cannot read configuration {self.config_path}: {e}") from e

        servers = self.parse_text(content)
        try:
            configuration = Configuration(servers, source=str(self.config_path))
        except ValueError as e:
            raise ConfigLoadError(f"{self.config_path}: {e}") from e

        logger.info(
            "Parsed %d servers (%d roles) from %s",
            len(configuration),
            len(configuration.roles),
            self.config_path,
        )
        return configuration

    def parse_text(self, content: str) -> list[Server]:
        """Parse configuration text into servers, in declared order.

        Raises:
            ConfigLoadError: On any syntax error
        """
        servers: list[Server] = []
        current_hosts: list[str] | None = None
        roles: list[str] = []
        port: int | None = None
        opened_at = 0

        for lineno, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.split("#", 1)[0].strip()
            if not line:
                continue

            open_match = _OPEN_RE.match(line)
            if open_match:
                if current_hosts is not None:
                    self._fail(lineno, f"<Server> block opened inside block from line {opened_at}")
                current_hosts = self._expand(open_match.group(1).split(), lineno)
                roles, port, opened_at = [], None, lineno
                continue

            if _CLOSE_RE.match(line):
                if current_hosts is None:
                    self._fail(lineno, "</Server> without matching <Server>")
                servers.extend(
                    Server(name=host, roles=tuple(roles), port=port)
                    for host in current_hosts
                )
                current_hosts = None
                continue

            kv_match = _KV_RE.match(line)
            if current_hosts is None or not kv_match:
                self._fail(lineno, f"unexpected line: {raw_line.strip()}")

            key = kv_match.group(1).lower()
            value = kv_match.group(2).strip()
            if key == "role":
                roles.extend(r for r in value.split() if r not in roles)
            elif key == "port":
                if port is not None:
                    self._fail(lineno, "Port declared twice in one block")
                try:
                    port = int(value)
                except ValueError:
                    self._fail(lineno, f"invalid port: {value}")
            else:
                self._fail(lineno, f"unknown directive: {kv_match.group(1)}")

        if current_hosts is not None:
            self._fail(opened_at, "<Server> block is never closed")

        return servers

    def _expand(self, patterns: list[str], lineno: int) -> list[str]:
        hosts: list[str] = []
        for pattern in patterns:
            try:
                hosts.extend(expand_hostnames(pattern))
            except ValueError as e:
                self._fail(lineno, str(e))
        return hosts

    def _fail(self, lineno: int, message: str) -> NoReturn:
        raise ConfigLoadError(f"{self.config_path}:{lineno}: {message}")
