"""SSH connection pool for one run.

Locking Strategy:
- `_meta_lock`: Protects the _connections and _host_locks dict structure
- Per-host locks: Protect connection creation/removal for specific hosts
- Lock acquisition order: Always per-host lock first, then meta-lock if needed

Connections live until close_all() at the end of the run; a closed
connection is replaced on the next request.
"""

import asyncio
import logging
from typing import TYPE_CHECKING

import asyncssh

if TYPE_CHECKING:
    from steer.models import Server

logger = logging.getLogger(__name__)


class ConnectionPool:
    """One reusable SSH connection per server."""

    def __init__(
        self,
        username: str | None = None,
        connect_timeout: int = 30,
        known_hosts: str | None = None,
    ) -> None:
        """Initialize pool.

        Args:
            username: Login user, or None to use ssh config / current user
            connect_timeout: Seconds to wait for a connection
            known_hosts: Path to known_hosts file, ``none`` to disable
                verification, or None for the asyncssh default
        """
        self.username = username
        self.connect_timeout = connect_timeout
        self._connections: dict[str, asyncssh.SSHClientConnection] = {}
        self._host_locks: dict[str, asyncio.Lock] = {}
        self._meta_lock = asyncio.Lock()  # Protects _connections and _host_locks
        self._known_hosts = known_hosts

        if known_hosts is not None and known_hosts.lower() == "none":
            logger.warning(
                "SSH host key verification DISABLED - vulnerable to MITM attacks. "
                "Unset STEER_KNOWN_HOSTS to verify against ~/.ssh/known_hosts."
            )

    async def _get_host_lock(self, host_name: str) -> asyncio.Lock:
        """Get or create lock for a specific host."""
        async with self._meta_lock:
            if host_name not in self._host_locks:
                self._host_locks[host_name] = asyncio.Lock()
            return self._host_locks[host_name]

    def _connect_options(self, server: "Server") -> dict:
        options: dict = {"connect_timeout": self.connect_timeout}
        if server.port:
            options["port"] = server.port
        if self.username:
            options["username"] = self.username
        if self._known_hosts is not None:
            options["known_hosts"] = (
                None if self._known_hosts.lower() == "none" else self._known_hosts
            )
        return options

    async def get_connection(self, server: "Server") -> asyncssh.SSHClientConnection:
        """Get or create a connection to the server."""
        host_lock = await self._get_host_lock(server.name)

        async with host_lock:
            conn = self._connections.get(server.name)

            if conn is not None and not conn.is_closed():
                logger.debug("Reusing existing connection to %s", server.name)
                return conn

            if conn is not None:
                logger.info("Connection to %s is closed, reconnecting", server.name)

            logger.info(
                "Opening SSH connection to %s:%d",
                server.name,
                server.port or 22,
            )
            # Network I/O happens here - only blocks same host, not all hosts
            conn = await asyncssh.connect(server.name, **self._connect_options(server))

            async with self._meta_lock:
                self._connections[server.name] = conn

            logger.info(
                "SSH connection established to %s (pool_size=%d)",
                server.name,
                self.pool_size,
            )
            return conn

    async def remove_connection(self, host_name: str) -> None:
        """Remove a specific connection from the pool.

        Args:
            host_name: Name of the host to remove.
        """
        host_lock = await self._get_host_lock(host_name)
        async with host_lock:
            conn = self._connections.pop(host_name, None)
            if conn is None:
                logger.debug("No connection to remove for %s (not in pool)", host_name)
                return
            logger.info(
                "Removing connection to %s (pool_size=%d)",
                host_name,
                self.pool_size,
            )
            conn.close()

    async def close_all(self) -> None:
        """Close all connections."""
        async with self._meta_lock:
            host_names = self.active_hosts

        if host_names:
            logger.info("Closing all %d connection(s)", len(host_names))
            for host_name in host_names:
                await self.remove_connection(host_name)

    @property
    def pool_size(self) -> int:
        """Return the current number of connections in the pool."""
        return len(self._connections)

    @property
    def active_hosts(self) -> list[str]:
        """Return list of hosts with active connections."""
        return list(self._connections)
