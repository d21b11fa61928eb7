"""In-memory registry of servers and roles."""

from collections.abc import Iterable, Iterator

from steer.models.server import Server


class Configuration:
    """Ordered, read-only collection of servers.

    Servers keep the order they were declared in. Lookups by exact name and
    by role are indexed once at construction.
    """

    def __init__(self, servers: Iterable[Server], source: str | None = None):
        """Build the configuration.

        Args:
            servers: Servers in declared order
            source: URI the configuration was loaded from, for reporting

        Raises:
            ValueError: If two servers share a name
        """
        self.source = source
        self._servers: tuple[Server, ...] = tuple(servers)
        self._by_name: dict[str, Server] = {}
        self._by_role: dict[str, list[Server]] = {}
        self._positions: dict[str, int] = {}

        for position, server in enumerate(self._servers):
            if server.name in self._by_name:
                raise ValueError(f"Duplicate server: {server.name}")
            self._by_name[server.name] = server
            self._positions[server.name] = position
            for role in server.roles:
                self._by_role.setdefault(role, []).append(server)

    def __iter__(self) -> Iterator[Server]:
        return iter(self._servers)

    def __len__(self) -> int:
        return len(self._servers)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    @property
    def servers(self) -> tuple[Server, ...]:
        """All servers in declared order."""
        return self._servers

    @property
    def roles(self) -> list[str]:
        """Role names in order of first declaration."""
        return list(self._by_role)

    def get(self, name: str) -> Server | None:
        """Get server by exact name."""
        return self._by_name.get(name)

    def position(self, name: str) -> int:
        """Declared position of a server, used to restore config order."""
        return self._positions[name]

    def names_starting_with(self, prefix: str) -> list[str]:
        """Server names beginning with ``prefix``, in declared order."""
        return [s.name for s in self._servers if s.name.startswith(prefix)]

    def servers_with_role(self, role: str) -> list[Server]:
        """Servers tagged with ``role``, in declared order."""
        return list(self._by_role.get(role, []))

    @property
    def max_display_length(self) -> int:
        """Longest server name, for aligned output."""
        return max((s.display_length for s in self._servers), default=0)

    def dump(self) -> str:
        """Render every server with its roles, one per line."""
        width = self.max_display_length
        lines = []
        for server in self._servers:
            roles = ", ".join(server.roles) if server.roles else "-"
            port = f" (port {server.port})" if server.port else ""
            lines.append(f"{server.display(width)}  {roles}{port}")
        return "\n".join(lines)
