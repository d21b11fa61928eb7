"""Server data model."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Server:
    """A single target host and its role tags."""

    name: str
    roles: tuple[str, ...] = ()
    port: int | None = None
    display_length: int = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "roles", tuple(self.roles))
        object.__setattr__(self, "display_length", len(self.name))

    def has_role(self, *roles: str) -> bool:
        """Check whether the server carries any of the given roles."""
        return any(role in self.roles for role in roles)

    def display(self, width: int = 0) -> str:
        """Format the server name, left-aligned to ``width`` columns.

        Args:
            width: Column width to pad to (no padding if shorter than the name)

        Returns:
            Display string for reports and notifications
        """
        return self.name + " " * max(0, width - self.display_length)
