"""Target resolution: criteria + configuration -> ordered target set."""

import logging

from steer.errors import (
    AmbiguousServerError,
    NoConfigurationError,
    NoTargetsError,
    UnknownServerError,
)
from steer.models import Configuration, Server, TargetCriteria

logger = logging.getLogger(__name__)


def match_server(token: str, configuration: Configuration) -> Server:
    """Match one server token by exact name, then by unambiguous prefix.

    Raises:
        UnknownServerError: If nothing matches
        AmbiguousServerError: If the prefix matches several servers
    """
    server = configuration.get(token)
    if server is not None:
        return server

    candidates = configuration.names_starting_with(token)
    if not candidates:
        raise UnknownServerError(token)
    if len(candidates) > 1:
        raise AmbiguousServerError(token, candidates)
    return configuration.get(candidates[0])


def resolve_targets(
    criteria: TargetCriteria, configuration: Configuration | None
) -> list[Server]:
    """Turn target criteria into a deduplicated, ordered list of servers.

    Servers known to the configuration come back in declared order no matter
    how they were requested. Without a configuration, explicit names are
    taken as full hostnames in the order given.

    Args:
        criteria: Requested server names/abbreviations and roles
        configuration: Loaded configuration, if any

    Returns:
        Non-empty target list

    Raises:
        NoConfigurationError: If roles or "all servers" are requested
            without a configuration
        UnknownServerError: If a server token matches nothing
        AmbiguousServerError: If a server token matches several servers
        NoTargetsError: If the resolution is empty
    """
    if configuration is None:
        if criteria.is_empty:
            raise NoConfigurationError("No servers given and no configuration loaded")
        if criteria.roles:
            raise NoConfigurationError(
                f"Roles ({', '.join(criteria.roles)}) need a configuration"
            )
        targets: list[Server] = []
        seen: set[str] = set()
        for name in criteria.servers:
            if name not in seen:
                seen.add(name)
                targets.append(Server(name=name))
        return targets

    if criteria.is_empty:
        targets = list(configuration.servers)
    else:
        selected: dict[str, Server] = {}
        for token in criteria.servers:
            server = match_server(token, configuration)
            selected[server.name] = server
        for role in criteria.roles:
            role_servers = configuration.servers_with_role(role)
            if not role_servers:
                logger.info("Role %s matches no servers", role)
            for server in role_servers:
                selected[server.name] = server
        targets = sorted(selected.values(), key=lambda s: configuration.position(s.name))

    if not targets:
        raise NoTargetsError("No servers match the requested servers and roles")

    logger.debug("Resolved %d targets: %s", len(targets), ", ".join(s.name for s in targets))
    return targets
