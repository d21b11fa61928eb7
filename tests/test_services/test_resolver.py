"""Tests for target resolution."""

import pytest

from steer.errors import (
    AmbiguousServerError,
    NoConfigurationError,
    NoTargetsError,
    UnknownServerError,
)
from steer.models import Configuration, Server, TargetCriteria
from steer.services.resolver import match_server, resolve_targets


def _names(servers: list[Server]) -> list[str]:
    return [s.name for s in servers]


def test_empty_criteria_means_all_servers(web_cluster: Configuration):
    targets = resolve_targets(TargetCriteria(), web_cluster)
    assert _names(targets) == ["web1", "web2", "db1"]


def test_roles_union_keeps_declared_order(web_cluster: Configuration):
    """db was requested first but web servers were declared first."""
    targets = resolve_targets(TargetCriteria(roles=("db", "web")), web_cluster)
    assert _names(targets) == ["web1", "web2", "db1"]


def test_servers_and_roles_deduplicate(web_cluster: Configuration):
    criteria = TargetCriteria(servers=("db1", "web1"), roles=("web",))
    assert _names(resolve_targets(criteria, web_cluster)) == ["web1", "web2", "db1"]


def test_resolution_is_idempotent(web_cluster: Configuration):
    criteria = TargetCriteria(servers=("web2",), roles=("db",))
    first = resolve_targets(criteria, web_cluster)
    assert resolve_targets(criteria, web_cluster) == first


def test_unique_prefix_matches():
    config = Configuration([Server("web1.example.com"), Server("db1.example.com")])
    assert match_server("db", config).name == "db1.example.com"


def test_exact_name_beats_prefix():
    config = Configuration([Server("web"), Server("web2")])
    assert match_server("web", config).name == "web"


def test_ambiguous_prefix_names_candidates(web_cluster: Configuration):
    with pytest.raises(AmbiguousServerError) as exc_info:
        resolve_targets(TargetCriteria(servers=("web",)), web_cluster)
    assert exc_info.value.candidates == ["web1", "web2"]
    assert "web1, web2" in str(exc_info.value)


def test_unknown_server(web_cluster: Configuration):
    with pytest.raises(UnknownServerError, match="cache1"):
        resolve_targets(TargetCriteria(servers=("cache1",)), web_cluster)


def test_role_without_servers_gives_no_targets(web_cluster: Configuration):
    with pytest.raises(NoTargetsError):
        resolve_targets(TargetCriteria(roles=("cache",)), web_cluster)


def test_empty_configuration_gives_no_targets():
    with pytest.raises(NoTargetsError):
        resolve_targets(TargetCriteria(), Configuration([]))


def test_no_configuration_takes_names_literally():
    criteria = TargetCriteria(servers=("b.example.com", "a.example.com", "b.example.com"))
    assert _names(resolve_targets(criteria, None)) == ["b.example.com", "a.example.com"]


def test_no_configuration_rejects_roles_and_all():
    with pytest.raises(NoConfigurationError):
        resolve_targets(TargetCriteria(roles=("web",)), None)
    with pytest.raises(NoConfigurationError):
        resolve_targets(TargetCriteria(), None)
