"""Tests for configuration loading by URI."""

from pathlib import Path

import pytest

from steer.config.loader import load_configuration, register_builtin_loaders, uri_scheme
from steer.errors import ConfigLoadError
from steer.models import Configuration, Server
from steer.registry import Registry


@pytest.fixture
def loaders() -> Registry:
    registry = Registry("config loader")
    register_builtin_loaders(registry)
    return registry


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "steer.conf"
    path.write_text("<Server web1>\nRole web\n</Server>\n")
    return path


@pytest.mark.parametrize(
    "uri,scheme",
    [
        ("/etc/steer.conf", "file"),
        ("steer.conf", "file"),
        ("file:///etc/steer.conf", "file"),
        ("C:/steer.conf", "file"),
        ("LDAP://directory/ou=servers", "ldap"),
        ("mailto:ops@example.com", "mailto"),
    ],
)
def test_uri_scheme(uri: str, scheme: str):
    assert uri_scheme(uri) == scheme


def test_load_bare_path(loaders: Registry, config_file: Path):
    config = load_configuration(str(config_file), loaders)
    assert [s.name for s in config] == ["web1"]


def test_load_file_uri(loaders: Registry, config_file: Path):
    config = load_configuration(f"file://{config_file}", loaders)
    assert "web1" in config


def test_unknown_scheme(loaders: Registry):
    with pytest.raises(ConfigLoadError, match="No config loader registered for 'ldap'"):
        load_configuration("ldap://directory", loaders)


def test_extension_loader_used_for_scheme(loaders: Registry):
    loaders.register("memory", lambda uri: Configuration([Server("mem1")], source=uri))
    config = load_configuration("memory://fleet", loaders)
    assert config.source == "memory://fleet"


def test_loader_failure_is_wrapped(loaders: Registry):
    def broken(uri):
        raise RuntimeError("directory unavailable")

    loaders.register("broken", broken)
    with pytest.raises(ConfigLoadError, match="directory unavailable"):
        load_configuration("broken://x", loaders)
