"""Tests for Server model."""

import dataclasses

import pytest

from steer.models import Server


def test_display_length_computed_at_construction():
    """display_length is derived from the name once."""
    server = Server("web1.example.com")
    assert server.display_length == 16


def test_server_is_immutable():
    """Servers cannot be changed after construction."""
    server = Server("web1", roles=("web",))
    with pytest.raises(dataclasses.FrozenInstanceError):
        server.name = "web2"  # type: ignore[misc]
    with pytest.raises(dataclasses.FrozenInstanceError):
        server.display_length = 3  # type: ignore[misc]


def test_roles_list_is_frozen_to_tuple():
    """Roles passed as a list are stored as a tuple."""
    server = Server("web1", roles=["web", "app"])  # type: ignore[arg-type]
    assert server.roles == ("web", "app")


def test_has_role_matches_any():
    """has_role is true if any requested role is present."""
    server = Server("web1", roles=("web", "app"))
    assert server.has_role("db", "app")
    assert not server.has_role("db")
    assert not Server("bare").has_role("web")


def test_display_pads_to_width():
    """display() left-aligns the name to a column width."""
    server = Server("db1")
    assert server.display(6) == "db1   "
    assert server.display() == "db1"
    assert server.display(2) == "db1"


def test_str_is_not_overloaded_to_name():
    """Formatting goes through display(), not str()."""
    server = Server("web1")
    assert server.display() == "web1"
    assert "Server(" in str(server)
