"""Tests for configuration file parsing."""

from pathlib import Path

import pytest

from steer.config import ConfigFileParser
from steer.errors import ConfigLoadError


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "steer.conf"
    path.write_text(content)
    return path


def test_parse_blocks_in_declared_order(tmp_path: Path):
    """Servers keep file order, ranges expand in place."""
    path = _write(
        tmp_path,
        """
# web tier
<Server web[1-2].example.com www.example.com>
    Role web frontend
    Port 2222
</Server>

<server db1.example.com>   # lower-case keyword
    role db
</server>
""",
    )
    config = ConfigFileParser(path).parse()

    assert [s.name for s in config] == [
        "web1.example.com",
        "web2.example.com",
        "www.example.com",
        "db1.example.com",
    ]
    assert config.get("www.example.com").roles == ("web", "frontend")
    assert config.get("web1.example.com").port == 2222
    assert config.get("db1.example.com").port is None
    assert config.roles == ["web", "frontend", "db"]
    assert config.source == str(path)


def test_repeated_roles_merge(tmp_path: Path):
    path = _write(tmp_path, "<Server a>\nRole web\nRole web app\n</Server>\n")
    config = ConfigFileParser(path).parse()
    assert config.get("a").roles == ("web", "app")


def test_empty_file_gives_empty_configuration(tmp_path: Path):
    config = ConfigFileParser(_write(tmp_path, "# nothing here\n")).parse()
    assert len(config) == 0


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(ConfigLoadError, match="Cannot read configuration"):
        ConfigFileParser(tmp_path / "missing.conf").parse()


@pytest.mark.parametrize(
    "content,message",
    [
        ("<Server a>\n<Server b>\n</Server>\n", "opened inside block from line 1"),
        ("</Server>\n", "without matching"),
        ("<Server a>\nColour blue\n</Server>\n", "unknown directive: Colour"),
        ("<Server a>\nPort 22\nPort 23\n</Server>\n", "Port declared twice"),
        ("<Server a>\nPort ssh\n</Server>\n", "invalid port: ssh"),
        ("<Server a>\nRole web\n", "never closed"),
        ("Role web\n", "unexpected line"),
        ("<Server a[3-1]>\n</Server>\n", "Descending host range"),
    ],
)
def test_syntax_errors_name_file_and_line(tmp_path: Path, content: str, message: str):
    path = _write(tmp_path, content)
    with pytest.raises(ConfigLoadError, match=message) as exc_info:
        ConfigFileParser(path).parse()
    assert str(exc_info.value).startswith(f"{path}:")


def test_duplicate_server_is_load_error(tmp_path: Path):
    path = _write(tmp_path, "<Server web1>\n</Server>\n<Server web[1-2]>\n</Server>\n")
    with pytest.raises(ConfigLoadError, match="Duplicate server: web1"):
        ConfigFileParser(path).parse()
