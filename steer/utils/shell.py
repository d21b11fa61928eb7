"""Shell command safety utilities."""

import shlex


def quote_path(path: str) -> str:
    """Safely quote a path for shell commands.

    Args:
        path: File system path to quote

    Returns:
        Shell-safe quoted path
    """
    return shlex.quote(path)


def sudo_wrap(command: str) -> str:
    """Wrap a command so it runs through non-interactive sudo.

    Args:
        command: Shell command line

    Returns:
        Command line running ``command`` under ``sudo -n``
    """
    return f"sudo -n -- sh -c {shlex.quote(command)}"
