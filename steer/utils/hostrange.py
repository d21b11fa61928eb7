"""Host range expansion for configuration files.

``web[1-3].example.com`` expands to ``web1.example.com``, ``web2.example.com``
and ``web3.example.com``. Zero padding on the lower bound is kept
(``db[01-10]``), comma lists are allowed (``app[1,4,7-8]``) and several
ranges in one name expand as a cartesian product.
"""

import re

_RANGE_RE = re.compile(r"\[([^\[\]]*)\]")
_ITEM_RE = re.compile(r"^(\d+)(?:-(\d+))?$")


def _expand_range(group: str) -> list[str]:
    """Expand the inside of one ``[...]`` group into its values.

    Raises:
        ValueError: If the group is empty, malformed or descending
    """
    values: list[str] = []
    for item in group.split(","):
        item = item.strip()
        match = _ITEM_RE.match(item)
        if not match:
            raise ValueError(f"Invalid host range: [{group}]")
        start_str, end_str = match.group(1), match.group(2)
        if end_str is None:
            values.append(start_str)
            continue
        start, end = int(start_str), int(end_str)
        if end < start:
            raise ValueError(f"Descending host range: [{group}]")
        width = len(start_str) if start_str.startswith("0") else 0
        values.extend(str(n).zfill(width) for n in range(start, end + 1))
    return values


def expand_hostnames(pattern: str) -> list[str]:
    """Expand every range group in a host pattern.

    Args:
        pattern: Hostname, optionally containing ``[...]`` range groups

    Returns:
        Expanded hostnames in ascending order of each group

    Raises:
        ValueError: If a range group is malformed
    """
    match = _RANGE_RE.search(pattern)
    if match is None:
        if "[" in pattern or "]" in pattern:
            raise ValueError(f"Unbalanced brackets in host: {pattern}")
        return [pattern]

    prefix = pattern[: match.start()]
    suffixes = expand_hostnames(pattern[match.end():])
    return [
        f"{prefix}{value}{suffix}"
        for value in _expand_range(match.group(1))
        for suffix in suffixes
    ]
