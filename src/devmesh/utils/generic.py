"""Small argument and naming helpers."""
from typing import Optional, Sequence

from devmesh.binaries.platforms import get_platform_info


def insert_before_occurrence(args: Sequence[str], insert: str, search: str) -> list[str]:
    """Insert ``insert`` before every occurrence of ``search``.

    Appends ``insert`` when ``search`` does not occur.
    """
    if search not in args:
        return [*args, insert]

    result = []
    for arg in args:
        if arg == search:
            result.append(insert)
        result.append(arg)
    return result


def insert_after_occurrence(args: Sequence[str], insert: str, search: str) -> list[str]:
    """Insert ``insert`` after every occurrence of ``search``.

    Appends ``insert`` when ``search`` does not occur.
    """
    if search not in args:
        return [*args, insert]

    result = []
    for arg in args:
        result.append(arg)
        if arg == search:
            result.append(insert)
    return result


def quote(value: str, os_name: Optional[str] = None) -> str:
    """Double-quote ``value`` for unix shells; windows gets it as-is."""
    os_name = os_name or get_platform_info().os_name
    if os_name == "windows":
        return value
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def env_network_name(env_name: str) -> str:
    """Name of the default network compose creates for an environment."""
    return f"{env_name}_default".lower()
