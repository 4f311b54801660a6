"""Version string helpers."""
import re

VERSION_PATTERN = re.compile(r"v?(\d+(?:\.\d+){0,3})")


def extract_version(text: str) -> str:
    """Find the first version-looking token in arbitrary command output.

    >>> extract_version("Docker Compose version v2.13.0")
    '2.13.0'
    """
    match = VERSION_PATTERN.search(text)
    if not match:
        raise ValueError(f"No version found in: {text!r}")
    return match.group(1)


def parse_version(version: str) -> tuple[int, ...]:
    """Parse ``1.2.3`` (optionally ``v``-prefixed) into a comparable tuple."""
    version = version.strip()
    match = VERSION_PATTERN.fullmatch(version) or VERSION_PATTERN.match(version)
    if not match:
        raise ValueError(f"Invalid version: {version!r}")
    parts = tuple(int(x) for x in match.group(1).split("."))
    # pad so that 2.0 == 2.0.0
    return parts + (0,) * (3 - len(parts)) if len(parts) < 3 else parts


def version_at_least(current: str, minimum: str) -> bool:
    """True if ``current`` >= ``minimum``."""
    return parse_version(current) >= parse_version(minimum)
