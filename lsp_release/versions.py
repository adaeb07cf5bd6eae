"""Version parsing and comparison utilities.

Upstream tags and manifest versions are compared as semver where possible,
with special handling for a leading "v" and incomplete version strings
(e.g., "1.0" → "1.0.0"). Anything that isn't semver falls back to plain
string equality.
"""

from __future__ import annotations

import semver


def strip_v(version_str: str) -> str:
    """Drop a single leading "v" or "V" from a version string."""
    version_str = version_str.strip()
    if version_str[:1] in ("v", "V"):
        return version_str[1:]
    return version_str


def parse_version(version_str: str) -> semver.Version:
    """Parse a version string into a semver.Version object.

    Handles incomplete versions by padding with zeros:
    - "1" → "1.0.0"
    - "v1.2" → "1.2.0"
    - "1.2.3-beta.1" → "1.2.3-beta.1"

    Raises:
        ValueError: If the string is not a valid version.
    """
    core, sep, rest = strip_v(version_str).partition("-")
    parts = core.split(".")
    # Pad with zeros to ensure we have at least 3 parts
    while len(parts) < 3:
        parts.append("0")
    return semver.Version.parse(".".join(parts) + sep + rest)


def same_version(a: str, b: str) -> bool:
    """Return True if two version strings name the same release.

    Examples:
        same_version("1.3.0", "v1.3.0") → True
        same_version("1.3", "1.3.0") → True
        same_version("1.2.0", "1.3.0") → False
    """
    try:
        return parse_version(a) == parse_version(b)
    except ValueError:
        return strip_v(a) == strip_v(b)


def is_newer(candidate: str, current: str) -> bool:
    """Return True if candidate sorts after current.

    Non-semver strings are never considered newer; callers use this only
    for log messages, equality is what drives the update gate.
    """
    try:
        return parse_version(candidate) > parse_version(current)
    except ValueError:
        return False
