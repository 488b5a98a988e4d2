from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from app.archreview.errors import InvalidArgument

logger = logging.getLogger(__name__)

DEFAULT_VERSION = "v1.0.0"
# Largest value a single component may hold (signed 32-bit, as stored by older records).
MAX_COMPONENT = 2**31 - 1

_VERSION_RE = re.compile(r"v?(\d+)\.(\d+)\.(\d+)", re.ASCII)


@dataclass(frozen=True, order=True)
class VersionLabel:
    major: int
    minor: int
    patch: int

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


def is_valid_version(label: str | None) -> bool:
    if not label:
        return False
    m = _VERSION_RE.fullmatch(label)
    return bool(m) and all(int(part) <= MAX_COMPONENT for part in m.groups())


def parse_version(label: str | None) -> VersionLabel:
    """
    Parse ``vMAJOR.MINOR.PATCH`` (leading ``v`` optional).

    Raises InvalidArgument for None, empty, missing or non-numeric components, and components
    larger than MAX_COMPONENT.
    """
    if label is None or label == "":
        raise InvalidArgument("Version string cannot be null or empty")
    m = _VERSION_RE.fullmatch(label)
    if not m:
        raise InvalidArgument(
            f"Invalid version format: {label}. Expected format: vMAJOR.MINOR.PATCH (e.g., v1.2.3)"
        )
    major, minor, patch = (int(part) for part in m.groups())
    if max(major, minor, patch) > MAX_COMPONENT:
        raise InvalidArgument(f"Invalid version format - component out of range: {label}")
    return VersionLabel(major, minor, patch)


def increment_patch(label: str | None) -> str:
    """
    Next patch version for ``label``.

    - None means there is no prior version: returns DEFAULT_VERSION.
    - "1.2.3" and "v1.2.3" both give "v1.2.4"; the prefix is always added on output.
    """
    if label is None:
        return DEFAULT_VERSION
    try:
        current = parse_version(label)
    except InvalidArgument:
        logger.error("Cannot increment invalid version %r", label)
        raise
    if current.patch >= MAX_COMPONENT:
        raise InvalidArgument(f"Patch version overflow: cannot increment beyond {MAX_COMPONENT}")
    nxt = VersionLabel(current.major, current.minor, current.patch + 1)
    logger.debug("Incremented version from %s to %s", label, nxt)
    return str(nxt)


def compare_versions(a: str | None, b: str | None) -> int:
    """Return -1, 0 or 1. Both labels must be valid."""
    if not is_valid_version(a) or not is_valid_version(b):
        raise InvalidArgument(f"Invalid version format: {a!r} / {b!r}")
    va, vb = parse_version(a), parse_version(b)
    return (va > vb) - (va < vb)
