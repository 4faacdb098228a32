"""
Dotted numeric version ordering.

Vendor versions are up to four numeric components (e.g. "2.1.10.8038").
Missing or non-numeric components count as 0, so parsing never fails.
"""

from __future__ import annotations

import functools
from dataclasses import dataclass, field
from typing import Iterable


COMPONENT_COUNT = 4


@functools.total_ordering
@dataclass(frozen=True)
class VersionNumber:
    """
    Four-component version value with the original string kept for display.

    Ordering and equality use only the numeric components, so "1.2" and
    "1.2.0.0" compare equal while keeping different `original` strings.
    """
    major: int = 0
    minor: int = 0
    patch: int = 0
    build: int = 0
    original: str = field(default="", compare=False)

    @property
    def key(self) -> tuple[int, int, int, int]:
        return (self.major, self.minor, self.patch, self.build)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, VersionNumber):
            return NotImplemented
        return self.key < other.key

    def __str__(self) -> str:
        return self.original or ".".join(str(part) for part in self.key)


def _component(text: str) -> int:
    text = text.strip()
    if not text.isdecimal():
        return 0
    return int(text)


def parse_version(s: str | None) -> VersionNumber:
    """Parse a dotted version string. Never raises."""
    original = s or ""
    parts = [_component(p) for p in original.split(".")[:COMPONENT_COUNT]]
    parts += [0] * (COMPONENT_COUNT - len(parts))
    return VersionNumber(*parts, original=original)


def compare_versions(a: str | VersionNumber | None, b: str | VersionNumber | None) -> int:
    """Compare two versions.

    A missing version (None) orders below any concrete version.

    Args:
        a: First version
        b: Second version

    Returns:
        -1 if a < b, 0 if equal, 1 if a > b
    """
    if a is None and b is None:
        return 0
    if a is None:
        return -1
    if b is None:
        return 1

    va = a if isinstance(a, VersionNumber) else parse_version(a)
    vb = b if isinstance(b, VersionNumber) else parse_version(b)
    if va < vb:
        return -1
    if vb < va:
        return 1
    return 0


def sort_versions_desc(versions: Iterable[str]) -> list[str]:
    """Sort version strings newest first. Stable for equal versions."""
    return sorted(versions, key=parse_version, reverse=True)


def max_version(versions: Iterable[str]) -> str | None:
    """Return the highest version string, or None for an empty input."""
    best: str | None = None
    for version in versions:
        if best is None or compare_versions(version, best) > 0:
            best = version
    return best
