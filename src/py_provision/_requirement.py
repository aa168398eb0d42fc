"""A version requirement pins the major and minor release of an interpreter."""

from __future__ import annotations

import re
from typing import NamedTuple

from ._errors import InvalidVersionError

PATTERN = re.compile(
    r"""
    ^
    (?P<major>\d+)                  # major (e.g. 3)
    \.(?P<minor>\d+)                # minor (e.g. 11)
    (?P<rest>(?:\.\d+)*)            # micro and beyond, ignored when matching
    $
    """,
    re.VERBOSE,
)
LEADING_VERSION = re.compile(r"^(?P<major>\d+)\.(?P<minor>\d+)")


def parse_version(text: str) -> tuple[int, int] | None:
    """Leniently read the ``major.minor`` prefix of a reported version.

    Handles ``3.11.4``, ``3.13.0rc1``, tool cache folders (``3.12.7``) and PEP-514 tags (``3.11-32``).

    :returns: ``(major, minor)`` or ``None`` when ``text`` does not start with a dotted version

    """
    match = LEADING_VERSION.match(text.strip())
    if match is None:
        return None
    return int(match["major"]), int(match["minor"])


class VersionRequirement(NamedTuple):
    major: int
    minor: int

    @classmethod
    def from_string(cls, text: str) -> VersionRequirement:
        match = PATTERN.match(text.strip()) if isinstance(text, str) else None
        if match is None:
            msg = f"bad version string {text!r}, expected <major>.<minor>"
            raise InvalidVersionError(msg)
        return cls(int(match["major"]), int(match["minor"]))

    @property
    def dotted(self) -> str:
        return f"{self.major}.{self.minor}"

    def matches(self, version: str | tuple[int, int] | None) -> bool:
        """Compare only major and minor; micro, pre-release and build parts never matter."""
        if isinstance(version, str):
            version = parse_version(version)
        if version is None:
            return False
        return tuple(version[:2]) == (self.major, self.minor)

    def __str__(self) -> str:
        return self.dotted


__all__ = [
    "VersionRequirement",
    "parse_version",
]
