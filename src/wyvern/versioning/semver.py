"""Semantic version parsing and ordering."""

from __future__ import annotations

import re
from dataclasses import dataclass, replace
from functools import total_ordering

from wyvern.errors import ConfigError

_NUMERIC = r"0|[1-9]\d*"
_IDENT = r"(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"

VERSION_PATTERN = re.compile(
    rf"^(?P<major>{_NUMERIC})\.(?P<minor>{_NUMERIC})\.(?P<patch>{_NUMERIC})"
    rf"(?:-(?P<pre>{_IDENT}(?:\.{_IDENT})*))?"
    r"(?:\+(?P<build>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)
PRERELEASE_PATTERN = re.compile(rf"^{_IDENT}(?:\.{_IDENT})*$")
BUILD_PATTERN = re.compile(r"^[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*$")


def validate_prerelease(value: str) -> str:
    """Validate a pre-release identifier list.

    Raises:
        ConfigError: If the value is not a valid pre-release.
    """
    if not PRERELEASE_PATTERN.match(value):
        raise ConfigError(f"Invalid pre-release identifier: {value!r}")
    return value


def validate_build(value: str) -> str:
    """Validate build metadata.

    Raises:
        ConfigError: If the value is not valid build metadata.
    """
    if not BUILD_PATTERN.match(value):
        raise ConfigError(f"Invalid build metadata: {value!r}")
    return value


def prerelease_key(pre: str) -> tuple[int, tuple[tuple[int, int, str], ...]]:
    """Sort key for a pre-release string.

    An empty pre-release ranks above every non-empty one. Numeric identifiers
    rank below alphanumeric ones and compare numerically.
    """
    if not pre:
        return (1, ())
    parts: list[tuple[int, int, str]] = []
    for ident in pre.split("."):
        if ident.isdigit():
            parts.append((0, int(ident), ""))
        else:
            parts.append((1, 0, ident))
    return (0, tuple(parts))


@total_ordering
@dataclass(frozen=True, slots=True)
class Version:
    """A semantic version.

    Attributes:
        major: Major component.
        minor: Minor component.
        patch: Patch component.
        pre: Pre-release identifiers, empty when absent.
        build: Build metadata, empty when absent.
    """

    major: int
    minor: int
    patch: int
    pre: str = ""
    build: str = ""

    @classmethod
    def parse(cls, value: str) -> Version:
        """Parse a version string.

        Raises:
            ConfigError: If the string is not a valid semantic version.
        """
        match = VERSION_PATTERN.match(value.strip())
        if not match:
            raise ConfigError(f"Invalid version: {value!r}")
        return cls(
            major=int(match.group("major")),
            minor=int(match.group("minor")),
            patch=int(match.group("patch")),
            pre=match.group("pre") or "",
            build=match.group("build") or "",
        )

    @property
    def is_prerelease(self) -> bool:
        return bool(self.pre)

    def with_pre(self, pre: str) -> Version:
        return replace(self, pre=validate_prerelease(pre) if pre else "")

    def with_build(self, build: str) -> Version:
        return replace(self, build=validate_build(build) if build else "")

    def precedence(self) -> tuple[int, int, int, tuple[int, tuple[tuple[int, int, str], ...]]]:
        """Ordering key; build metadata does not take part."""
        return (self.major, self.minor, self.patch, prerelease_key(self.pre))

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self.precedence() < other.precedence()

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.pre:
            text += f"-{self.pre}"
        if self.build:
            text += f"+{self.build}"
        return text
