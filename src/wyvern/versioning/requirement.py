"""Cargo-style version requirements.

A requirement is a comma separated list of comparators, every one of which
must match. Supported operators are ``=``, ``>``, ``>=``, ``<``, ``<=``,
``~`` and ``^``; a comparator without an operator is a caret requirement.
Versions may be partial (``1``, ``1.2``) and may use ``*``/``x`` wildcards.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum

from wyvern.errors import ConfigError
from wyvern.versioning.semver import Version, prerelease_key, validate_prerelease


class Op(Enum):
    """Comparator operator."""

    EXACT = "="
    GREATER = ">"
    GREATER_EQ = ">="
    LESS = "<"
    LESS_EQ = "<="
    TILDE = "~"
    CARET = "^"
    WILDCARD = "*"


COMPARATOR_PATTERN = re.compile(
    r"^(?P<op>>=|<=|=|>|<|~|\^)?\s*"
    r"(?P<major>\d+|[*xX])"
    r"(?:\.(?P<minor>\d+|[*xX]))?"
    r"(?:\.(?P<patch>\d+|[*xX]))?"
    r"(?:-(?P<pre>[0-9A-Za-z.-]+))?"
    r"(?:\+[0-9A-Za-z.-]+)?$"
)

_WILD = {"*", "x", "X"}


@dataclass(frozen=True, slots=True)
class Comparator:
    """A single ``op version`` term of a requirement."""

    op: Op
    major: int
    minor: int | None = None
    patch: int | None = None
    pre: str = ""

    def matches(self, version: Version) -> bool:
        if self.op is Op.EXACT or self.op is Op.WILDCARD:
            return self._exact(version)
        if self.op is Op.GREATER:
            return self._greater(version)
        if self.op is Op.GREATER_EQ:
            return self._exact(version) or self._greater(version)
        if self.op is Op.LESS:
            return self._less(version)
        if self.op is Op.LESS_EQ:
            return self._exact(version) or self._less(version)
        if self.op is Op.TILDE:
            return self._tilde(version)
        return self._caret(version)

    def allows_prerelease_of(self, version: Version) -> bool:
        """A pre-release version is only eligible when a comparator names its triple."""
        return (
            bool(self.pre)
            and self.major == version.major
            and self.minor == version.minor
            and self.patch == version.patch
        )

    def _pre_cmp(self, version: Version) -> int:
        ours, theirs = prerelease_key(self.pre), prerelease_key(version.pre)
        return (theirs > ours) - (theirs < ours)

    def _exact(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return False
        return v.pre == self.pre

    def _greater(self, v: Version) -> bool:
        if v.major != self.major:
            return v.major > self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor > self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch > self.patch
        return self._pre_cmp(v) > 0

    def _less(self, v: Version) -> bool:
        if v.major != self.major:
            return v.major < self.major
        if self.minor is None:
            return False
        if v.minor != self.minor:
            return v.minor < self.minor
        if self.patch is None:
            return False
        if v.patch != self.patch:
            return v.patch < self.patch
        return self._pre_cmp(v) < 0

    def _tilde(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is not None and v.minor != self.minor:
            return False
        if self.patch is not None and v.patch != self.patch:
            return v.patch > self.patch
        return self._pre_cmp(v) >= 0

    def _caret(self, v: Version) -> bool:
        if v.major != self.major:
            return False
        if self.minor is None:
            return True
        minor = self.minor
        if self.patch is None:
            if self.major > 0:
                return v.minor >= minor
            return v.minor == minor
        patch = self.patch

        if self.major > 0:
            if v.minor != minor:
                return v.minor > minor
            if v.patch != patch:
                return v.patch > patch
        elif minor > 0:
            if v.minor != minor:
                return False
            if v.patch != patch:
                return v.patch > patch
        elif v.minor != minor or v.patch != patch:
            return False

        return self._pre_cmp(v) >= 0


def parse_comparator(text: str) -> Comparator | None:
    """Parse one comparator; ``None`` means "matches any version"."""
    match = COMPARATOR_PATTERN.match(text.strip())
    if not match:
        raise ConfigError(f"Invalid version requirement term: {text!r}")

    op_text = match.group("op")
    major_text = match.group("major")
    minor_text = match.group("minor")
    patch_text = match.group("patch")
    pre = match.group("pre") or ""
    if pre:
        validate_prerelease(pre)

    if major_text in _WILD:
        if op_text not in (None, "="):
            raise ConfigError(f"Wildcard cannot be combined with an operator: {text!r}")
        return None

    major = int(major_text)
    if minor_text in _WILD:
        return Comparator(Op.WILDCARD, major)
    minor = int(minor_text) if minor_text is not None else None
    if patch_text in _WILD:
        return Comparator(Op.WILDCARD, major, minor)
    patch = int(patch_text) if patch_text is not None else None

    if pre and patch is None:
        raise ConfigError(f"Pre-release requires a full version: {text!r}")

    op = Op(op_text) if op_text else Op.CARET
    return Comparator(op, major, minor, patch, pre)


@dataclass(frozen=True, slots=True)
class VersionReq:
    """A parsed version requirement."""

    raw: str
    comparators: tuple[Comparator, ...]

    @classmethod
    def parse(cls, text: str) -> VersionReq:
        """Parse a requirement string.

        Raises:
            ConfigError: If any comparator is malformed.
        """
        terms = [t for t in (part.strip() for part in text.split(",")) if t]
        if not terms:
            raise ConfigError(f"Empty version requirement: {text!r}")
        comparators = [c for c in (parse_comparator(t) for t in terms) if c is not None]
        return cls(raw=text, comparators=tuple(comparators))

    def matches(self, version: Version) -> bool:
        """Check whether the version satisfies every comparator."""
        if not all(c.matches(version) for c in self.comparators):
            return False
        if not version.pre:
            return True
        return any(c.allows_prerelease_of(version) for c in self.comparators)

    def __str__(self) -> str:
        return self.raw
