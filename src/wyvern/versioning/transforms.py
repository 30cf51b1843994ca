"""Version transforms applied by the version command."""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum

from wyvern.errors import ConfigError
from wyvern.versioning.semver import Version, validate_build, validate_prerelease

DEFAULT_DEV_TAG = "dev"


class TransformKind(Enum):
    """The kind of change applied to a version."""

    SET = "set"
    BUMP_PRE = "bump-pre"
    BUMP_PATCH = "bump-patch"
    BUMP_MINOR = "bump-minor"
    BUMP_MAJOR = "bump-major"
    BUMP_BREAKING = "bump-breaking"
    BUMP_TO_DEV = "bump-to-dev"
    SET_PRE = "set-pre"
    SET_BUILD = "set-build"
    RELEASE = "release"


def bump_patch(v: Version) -> Version:
    # 0.0.x means each patch is breaking
    return replace(v, patch=v.patch + 1, pre="")


def bump_minor(v: Version) -> Version:
    return replace(v, minor=v.minor + 1, patch=0, pre="")


def bump_major(v: Version) -> Version:
    return replace(v, major=v.major + 1, minor=0, patch=0, pre="")


def bump_breaking(v: Version) -> Version:
    """Bump to the next version that is semver-incompatible with ``v``."""
    if v.major != 0:
        return bump_major(v)
    if v.minor != 0:
        return bump_minor(v)
    return replace(bump_patch(v), build="")


def bump_pre(v: Version) -> Version | None:
    """Increase the pre-release counter.

    ``1.0.0`` becomes ``1.0.0-1``, ``1.0.0-1`` becomes ``1.0.0-2`` and
    ``1.0.0-rc.1`` becomes ``1.0.0-rc.2``. A dotted pre-release without a
    trailing number gets ``.1`` appended. Returns ``None`` if the result would
    not be a valid pre-release.
    """
    if not v.pre:
        return replace(v, pre="1")
    if v.pre.isdigit():
        return replace(v, pre=str(int(v.pre) + 1))

    items = v.pre.split(".")
    if items[-1].isdigit():
        items[-1] = str(int(items[-1]) + 1)
    else:
        items.append("1")
    pre = ".".join(items)
    try:
        validate_prerelease(pre)
    except ConfigError:
        return None
    return replace(v, pre=pre)


def release(v: Version) -> Version:
    return replace(v, pre="", build="")


@dataclass(frozen=True, slots=True)
class VersionTransform:
    """A pure ``old version -> new version`` function.

    Literal arguments of ``SET``, ``SET_PRE`` and ``SET_BUILD`` are validated
    on construction so invalid input fails before any manifest is touched.

    Attributes:
        kind: Which transform to apply.
        value: The literal for the ``SET*`` kinds, or the pre-release tag
            for ``BUMP_TO_DEV``.
    """

    kind: TransformKind
    value: str | None = None

    def __post_init__(self) -> None:
        if self.kind is TransformKind.SET:
            Version.parse(self._require_value())
        elif self.kind is TransformKind.SET_PRE:
            validate_prerelease(self._require_value())
        elif self.kind is TransformKind.SET_BUILD:
            validate_build(self._require_value())
        elif self.kind is TransformKind.BUMP_TO_DEV:
            validate_prerelease(self.value or DEFAULT_DEV_TAG)

    def _require_value(self) -> str:
        if not self.value:
            raise ConfigError(f"Version transform '{self.kind.value}' requires a value")
        return self.value

    @classmethod
    def set(cls, version: str) -> VersionTransform:
        return cls(TransformKind.SET, version)

    @classmethod
    def bump_to_dev(cls, tag: str | None = None) -> VersionTransform:
        return cls(TransformKind.BUMP_TO_DEV, tag)

    def apply(self, v: Version) -> Version | None:
        """Compute the new version, or ``None`` to leave the package alone."""
        kind = self.kind
        if kind is TransformKind.SET:
            return Version.parse(self._require_value())
        if kind is TransformKind.BUMP_PRE:
            return bump_pre(v)
        if kind is TransformKind.BUMP_PATCH:
            return bump_patch(v)
        if kind is TransformKind.BUMP_MINOR:
            return bump_minor(v)
        if kind is TransformKind.BUMP_MAJOR:
            return bump_major(v)
        if kind is TransformKind.BUMP_BREAKING:
            return bump_breaking(v)
        if kind is TransformKind.BUMP_TO_DEV:
            return replace(bump_breaking(v), pre=self.value or DEFAULT_DEV_TAG)
        if kind is TransformKind.SET_PRE:
            return replace(v, pre=self._require_value())
        if kind is TransformKind.SET_BUILD:
            return replace(v, build=self._require_value())
        return release(v)

    def __call__(self, v: Version) -> Version | None:
        return self.apply(v)
