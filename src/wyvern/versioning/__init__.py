"""Semantic versions, version requirements and version transforms."""

from wyvern.versioning.requirement import Comparator, Op, VersionReq
from wyvern.versioning.semver import Version, validate_build, validate_prerelease
from wyvern.versioning.transforms import (
    DEFAULT_DEV_TAG,
    TransformKind,
    VersionTransform,
    bump_breaking,
    bump_pre,
)

__all__ = [
    "DEFAULT_DEV_TAG",
    "Comparator",
    "Op",
    "TransformKind",
    "Version",
    "VersionReq",
    "VersionTransform",
    "bump_breaking",
    "bump_pre",
    "validate_build",
    "validate_prerelease",
]
