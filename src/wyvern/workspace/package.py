"""Package and dependency model."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from wyvern.versioning import Version


class PublishPolicy(Enum):
    """Where a package may be published."""

    EVERYWHERE = "everywhere"
    NOWHERE = "nowhere"
    SPECIFIC_REGISTRIES = "specific-registries"


class DependencySection(Enum):
    """The manifest table a dependency is declared in."""

    REGULAR = "dependencies"
    DEV = "dev-dependencies"
    BUILD = "build-dependencies"

    @property
    def key(self) -> str:
        return self.value


class SourceKind(Enum):
    """Where a dependency is resolved from."""

    REGISTRY = "registry"
    PATH = "path"
    GIT = "git"


@dataclass(frozen=True)
class Dependency:
    """A dependency edge declared in a manifest.

    Attributes:
        key: The entry key in the manifest.
        name: The package the entry resolves to; the ``package`` field
            overrides the key.
        requirement: Version requirement, ``None`` when unconstrained.
        section: Dependency table the entry lives in.
        source: Where the dependency comes from.
        path: Absolute directory of a path dependency.
        target: The ``cfg(...)`` or target triple the entry is nested under.
        optional: Whether the dependency is optional.
    """

    key: str
    name: str
    requirement: str | None
    section: DependencySection
    source: SourceKind
    path: Path | None = None
    target: str | None = None
    optional: bool = False

    @property
    def alias(self) -> str | None:
        """The entry key when it differs from the package name."""
        return self.key if self.key != self.name else None

    @property
    def is_path(self) -> bool:
        return self.source is SourceKind.PATH


@dataclass(frozen=True)
class PackageMetadata:
    """Metadata checked before packaging."""

    description: str | None = None
    license: str | None = None
    license_file: str | None = None
    repository: str | None = None
    keywords: tuple[str, ...] = ()


@dataclass
class Package:
    """A package of the workspace.

    Attributes:
        name: Unique package name.
        version: Declared version.
        path: Package root directory.
        manifest_path: Path to the package's Cargo.toml.
        publish: Publish policy.
        registries: Registry names for ``SPECIFIC_REGISTRIES``.
        dependencies: Declared dependencies in manifest order.
        features: Feature name to the references it enables.
        metadata: Package metadata.
        is_member: False for path dependencies outside the declared members.
        version_inherited: True when the version comes from the workspace.
    """

    name: str
    version: Version
    path: Path
    manifest_path: Path
    publish: PublishPolicy = PublishPolicy.EVERYWHERE
    registries: tuple[str, ...] = ()
    dependencies: list[Dependency] = field(default_factory=list)
    features: dict[str, list[str]] = field(default_factory=dict)
    metadata: PackageMetadata = field(default_factory=PackageMetadata)
    is_member: bool = True
    version_inherited: bool = False

    @property
    def path_dependencies(self) -> list[Dependency]:
        return [d for d in self.dependencies if d.is_path]

    @property
    def optional_features(self) -> list[str]:
        """Feature names that can be toggled, sorted.

        Optional dependencies count as features of their own name unless a
        feature refers to them with the ``dep:`` prefix. ``default`` is not
        a toggle.
        """
        names = {name for name in self.features if name != "default"}
        explicit = {
            ref[len("dep:") :]
            for refs in self.features.values()
            for ref in refs
            if ref.startswith("dep:")
        }
        names.update(d.key for d in self.dependencies if d.optional and d.key not in explicit)
        return sorted(names)

    @property
    def id(self) -> str:
        return f"{self.name}@{self.version}"

    def __str__(self) -> str:
        return f"{self.name} ({self.version})"
