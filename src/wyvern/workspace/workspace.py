"""Workspace discovery and manifest reading."""

from __future__ import annotations

import glob
from collections import deque
from collections.abc import Iterator, Mapping
from pathlib import Path
from typing import Any

from wyvern.compat import tomllib
from wyvern.config import WyvernConfig, load_config
from wyvern.errors import (
    ConfigError,
    ManifestIOError,
    PackageNotFoundError,
    UnresolvedDependencyError,
    WorkspaceNotFoundError,
)
from wyvern.versioning import Version
from wyvern.workspace.package import (
    Dependency,
    DependencySection,
    Package,
    PackageMetadata,
    PublishPolicy,
    SourceKind,
)

MANIFEST_NAME = "Cargo.toml"


def read_manifest(path: Path) -> dict[str, Any]:
    """Read a manifest as plain data.

    Raises:
        ManifestIOError: If the file cannot be read or parsed.
    """
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except OSError as e:
        raise ManifestIOError(path, str(e)) from e
    except tomllib.TOMLDecodeError as e:
        raise ManifestIOError(path, f"invalid TOML: {e}") from e


def _is_inherited(value: Any) -> bool:
    return isinstance(value, dict) and value.get("workspace") is True


class _Inheritance:
    """Values that members take from ``[workspace.package]`` and ``[workspace.dependencies]``."""

    def __init__(self, root: Path, workspace_table: Mapping[str, Any]) -> None:
        self.root = root
        self.package: Mapping[str, Any] = workspace_table.get("package", {})
        self.dependencies: Mapping[str, Any] = workspace_table.get("dependencies", {})

    def field(self, manifest_path: Path, key: str) -> Any:
        if key not in self.package:
            raise ManifestIOError(
                manifest_path,
                f"'{key}' is inherited but [workspace.package] does not define it",
            )
        return self.package[key]

    def dependency(self, manifest_path: Path, key: str) -> dict[str, Any]:
        if key not in self.dependencies:
            raise ManifestIOError(
                manifest_path,
                f"dependency '{key}' is inherited but [workspace.dependencies] does not define it",
            )
        value = self.dependencies[key]
        if isinstance(value, str):
            return {"version": value}
        resolved = dict(value)
        if "path" in resolved:
            resolved["path"] = str((self.root / resolved["path"]).resolve())
        return resolved


def _parse_publish(value: Any) -> tuple[PublishPolicy, tuple[str, ...]]:
    if value is None or value is True:
        return PublishPolicy.EVERYWHERE, ()
    if value is False:
        return PublishPolicy.NOWHERE, ()
    if isinstance(value, list):
        if not value:
            return PublishPolicy.NOWHERE, ()
        return PublishPolicy.SPECIFIC_REGISTRIES, tuple(str(v) for v in value)
    return PublishPolicy.EVERYWHERE, ()


def _parse_dependency(
    key: str,
    value: Any,
    section: DependencySection,
    target: str | None,
    manifest_path: Path,
    inheritance: _Inheritance | None,
) -> Dependency:
    if isinstance(value, str):
        return Dependency(key, key, value, section, SourceKind.REGISTRY, target=target)

    if not isinstance(value, dict):
        raise ManifestIOError(manifest_path, f"dependency '{key}' has an unsupported format")

    info = dict(value)
    base_dir = manifest_path.parent
    if _is_inherited(info):
        if inheritance is None:
            raise ManifestIOError(manifest_path, f"dependency '{key}' is inherited outside a workspace")
        inherited = inheritance.dependency(manifest_path, key)
        # local keys (features, optional) win over the workspace definition
        inherited.update({k: v for k, v in info.items() if k != "workspace"})
        info = inherited
        base_dir = inheritance.root

    path: Path | None = None
    if "path" in info:
        source = SourceKind.PATH
        path = (base_dir / info["path"]).resolve()
    elif "git" in info:
        source = SourceKind.GIT
    else:
        source = SourceKind.REGISTRY

    return Dependency(
        key=key,
        name=info.get("package", key),
        requirement=info.get("version"),
        section=section,
        source=source,
        path=path,
        target=target,
        optional=bool(info.get("optional", False)),
    )


def _parse_dependencies(
    data: Mapping[str, Any],
    manifest_path: Path,
    inheritance: _Inheritance | None,
) -> list[Dependency]:
    deps: list[Dependency] = []

    def read_tables(table: Mapping[str, Any], target: str | None) -> None:
        for section in DependencySection:
            for key, value in table.get(section.key, {}).items():
                deps.append(
                    _parse_dependency(key, value, section, target, manifest_path, inheritance)
                )

    read_tables(data, None)
    for target, table in data.get("target", {}).items():
        read_tables(table, target)
    return deps


def load_package(
    manifest_path: Path,
    *,
    inheritance: _Inheritance | None = None,
    is_member: bool = True,
    data: Mapping[str, Any] | None = None,
) -> Package:
    """Build a :class:`Package` from its manifest.

    Raises:
        ManifestIOError: If the manifest cannot be read or has no ``[package]``.
        ConfigError: If the version is not a valid semantic version.
    """
    if data is None:
        data = read_manifest(manifest_path)
    table = data.get("package")
    if not isinstance(table, dict) or "name" not in table:
        raise ManifestIOError(manifest_path, "no [package] table with a name")

    def resolve(key: str) -> Any:
        value = table.get(key)
        if _is_inherited(value):
            if inheritance is None:
                raise ManifestIOError(manifest_path, f"'{key}' is inherited outside a workspace")
            return inheritance.field(manifest_path, key)
        return value

    raw_version = resolve("version") or "0.0.0"
    try:
        version = Version.parse(str(raw_version))
    except ConfigError as e:
        raise ConfigError(e.message, path=manifest_path) from e

    publish, registries = _parse_publish(resolve("publish"))
    metadata = PackageMetadata(
        description=resolve("description"),
        license=resolve("license"),
        license_file=resolve("license-file"),
        repository=resolve("repository"),
        keywords=tuple(resolve("keywords") or ()),
    )

    return Package(
        name=table["name"],
        version=version,
        path=manifest_path.parent,
        manifest_path=manifest_path,
        publish=publish,
        registries=registries,
        dependencies=_parse_dependencies(data, manifest_path, inheritance),
        features={k: list(v) for k, v in data.get("features", {}).items()},
        metadata=metadata,
        is_member=is_member,
        version_inherited=_is_inherited(table.get("version")),
    )


def _find_workspace_root(manifest_path: Path) -> Path:
    """Return the manifest of the enclosing workspace, or ``manifest_path`` itself."""
    data = read_manifest(manifest_path)
    if "workspace" in data:
        return manifest_path
    for parent in manifest_path.parent.parents:
        candidate = parent / MANIFEST_NAME
        if candidate.is_file() and "workspace" in read_manifest(candidate):
            return candidate
    return manifest_path


class Workspace:
    """A Cargo workspace: declared members plus path-only dependencies.

    The workspace is rebuilt from disk on every command invocation; call
    :meth:`reload` after rewriting manifests.

    Attributes:
        root: Workspace root directory.
        manifest_path: Root manifest.
        config: Configuration from wyvern.yaml.
        packages: Every package by name, members first.
    """

    def __init__(
        self,
        manifest_path: Path,
        data: Mapping[str, Any],
        packages: dict[str, Package],
        config: WyvernConfig,
    ) -> None:
        self.manifest_path = manifest_path
        self.root = manifest_path.parent
        self.data = data
        self.packages = packages
        self.config = config

    @classmethod
    def discover(cls, path: Path | None = None) -> Workspace:
        """Load the workspace containing ``path``.

        Args:
            path: A directory containing a Cargo.toml, or a manifest file.
                Defaults to the current directory.

        Raises:
            WorkspaceNotFoundError: If there is no manifest at ``path``.
            UnresolvedDependencyError: If a path dependency has no manifest.
            ManifestIOError: If a manifest cannot be read.
        """
        path = (path or Path.cwd()).resolve()
        manifest = path if path.is_file() else path / MANIFEST_NAME
        if not manifest.is_file():
            raise WorkspaceNotFoundError(path)

        root_manifest = _find_workspace_root(manifest)
        data = read_manifest(root_manifest)
        root = root_manifest.parent
        inheritance = _Inheritance(root, data.get("workspace", {}))

        packages: dict[str, Package] = {}
        by_path: dict[Path, Package] = {}

        def add(pkg: Package) -> None:
            existing = packages.get(pkg.name)
            if existing is not None and existing.path != pkg.path:
                raise ConfigError(
                    f"Package '{pkg.name}' is defined twice: {existing.path} and {pkg.path}"
                )
            packages[pkg.name] = pkg
            by_path[pkg.path] = pkg

        if "package" in data:
            add(load_package(root_manifest, inheritance=inheritance, data=data))
        for member in _member_manifests(root, data.get("workspace", {})):
            if member.parent not in by_path:
                add(load_package(member, inheritance=inheritance))

        queue = deque(packages.values())
        while queue:
            pkg = queue.popleft()
            for dep in pkg.path_dependencies:
                if dep.path is None or dep.path in by_path:
                    continue
                dep_manifest = dep.path / MANIFEST_NAME
                if not dep_manifest.is_file():
                    raise UnresolvedDependencyError(pkg.name, dep.name, dep.path)
                inside = dep.path == root or root in dep.path.parents
                found = load_package(
                    dep_manifest,
                    inheritance=inheritance if inside else None,
                    is_member=False,
                )
                add(found)
                queue.append(found)

        return cls(root_manifest, data, packages, load_config(root))

    def reload(self) -> Workspace:
        """Read the workspace again from disk."""
        return Workspace.discover(self.manifest_path)

    @property
    def members(self) -> list[Package]:
        return [p for p in self.packages.values() if p.is_member]

    def members_deep(self) -> list[Package]:
        """Members followed by the path-only dependencies outside the member list."""
        return self.members + [p for p in self.packages.values() if not p.is_member]

    def __iter__(self) -> Iterator[Package]:
        return iter(self.packages.values())

    def __len__(self) -> int:
        return len(self.packages)

    def get_package(self, name: str) -> Package:
        """Get a package by name.

        Raises:
            PackageNotFoundError: If no package has that name.
        """
        try:
            return self.packages[name]
        except KeyError:
            raise PackageNotFoundError(name) from None

    def package_for_path(self, path: Path) -> Package | None:
        """Return the package whose directory most closely encloses ``path``."""
        path = path if path.is_absolute() else self.root / path
        best: Package | None = None
        for pkg in self.packages.values():
            if path == pkg.path or pkg.path in path.parents:
                if best is None or len(pkg.path.parts) > len(best.path.parts):
                    best = pkg
        return best

    @property
    def workspace_dependencies(self) -> Mapping[str, Any]:
        """The root ``[workspace.dependencies]`` table, empty if absent."""
        return self.data.get("workspace", {}).get("dependencies", {})

    @property
    def has_workspace_dependencies(self) -> bool:
        return "dependencies" in self.data.get("workspace", {})


def _member_manifests(root: Path, workspace_table: Mapping[str, Any]) -> list[Path]:
    excluded = {(root / e).resolve() for e in workspace_table.get("exclude", [])}
    manifests: list[Path] = []
    for pattern in workspace_table.get("members", []):
        for candidate in _expand_member(root, pattern):
            manifest = candidate / MANIFEST_NAME
            if candidate in excluded or not manifest.is_file():
                continue
            if manifest not in manifests:
                manifests.append(manifest)
    return manifests


def _expand_member(root: Path, pattern: str) -> list[Path]:
    """Resolve one ``members`` entry; ``"."`` names the root itself."""
    if not glob.has_magic(pattern):
        return [(root / pattern).resolve()]
    return [(root / p).resolve() for p in sorted(glob.glob(pattern, root_dir=root))]
