"""Test workspace discovery and manifest reading."""

from pathlib import Path

import pytest

from wyvern.errors import (
    ManifestIOError,
    PackageNotFoundError,
    UnresolvedDependencyError,
    WorkspaceNotFoundError,
)
from wyvern.workspace import DependencySection, PublishPolicy, SourceKind, Workspace


def test_discover_members(workspace_dir: Path):
    ws = Workspace.discover(workspace_dir)

    assert sorted(p.name for p in ws.members) == ["app", "core", "internal", "utils"]
    assert ws.root == workspace_dir
    assert ws.has_workspace_dependencies
    assert set(ws.workspace_dependencies) == {"serde", "log"}


def test_discover_from_member_directory(workspace_dir: Path):
    ws = Workspace.discover(workspace_dir / "crates" / "utils")

    assert ws.manifest_path == workspace_dir / "Cargo.toml"
    assert len(ws) == 4


@pytest.mark.parametrize("root_member", [".", "./"])
def test_root_package_listed_as_member(temp_dir: Path, root_member: str):
    (temp_dir / "Cargo.toml").write_text(
        '[package]\nname = "root"\nversion = "0.1.0"\n\n'
        f'[workspace]\nmembers = ["{root_member}", "crates/*", "./tools/gen"]\n'
    )
    for rel, name in (("crates/a", "a"), ("tools/gen", "gen")):
        (temp_dir / rel).mkdir(parents=True)
        (temp_dir / rel / "Cargo.toml").write_text(
            f'[package]\nname = "{name}"\nversion = "0.1.0"\n'
        )

    ws = Workspace.discover(temp_dir)

    assert sorted(p.name for p in ws.members) == ["a", "gen", "root"]
    assert ws.get_package("root").path == temp_dir


def test_missing_manifest(temp_dir: Path):
    with pytest.raises(WorkspaceNotFoundError):
        Workspace.discover(temp_dir)


def test_dependencies_are_parsed(workspace: Workspace):
    app = workspace.get_package("app")
    deps = {(d.key, d.section): d for d in app.dependencies}

    utils = deps[("utils", DependencySection.REGULAR)]
    assert utils.source is SourceKind.PATH
    assert utils.requirement == "1.0"
    assert utils.path == workspace.get_package("utils").path

    serde = deps[("serde", DependencySection.REGULAR)]
    assert serde.source is SourceKind.REGISTRY
    assert serde.requirement == "1.0"

    dev_core = deps[("core", DependencySection.DEV)]
    assert dev_core.is_path
    assert dev_core.requirement is None


def test_publish_policy(workspace: Workspace):
    assert workspace.get_package("internal").publish is PublishPolicy.NOWHERE
    assert workspace.get_package("core").publish is PublishPolicy.EVERYWHERE


def test_optional_features(workspace: Workspace):
    # default is not a toggle, serde is only reachable through its feature
    assert workspace.get_package("utils").optional_features == ["serde", "std"]
    assert workspace.get_package("core").optional_features == ["std"]


def test_implicit_optional_dependency_feature(temp_dir: Path):
    (temp_dir / "Cargo.toml").write_text(
        '[package]\nname = "solo"\nversion = "0.1.0"\n\n'
        '[dependencies]\nrand = { version = "0.8", optional = true }\n'
    )

    ws = Workspace.discover(temp_dir)

    assert ws.get_package("solo").optional_features == ["rand"]


def test_workspace_inheritance(temp_dir: Path):
    (temp_dir / "Cargo.toml").write_text(
        '[workspace]\nmembers = ["a"]\n\n'
        '[workspace.package]\nversion = "2.1.0"\nlicense = "MIT"\n\n'
        '[workspace.dependencies]\nb = { path = "b", version = "0.5" }\n'
    )
    (temp_dir / "a").mkdir()
    (temp_dir / "a" / "Cargo.toml").write_text(
        '[package]\nname = "a"\nversion.workspace = true\nlicense.workspace = true\n\n'
        '[dependencies]\nb = { workspace = true, features = ["x"] }\n'
    )
    (temp_dir / "b").mkdir()
    (temp_dir / "b" / "Cargo.toml").write_text('[package]\nname = "b"\nversion = "0.5.0"\n')

    ws = Workspace.discover(temp_dir)
    a = ws.get_package("a")

    assert str(a.version) == "2.1.0"
    assert a.version_inherited
    assert a.metadata.license == "MIT"
    (dep,) = a.dependencies
    assert dep.is_path
    assert dep.requirement == "0.5"
    assert dep.path == temp_dir / "b"

    # b is reached through a path dependency only
    b = ws.get_package("b")
    assert not b.is_member
    assert [p.name for p in ws.members_deep()] == ["a", "b"]


def test_unresolved_path_dependency(temp_dir: Path):
    (temp_dir / "Cargo.toml").write_text(
        '[package]\nname = "a"\nversion = "1.0.0"\n\n[dependencies]\nghost = { path = "../ghost" }\n'
    )

    with pytest.raises(UnresolvedDependencyError):
        Workspace.discover(temp_dir)


def test_invalid_manifest(temp_dir: Path):
    (temp_dir / "Cargo.toml").write_text("[package\nname = ")

    with pytest.raises(ManifestIOError):
        Workspace.discover(temp_dir)


def test_get_package_not_found(workspace: Workspace):
    with pytest.raises(PackageNotFoundError):
        workspace.get_package("nope")


def test_package_for_path_prefers_innermost(workspace: Workspace, workspace_dir: Path):
    pkg = workspace.package_for_path(workspace_dir / "crates" / "core" / "src" / "lib.rs")

    assert pkg is not None and pkg.name == "core"
    assert workspace.package_for_path(workspace_dir / "README.md") is None


def test_reload_sees_changes(workspace: Workspace, workspace_dir: Path):
    manifest = workspace_dir / "crates" / "core" / "Cargo.toml"
    manifest.write_text(manifest.read_text().replace('version = "1.0.0"', 'version = "1.1.0"'))

    assert str(workspace.reload().get_package("core").version) == "1.1.0"
    assert str(workspace.get_package("core").version) == "1.0.0"
