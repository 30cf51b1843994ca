"""Integration tests for the release flow.

Bumps versions in a real workspace, plans the release from git history and
publishes through the in-process toolchain and registry fakes.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest
import tomlkit

from wyvern.commands import (
    CommandContext,
    PlanOptions,
    ReleaseCommand,
    ReleaseOptions,
    ToReleaseCommand,
    version,
)
from wyvern.filters import SelectionCriteria
from wyvern.versioning import TransformKind, VersionTransform
from wyvern.workspace import Workspace

pytestmark = pytest.mark.integration


def run_git(cwd: Path, *args: str) -> None:
    subprocess.run(["git", *args], cwd=cwd, capture_output=True, text=True, check=True)


def fresh_context(root: Path, reporter) -> CommandContext:
    return CommandContext(Workspace.discover(root), reporter=reporter)


@pytest.fixture(autouse=True)
def registry_env(monkeypatch, temp_dir: Path):
    monkeypatch.setenv("CARGO_REGISTRY_TOKEN", "ci-token")
    monkeypatch.setenv("CARGO_HOME", str(temp_dir / "cargo-home"))


@pytest.fixture
def changed_core(git_workspace: Path) -> Path:
    lib = git_workspace / "crates" / "core" / "src" / "lib.rs"
    lib.write_text("//! core\npub fn answer() -> u32 { 42 }\n")
    run_git(git_workspace, "commit", "-q", "-am", "core: answer")
    return git_workspace


async def test_bump_plan_and_publish_changed(changed_core: Path, reporter, toolchain, registry):
    criteria = SelectionCriteria(changed_since="v1")

    bumped = version(
        fresh_context(changed_core, reporter),
        VersionTransform(TransformKind.BUMP_MINOR),
        criteria=criteria,
    )
    assert [(c.name, str(c.new)) for c in bumped.changes] == [("core", "1.1.0")]
    # ^1.0.0 still admits 1.1.0
    utils = tomlkit.parse((changed_core / "crates" / "utils" / "Cargo.toml").read_text())
    assert utils["dependencies"]["core"]["version"] == "1.0.0"

    run_git(changed_core, "commit", "-q", "-am", "release core 1.1.0")

    planned = ToReleaseCommand(
        fresh_context(changed_core, reporter), PlanOptions(criteria=criteria)
    ).execute()
    assert [str(p) for p in planned.packages] == ["core (1.1.0)"]
    assert "core (1.1.0)" in reporter.out

    result = await ReleaseCommand(
        fresh_context(changed_core, reporter),
        ReleaseOptions(criteria=criteria),
        toolchain=toolchain,
        registry=registry,
    ).execute()

    assert registry.published == ["core"]
    assert registry.tokens == ["ci-token"]
    assert toolchain.packed == ["core"]
    assert result.report.published == ["core"]
    archive = changed_core / "target" / "wyvern" / "archives" / "package" / "core-1.1.0.crate"
    assert archive.exists()


async def test_major_bump_releases_whole_chain(workspace_dir: Path, reporter, toolchain, registry):
    version(fresh_context(workspace_dir, reporter), VersionTransform(TransformKind.BUMP_MAJOR))

    result = await ReleaseCommand(
        fresh_context(workspace_dir, reporter),
        ReleaseOptions(dry_run=True),
        toolchain=toolchain,
        registry=registry,
    ).execute()

    assert [str(p) for p in result.packages] == ["core (2.0.0)", "utils (2.0.0)", "app (1.0.0)"]
    assert registry.dry_runs == [True, True, True]
    # verification compiled each unpacked archive against the bumped siblings
    assert [call[0] for call in toolchain.calls] == ["core-2.0.0", "utils-2.0.0", "app-1.0.0"]
    app = tomlkit.parse((workspace_dir / "crates" / "app" / "Cargo.toml").read_text())
    assert "dev-dependencies" not in app or "core" not in app["dev-dependencies"]
