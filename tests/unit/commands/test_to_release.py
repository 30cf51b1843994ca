"""Tests for the to-release command."""

from pathlib import Path

import pytest

from wyvern.commands import CommandContext, PlanOptions, ToReleaseCommand, plan_release
from wyvern.errors import CyclicDependencyError, NoPackagesError
from wyvern.filters import SelectionCriteria


def add_dev_cycle(workspace_dir: Path) -> None:
    core = workspace_dir / "crates" / "core" / "Cargo.toml"
    core.write_text(core.read_text() + '\n[dev-dependencies]\napp = { path = "../app" }\n')


def test_release_order(context: CommandContext):
    result = ToReleaseCommand(context).execute()

    assert [p.name for p in result.packages] == ["core", "utils", "app"]
    assert "core (1.0.0), utils (1.0.0), app (0.3.0)" in context.reporter.out


def test_unpublished_packages_are_left_out(context: CommandContext):
    options = PlanOptions(SelectionCriteria(ignore_publish=True))

    packages = plan_release(context, options)

    assert [p.name for p in packages] == ["core", "utils", "app", "internal"]


def test_dev_dependencies_are_deactivated(context: CommandContext, workspace_dir: Path):
    add_dev_cycle(workspace_dir)
    context.refresh()

    packages = plan_release(context, PlanOptions())

    assert [p.name for p in packages] == ["core", "utils", "app"]
    assert "[dev-dependencies]\n" in (workspace_dir / "crates" / "core" / "Cargo.toml").read_text()
    assert "app = { path" not in (workspace_dir / "crates" / "core" / "Cargo.toml").read_text()


def test_include_dev_keeps_cycles(context: CommandContext, workspace_dir: Path):
    add_dev_cycle(workspace_dir)
    context.refresh()

    with pytest.raises(CyclicDependencyError) as exc_info:
        plan_release(context, PlanOptions(include_dev=True))

    assert set(exc_info.value.cycle) >= {"core", "app"}


def test_empty_selection(context: CommandContext):
    options = PlanOptions(SelectionCriteria(packages=("^nothing$",)))

    assert plan_release(context, options) == []
    assert "No packages selected. All good. Exiting." in context.reporter.out


def test_empty_selection_as_failure(context: CommandContext):
    options = PlanOptions(SelectionCriteria(packages=("^nothing$",)), empty_package_is_failure=True)

    with pytest.raises(NoPackagesError):
        plan_release(context, options)


def test_empty_selection_failure_from_config(context: CommandContext, workspace_dir: Path):
    (workspace_dir / "wyvern.yaml").write_text("selection:\n  empty_package_is_failure: true\n")
    context.refresh()

    with pytest.raises(NoPackagesError):
        plan_release(context, PlanOptions(SelectionCriteria(packages=("^nothing$",))))


def test_dot_graph(context: CommandContext, temp_dir: Path):
    out = temp_dir / "release.dot"

    plan_release(context, PlanOptions(dot_graph=out))

    text = out.read_text()
    assert '"utils@1.0.0" -> "core@1.0.0";' in text
    assert '"app@0.3.0" -> "utils@1.0.0";' in text
