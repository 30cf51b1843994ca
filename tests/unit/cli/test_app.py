"""Tests for CLI application entry point using CliRunner."""

from pathlib import Path
from types import SimpleNamespace
from unittest.mock import patch

import tomlkit
from typer.testing import CliRunner

from wyvern.cli.app import app

runner = CliRunner()


def invoke(workspace_dir: Path, *args: str):
    return runner.invoke(app, ["-m", str(workspace_dir), *args])


def read(workspace_dir: Path, name: str):
    return tomlkit.parse((workspace_dir / "crates" / name / "Cargo.toml").read_text())


def test_version_flag():
    with patch("wyvern.__version__", "1.2.3"):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "wyvern 1.2.3" in result.stdout


def test_to_release(workspace_dir: Path):
    result = invoke(workspace_dir, "to-release")

    assert result.exit_code == 0, result.output
    assert "core (1.0.0), utils (1.0.0), app (0.3.0)" in result.output


def test_to_release_with_selection(workspace_dir: Path):
    result = invoke(workspace_dir, "to-release", "-p", "^app$", "-p", "^utils$")

    assert result.exit_code == 0, result.output
    assert "utils (1.0.0), app (0.3.0)" in result.output


def test_empty_selection_is_failure(workspace_dir: Path):
    result = invoke(workspace_dir, "to-release", "-p", "^nothing$", "--empty-package-is-failure")

    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "No packages matching criteria" in result.output


def test_empty_selection_is_ok(workspace_dir: Path):
    result = invoke(workspace_dir, "to-release", "-p", "^nothing$")

    assert result.exit_code == 0
    assert "No packages selected" in result.output


def test_mutually_exclusive_options(workspace_dir: Path):
    result = invoke(workspace_dir, "to-release", "-p", "core", "-s", "app")

    assert result.exit_code == 1
    assert "mutually exclusive" in result.output


def test_missing_workspace(temp_dir: Path):
    result = invoke(temp_dir / "nowhere", "to-release")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_version_bump_major(workspace_dir: Path):
    result = invoke(workspace_dir, "version", "bump-major", "-p", "^core$")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "core")["package"]["version"] == "2.0.0"
    assert read(workspace_dir, "utils")["dependencies"]["core"]["version"] == "2.0.0"
    assert read(workspace_dir, "utils")["package"]["version"] == "1.0.0"


def test_version_set(workspace_dir: Path):
    result = invoke(workspace_dir, "version", "set", "0.4.0-rc.1", "-p", "^app$")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "app")["package"]["version"] == "0.4.0-rc.1"


def test_version_bump_to_dev_with_tag(workspace_dir: Path):
    result = invoke(workspace_dir, "version", "bump-to-dev", "--pre-tag", "alpha", "-p", "^app$")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "app")["package"]["version"] == "0.4.0-alpha"


def test_version_set_invalid(workspace_dir: Path):
    result = invoke(workspace_dir, "version", "set", "not-a-version")

    assert result.exit_code == 1
    assert "Error:" in result.output


def test_set_refuses_name(workspace_dir: Path):
    result = invoke(workspace_dir, "set", "package", "name", "other")

    assert result.exit_code == 1
    assert "rename command" in result.output


def test_set_field(workspace_dir: Path):
    result = invoke(workspace_dir, "set", "package", "publish", "false", "-p", "^core$")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "core")["package"]["publish"] is False


def test_rename(workspace_dir: Path):
    result = invoke(workspace_dir, "rename", "core", "kernel")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "utils")["dependencies"]["core"]["package"] == "kernel"


def test_unify_deps(workspace_dir: Path):
    result = invoke(workspace_dir, "unify-deps")

    assert result.exit_code == 0, result.output
    assert read(workspace_dir, "core")["dependencies"]["log"].unwrap() == {"workspace": True}


def test_de_dev_deps(workspace_dir: Path):
    result = invoke(workspace_dir, "de-dev-deps")

    assert result.exit_code == 0, result.output
    assert "core" not in read(workspace_dir, "app")["dev-dependencies"]


def test_check_uses_cargo_client(workspace_dir: Path, toolchain):
    with patch("wyvern.commands.check.cargo_client", return_value=toolchain):
        result = invoke(workspace_dir, "check", "--build")

    assert result.exit_code == 0, result.output
    assert "Checked 3 packages" in result.output
    assert toolchain.packed == ["core", "utils", "app"]


def cargo(toolchain, registry) -> SimpleNamespace:
    """A client that packages like ``toolchain`` and publishes to ``registry``."""
    return SimpleNamespace(
        compile=toolchain.compile,
        package=toolchain.package,
        unpack=toolchain.unpack,
        publish=registry.publish,
        add_owner=registry.add_owner,
    )


def test_unleash_dry_run(workspace_dir: Path, toolchain, registry):
    with patch("wyvern.commands.release.cargo_client", return_value=cargo(toolchain, registry)):
        result = invoke(workspace_dir, "unleash", "--dry-run", "--no-check", "-t", "tok")

    assert result.exit_code == 0, result.output
    assert registry.published == ["core", "utils", "app"]
    assert registry.dry_runs == [True] * 3
    assert registry.tokens == ["tok"] * 3
    assert "Checked 3 packages" in result.output


def test_unleash_registry_failure(workspace_dir: Path, toolchain, registry):
    registry.rejected = {"utils"}

    with patch("wyvern.commands.release.cargo_client", return_value=cargo(toolchain, registry)):
        result = invoke(workspace_dir, "unleash", "--no-check", "-t", "tok")

    assert result.exit_code == 1
    assert "Registry request for utils failed" in result.output
    assert "Already published: core" in result.output


def test_independence_unknown_mode(workspace_dir: Path):
    result = invoke(workspace_dir, "independence-check", "--mode", "doc")

    assert result.exit_code == 1
    assert "Unknown check type: doc" in result.output


def test_independence_check(workspace_dir: Path, toolchain):
    with patch("wyvern.commands.independence.cargo_client", return_value=toolchain):
        result = invoke(workspace_dir, "independence-check", "-p", "^core$", "--mode", "check")

    assert result.exit_code == 0, result.output
    assert len(toolchain.calls) == 2
