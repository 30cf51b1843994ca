"""Test git since filtering."""

from pathlib import Path
from unittest.mock import patch

import pytest

from wyvern.errors import GitError
from wyvern.filters import changed_packages, get_changed_packages
from wyvern.workspace import Workspace


def test_changed_packages_maps_paths(workspace: Workspace, workspace_dir: Path):
    crates = workspace_dir / "crates"

    names = changed_packages(
        workspace,
        [
            crates / "core" / "src" / "lib.rs",
            crates / "core" / "Cargo.toml",
            crates / "app" / "README.md",
            workspace_dir / "Cargo.lock",
        ],
    )

    assert names == {"core", "app"}


def test_nested_package_does_not_mark_parent(temp_dir: Path):
    (temp_dir / "Cargo.toml").write_text(
        '[package]\nname = "outer"\nversion = "1.0.0"\n\n'
        '[dependencies]\ninner = { path = "inner", version = "1.0.0" }\n'
    )
    (temp_dir / "inner").mkdir()
    (temp_dir / "inner" / "Cargo.toml").write_text('[package]\nname = "inner"\nversion = "1.0.0"\n')
    ws = Workspace.discover(temp_dir)

    assert changed_packages(ws, [temp_dir / "inner" / "src" / "lib.rs"]) == {"inner"}
    assert changed_packages(ws, [temp_dir / "src" / "main.rs"]) == {"outer"}


def test_get_changed_packages_uses_git_by_default(workspace: Workspace, workspace_dir: Path, reporter):
    with patch("wyvern.filters.since.get_changed_files_between") as mock_files:
        mock_files.return_value = [workspace_dir / "crates" / "utils" / "Cargo.toml"]

        names = get_changed_packages(workspace, "main", reporter=reporter)

    assert names == {"utils"}
    mock_files.assert_called_once_with(workspace_dir, "main")
    assert "git diff since main" in reporter.out


def test_git_errors_propagate(workspace: Workspace):
    def provider(root: Path, reference: str):
        raise GitError(f"Reference '{reference}' not found in git repository")

    with pytest.raises(GitError, match="not found"):
        get_changed_packages(workspace, "missing", diff_provider=provider)
