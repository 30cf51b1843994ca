"""Test tree diffs."""

from pathlib import Path
from unittest.mock import MagicMock, patch

from wyvern.git.diff import get_changed_files_between


def test_changed_files_are_absolute_and_sorted():
    root = Path("/repo")
    with (
        patch("wyvern.git.diff.get_repo_root", return_value=root),
        patch("wyvern.git.diff.resolve_commit", side_effect=["head-sha", "base-sha"]),
        patch("wyvern.git.diff.run_git_command") as mock_run,
    ):
        mock_run.return_value = MagicMock(
            returncode=0, stdout="crates/b/src/lib.rs\ncrates/a/Cargo.toml\n\n"
        )

        files = get_changed_files_between(Path("/repo/crates"), "v1")

    assert files == [root / "crates/a/Cargo.toml", root / "crates/b/src/lib.rs"]
    args = mock_run.call_args[0][0]
    assert args == ["diff", "--name-only", "--no-renames", "base-sha", "head-sha"]


def test_no_changes():
    with (
        patch("wyvern.git.diff.get_repo_root", return_value=Path("/repo")),
        patch("wyvern.git.diff.resolve_commit", return_value="sha"),
        patch("wyvern.git.diff.run_git_command") as mock_run,
    ):
        mock_run.return_value = MagicMock(returncode=0, stdout="")

        assert get_changed_files_between(Path("/repo"), "HEAD") == []
