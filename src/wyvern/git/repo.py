"""Thin wrapper over the git executable."""

from __future__ import annotations

import subprocess
from pathlib import Path

from wyvern.errors import GitError


def run_git_command(
    args: list[str],
    cwd: Path | None = None,
    *,
    check: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Run a git command synchronously.

    Args:
        args: Git command arguments (without 'git').
        cwd: Working directory.
        check: Raise on non-zero exit code.

    Returns:
        Completed process result.

    Raises:
        GitError: If git is missing, or the command fails and check is True.
    """
    cmd = ["git", *args]

    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            check=False,
        )
    except FileNotFoundError as e:
        raise GitError("Git is not installed") from e

    if check and result.returncode != 0:
        raise GitError(
            result.stderr.strip() or f"Command failed with exit code {result.returncode}",
            command=" ".join(cmd),
        )
    return result


def is_git_repo(path: Path) -> bool:
    """Check if path is inside a git repository."""
    try:
        result = run_git_command(["rev-parse", "--git-dir"], cwd=path, check=False)
    except GitError:
        return False
    return result.returncode == 0


def get_repo_root(path: Path) -> Path:
    """Get the top level directory of the repository containing ``path``.

    Raises:
        GitError: If not inside a git repository.
    """
    if not is_git_repo(path):
        raise GitError(f"Workspace at {path} isn't a git repo")
    result = run_git_command(["rev-parse", "--show-toplevel"], cwd=path)
    return Path(result.stdout.strip()).resolve()


def resolve_commit(root: Path, reference: str) -> str:
    """Resolve a branch, tag or revision to a commit id.

    Raises:
        GitError: If the reference does not name a commit.
    """
    result = run_git_command(
        ["rev-parse", "--verify", "--quiet", f"{reference}^{{commit}}"],
        cwd=root,
        check=False,
    )
    if result.returncode != 0:
        raise GitError(f"Reference '{reference}' not found in git repository")
    return result.stdout.strip()
