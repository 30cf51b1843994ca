"""Tree to tree diffs."""

from __future__ import annotations

from pathlib import Path

from wyvern.git.repo import get_repo_root, resolve_commit, run_git_command


def get_changed_files_between(root: Path, reference: str) -> list[Path]:
    """Files that differ between the committed ``HEAD`` and ``reference``.

    Only committed trees are compared; uncommitted work does not count.

    Args:
        root: Any directory inside the repository.
        reference: Branch, tag or commit to compare against.

    Returns:
        Absolute paths, sorted.

    Raises:
        GitError: If the directory is not a repository or a reference is unknown.
    """
    repo_root = get_repo_root(root)
    head = resolve_commit(repo_root, "HEAD")
    base = resolve_commit(repo_root, reference)

    result = run_git_command(
        ["diff", "--name-only", "--no-renames", base, head],
        cwd=repo_root,
    )
    return sorted(repo_root / line for line in result.stdout.splitlines() if line.strip())
