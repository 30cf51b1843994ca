"""Git based change detection (--changed-since)."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from pathlib import Path

from wyvern.git import get_changed_files_between
from wyvern.reporter import Reporter
from wyvern.workspace import Workspace

# (repository directory, reference) -> changed absolute paths
DiffProvider = Callable[[Path, str], Iterable[Path]]


def changed_packages(workspace: Workspace, changed_paths: Iterable[Path]) -> set[str]:
    """Map changed paths to the names of the packages that contain them.

    A path belongs to the package whose directory encloses it most closely,
    so a change in a nested package does not mark its parent.
    """
    names: set[str] = set()
    for path in changed_paths:
        pkg = workspace.package_for_path(path)
        if pkg is not None:
            names.add(pkg.name)
    return names


def get_changed_packages(
    workspace: Workspace,
    reference: str,
    *,
    diff_provider: DiffProvider | None = None,
    reporter: Reporter | None = None,
) -> set[str]:
    """Names of the packages with files that differ from ``reference``.

    Args:
        workspace: Workspace instance.
        reference: Git reference to compare the current head with.
        diff_provider: Source of changed files, git by default.
        reporter: Output sink.

    Raises:
        GitError: If the workspace is not a repository or the reference is unknown.
    """
    if reporter is not None:
        reporter.status("Calculating", f"git diff since {reference}")
    provider = diff_provider or get_changed_files_between
    changed = list(provider(workspace.root, reference))
    names = changed_packages(workspace, changed)
    if reporter is not None:
        reporter.debug(f"{len(changed)} files changed, touching: {', '.join(sorted(names)) or '-'}")
    return names
