"""Git access for change detection."""

from wyvern.git.diff import get_changed_files_between
from wyvern.git.repo import get_repo_root, is_git_repo, resolve_commit, run_git_command

__all__ = [
    "get_changed_files_between",
    "get_repo_root",
    "is_git_repo",
    "resolve_commit",
    "run_git_command",
]
