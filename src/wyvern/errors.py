"""Exception hierarchy for wyvern.

Every error raised on purpose derives from :class:`WyvernError` and carries a
human readable ``message``. The CLI prints that message and exits non-zero.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path


class WyvernError(Exception):
    """Base class for all wyvern errors.

    Attributes:
        message: Human readable description of the problem.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


class ConfigError(WyvernError):
    """Invalid options or configuration, detected before any work starts."""

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        if path is not None:
            message = f"{message} ({path})"
        super().__init__(message)
        self.path = path


class WorkspaceNotFoundError(WyvernError):
    """No workspace manifest at the given location."""

    def __init__(self, path: Path) -> None:
        super().__init__(f"No Cargo.toml found at {path}")
        self.path = path


class PackageNotFoundError(WyvernError):
    """A package name does not exist in the workspace."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Package '{name}' not found in workspace")
        self.name = name


class GraphError(WyvernError):
    """The package graph cannot be resolved."""


class CyclicDependencyError(GraphError):
    """The selected packages contain a dependency cycle.

    Attributes:
        cycle: Package names along the cycle, first name repeated at the end.
    """

    def __init__(self, cycle: Sequence[str]) -> None:
        self.cycle = list(cycle)
        super().__init__(f"Cyclic dependency detected: {' -> '.join(self.cycle)}")


class UnresolvedDependencyError(GraphError):
    """A path dependency points somewhere without a package manifest."""

    def __init__(self, package: str, dependency: str, path: Path) -> None:
        super().__init__(
            f"{package} depends on {dependency} at {path}, but no package was found there"
        )
        self.package = package
        self.dependency = dependency
        self.path = path


class ManifestIOError(WyvernError):
    """Reading, parsing or writing a single manifest failed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"Failed to process manifest {path}: {reason}")
        self.path = path
        self.reason = reason


class NoPackagesError(WyvernError):
    """No package matched the selection and that was configured as fatal."""

    def __init__(self) -> None:
        super().__init__("No packages matching criteria. Exiting")


class SoftCheckError(WyvernError):
    """Metadata or dependency checks failed for one or more packages."""

    def __init__(self, problems: Sequence[str]) -> None:
        self.problems = list(problems)
        details = "\n".join(f"  - {p}" for p in self.problems)
        super().__init__(f"Soft checks failed with {len(self.problems)} errors:\n{details}")


class PackagingError(WyvernError):
    """Creating or unpacking the distributable archive of a package failed."""

    def __init__(self, package: str, reason: str) -> None:
        super().__init__(f"Failure packing {package}: {reason}")
        self.package = package
        self.reason = reason


class VerificationFailure(WyvernError):
    """One or more verification cells failed to compile.

    Attributes:
        failures: One description per failed cell.
    """

    def __init__(self, failures: Sequence[str]) -> None:
        self.failures = list(failures)
        details = "\n".join(f"  - {f}" for f in self.failures)
        super().__init__(f"Verification failed for {len(self.failures)} case(s):\n{details}")


class DriftError(WyvernError):
    """A build step modified tracked source files of the scratch copy."""

    def __init__(self, package: str, path: Path) -> None:
        super().__init__(
            f"Source directory of {package} was modified during the build: {path}. "
            "Build steps must not modify anything outside of their output directory."
        )
        self.package = package
        self.path = path


class RegistryError(WyvernError):
    """The registry rejected a publish or an owner change.

    Attributes:
        package: The package the request was about.
        published: Packages that were already published before the failure.
    """

    def __init__(
        self,
        package: str,
        reason: str,
        *,
        published: Sequence[str] = (),
    ) -> None:
        message = f"Registry request for {package} failed: {reason}"
        if published:
            message += f"\nAlready published: {', '.join(published)}"
        super().__init__(message)
        self.package = package
        self.reason = reason
        self.published = list(published)


class GitError(WyvernError):
    """Git command failed."""

    def __init__(self, message: str, *, command: str | None = None) -> None:
        if command:
            message = f"{message} (command: {command})"
        super().__init__(message)
        self.command = command
