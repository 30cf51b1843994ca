"""Base command infrastructure."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, TypeVar

from wyvern.filters import DiffProvider, PackagePredicate, SelectionCriteria, build_predicate
from wyvern.reporter import Reporter
from wyvern.toolchain import CargoClient
from wyvern.workspace import Package, Workspace

TResult = TypeVar("TResult")


@dataclass
class CommandContext:
    """Context passed to all commands.

    Attributes:
        workspace: The workspace instance.
        reporter: Where status lines, warnings and errors go.
        dry_run: If True, show what would happen without publishing.
        env: Extra environment for external tools.
        diff_provider: Replaces the git diff for changed-since selection.
    """

    workspace: Workspace
    reporter: Reporter = field(default_factory=Reporter)
    dry_run: bool = False
    env: dict[str, str] = field(default_factory=dict)
    diff_provider: DiffProvider | None = None

    def predicate(self, criteria: SelectionCriteria) -> PackagePredicate:
        """Selection predicate for the current workspace.

        Raises:
            ConfigError: If the criteria are invalid.
            GitError: If changed files cannot be computed.
        """
        return build_predicate(
            criteria,
            self.workspace,
            diff_provider=self.diff_provider,
            reporter=self.reporter,
        )

    def refresh(self) -> Workspace:
        """Re-read the workspace after manifests were rewritten."""
        self.workspace = self.workspace.reload()
        return self.workspace


class Command(ABC, Generic[TResult]):
    """Base class for commands that talk to external tools.

    Commands encapsulate the logic for a specific operation.
    They receive a context and return a result.
    """

    def __init__(self, context: CommandContext) -> None:
        self.context = context
        self.reporter = context.reporter

    @property
    def workspace(self) -> Workspace:
        return self.context.workspace

    @abstractmethod
    async def execute(self) -> TResult:
        """Execute the command.

        Returns:
            Command-specific result.
        """
        ...


class SyncCommand(ABC, Generic[TResult]):
    """Base class for commands that only rewrite manifests."""

    def __init__(self, context: CommandContext) -> None:
        self.context = context
        self.reporter = context.reporter

    @property
    def workspace(self) -> Workspace:
        return self.context.workspace

    @abstractmethod
    def execute(self) -> TResult:
        """Execute the command synchronously.

        Returns:
            Command-specific result.
        """
        ...


def select(context: CommandContext, criteria: SelectionCriteria) -> list[Package]:
    """Packages of the whole workspace matching ``criteria``, members first."""
    predicate = context.predicate(criteria)
    return [p for p in context.workspace.members_deep() if predicate(p)]


def updates_message(count: int) -> str:
    if count == 0:
        return "No dependency updates"
    if count == 1:
        return "One dependency updated"
    return f"{count} dependencies updated"


def work_dir(workspace: Workspace) -> Path:
    """Directory for archives, scratch copies and build output."""
    configured = workspace.config.verify.target_dir
    if configured:
        return (workspace.root / configured).resolve()
    return workspace.root / "target" / "wyvern"


def cargo_client(context: CommandContext) -> CargoClient:
    """Cargo client configured from wyvern.yaml and the context environment."""
    config = context.workspace.config
    return CargoClient(
        config.toolchain.cargo,
        env={**config.env, **context.env},
        timeout=config.verify.timeout,
        registry=config.publish.registry,
        reporter=context.reporter,
    )
