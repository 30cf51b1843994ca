"""To-release command: list the packages to release, in release order."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from wyvern.commands.base import CommandContext, SyncCommand
from wyvern.commands.dev_deps import deactivate_dev_dependencies
from wyvern.filters import PackagePredicate, SelectionCriteria
from wyvern.workspace import DependencyGraph, Package, ensure_not_empty, write_dot_graph


@dataclass
class PlanOptions:
    """Options shared by every command working on the release order.

    Attributes:
        criteria: Package selection.
        include_dev: Keep path dev-dependencies instead of deactivating them.
        empty_package_is_failure: Fail when nothing is selected; ``None``
            uses the configured default.
        dot_graph: Write the graph of the ordered packages here.
    """

    criteria: SelectionCriteria = field(default_factory=SelectionCriteria)
    include_dev: bool = False
    empty_package_is_failure: bool | None = None
    dot_graph: Path | None = None


def format_packages(packages: Sequence[Package]) -> str:
    return ", ".join(str(p) for p in packages)


def packages_to_release(
    context: CommandContext,
    predicate: PackagePredicate,
    *,
    dot_graph: Path | None = None,
) -> list[Package]:
    """Selected packages in dependency-first order.

    Raises:
        CyclicDependencyError: If a cycle passes through a selected package.
    """
    graph = DependencyGraph(context.workspace.packages)
    order = graph.release_order(predicate, reporter=context.reporter)
    if dot_graph is not None:
        write_dot_graph(dot_graph, order, graph)
    return order


def plan_release(context: CommandContext, options: PlanOptions) -> list[Package]:
    """Select, deactivate dev-dependencies, and order.

    Returns an empty list when nothing is selected and that is not a failure.

    Raises:
        ConfigError: If the selection is invalid.
        NoPackagesError: If nothing is selected and that counts as a failure.
        CyclicDependencyError: If the selected packages form a cycle.
    """
    predicate = context.predicate(options.criteria)

    if not options.include_dev:
        context.reporter.status("Preparing", "Disabling Dev Dependencies")
        deactivate_dev_dependencies(
            [p for p in context.workspace.members if predicate(p)], context.reporter
        )
        context.refresh()

    packages = packages_to_release(context, predicate, dot_graph=options.dot_graph)

    fail = options.empty_package_is_failure
    if fail is None:
        fail = context.workspace.config.selection.empty_package_is_failure
    if not ensure_not_empty(packages, fail=fail, reporter=context.reporter):
        return []
    return packages


@dataclass
class ToReleaseResult:
    """Result of to-release command."""

    packages: list[Package] = field(default_factory=list)


class ToReleaseCommand(SyncCommand[ToReleaseResult]):
    """Print ``name (version)`` of every package to release, in order."""

    def __init__(self, context: CommandContext, options: PlanOptions | None = None) -> None:
        super().__init__(context)
        self.options = options or PlanOptions()

    def execute(self) -> ToReleaseResult:
        packages = plan_release(self.context, self.options)
        if packages:
            self.reporter.info(format_packages(packages))
        return ToReleaseResult(packages)
