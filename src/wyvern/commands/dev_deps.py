"""De-dev-deps command: drop path dev-dependencies before ordering."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from wyvern.commands.base import CommandContext, SyncCommand
from wyvern.filters import SelectionCriteria
from wyvern.manifest import (
    DependencyAction,
    EntryHandle,
    ManifestDocument,
    edit_each,
    walk_dependencies,
)
from wyvern.reporter import Reporter
from wyvern.workspace import DependencySection, Package


def _drop_path_dev(
    _name: str, _alias: str | None, entry: EntryHandle, section: DependencySection
) -> DependencyAction:
    if section is DependencySection.DEV and entry.is_path:
        return DependencyAction.REMOVE
    return DependencyAction.UNTOUCHED


def deactivate_dev_dependencies(packages: Iterable[Package], reporter: Reporter) -> int:
    """Remove every path dev-dependency of ``packages``, per target too.

    Dev-only cycles between workspace packages are common and would make the
    release order fail; published packages never carry those entries.

    Returns:
        Number of entries removed.
    """

    def patch(pkg: Package, doc: ManifestDocument) -> int:
        reporter.status("Patching", pkg.name)
        return walk_dependencies(doc, _drop_path_dev, reporter=reporter)

    return sum(edit_each(packages, patch, reporter=reporter))


@dataclass
class DeDevDepsResult:
    """Result of de-dev-deps command."""

    packages: list[str] = field(default_factory=list)
    removed: int = 0


class DeDevDepsCommand(SyncCommand[DeDevDepsResult]):
    """Deactivate path dev-dependencies of the selected members."""

    def __init__(self, context: CommandContext, criteria: SelectionCriteria | None = None) -> None:
        super().__init__(context)
        self.criteria = criteria or SelectionCriteria()

    def execute(self) -> DeDevDepsResult:
        predicate = self.context.predicate(self.criteria)
        selected = [p for p in self.workspace.members if predicate(p)]

        self.reporter.status("Preparing", "Disabling Dev Dependencies")
        removed = deactivate_dev_dependencies(selected, self.reporter)
        self.context.refresh()
        return DeDevDepsResult([p.name for p in selected], removed)
