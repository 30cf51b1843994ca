"""Version command: change package versions and the requirements on them."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from wyvern.commands.base import CommandContext, SyncCommand, updates_message
from wyvern.filters import SelectionCriteria
from wyvern.manifest import (
    DependencyAction,
    EntryHandle,
    ManifestDocument,
    Visitor,
    edit_each,
    walk_dependencies,
    walk_workspace_dependencies,
)
from wyvern.versioning import Version, VersionReq, VersionTransform
from wyvern.workspace import DependencySection, Package


@dataclass
class VersionChange:
    """One package moved from ``old`` to ``new``."""

    name: str
    old: Version
    new: Version


@dataclass
class VersionResult:
    """Result of version command."""

    changes: list[VersionChange] = field(default_factory=list)
    dependencies_updated: int = 0

    @property
    def updates(self) -> dict[str, Version]:
        return {c.name: c.new for c in self.changes}


@dataclass
class VersionOptions:
    """Options for version command."""

    transform: VersionTransform
    criteria: SelectionCriteria = field(default_factory=SelectionCriteria)
    force_update: bool = False


def requirement_updater(updates: Mapping[str, Version], *, force_update: bool) -> Visitor:
    """Visitor moving path dependency requirements to the new versions.

    A requirement is rewritten when ``force_update`` is set or when it no
    longer matches the new version. A missing requirement is added, except
    in dev-dependencies.
    """

    def visit(
        name: str, _alias: str | None, entry: EntryHandle, section: DependencySection
    ) -> DependencyAction:
        new_version = updates.get(name)
        if new_version is None or not entry.is_path:
            return DependencyAction.UNTOUCHED

        current = entry.get("version")
        if current is not None:
            if not force_update and VersionReq.parse(str(current)).matches(new_version):
                return DependencyAction.UNTOUCHED
        elif section is DependencySection.DEV:
            return DependencyAction.UNTOUCHED

        entry.set("version", str(new_version))
        return DependencyAction.MUTATED

    return visit


class VersionCommand(SyncCommand[VersionResult]):
    """Apply a version transform to the selected packages.

    The selected manifests get their new ``package.version`` first. Then
    every package of the workspace, selected or not, has its path
    dependencies on the changed packages brought in line, and so does the
    root ``[workspace.dependencies]`` table.
    """

    def __init__(self, context: CommandContext, options: VersionOptions) -> None:
        super().__init__(context)
        self.options = options

    def _bump(self, pkg: Package, doc: ManifestDocument) -> VersionChange | None:
        if pkg.version_inherited:
            self.reporter.warn(
                f"{pkg.name} inherits its version from the workspace, skipping"
            )
            return None

        new_version = self.options.transform.apply(pkg.version)
        if new_version is None:
            self.reporter.warn(f"Cannot compute a new version for {pkg.name} ({pkg.version})")
            return None

        self.reporter.status("Bumping", f"{pkg.name}: {pkg.version} -> {new_version}")
        doc.set_value(("package", "version"), str(new_version))
        return VersionChange(pkg.name, pkg.version, new_version)

    def execute(self) -> VersionResult:
        predicate = self.context.predicate(self.options.criteria)
        selected = [p for p in self.workspace.members_deep() if predicate(p)]

        changes = [
            c for c in edit_each(selected, self._bump, reporter=self.reporter) if c is not None
        ]
        result = VersionResult(changes=changes)
        if not changes:
            self.reporter.status("Done", "No changes applied")
            return result

        visitor = requirement_updater(result.updates, force_update=self.options.force_update)
        self.reporter.status("Updating", "Dependency tree")

        def rewrite(pkg: Package, doc: ManifestDocument) -> int:
            self.reporter.status("Updating", pkg.name)
            count = walk_dependencies(doc, visitor, reporter=self.reporter)
            self.reporter.status("Done", updates_message(count))
            return count

        counts = edit_each(self.workspace.members_deep(), rewrite, reporter=self.reporter)
        result.dependencies_updated = sum(counts)

        if self.workspace.has_workspace_dependencies:
            root = ManifestDocument.load(self.workspace.manifest_path)
            count = walk_workspace_dependencies(root, visitor, reporter=self.reporter)
            if count:
                self.reporter.status("Updating", f"workspace dependencies: {updates_message(count)}")
            root.save()
            result.dependencies_updated += count

        return result


def version(
    context: CommandContext,
    transform: VersionTransform,
    *,
    criteria: SelectionCriteria | None = None,
    force_update: bool = False,
) -> VersionResult:
    """Convenience function to change versions.

    Raises:
        ConfigError: If the selection is invalid.
        ManifestIOError: If a manifest cannot be read or written.
    """
    options = VersionOptions(
        transform=transform,
        criteria=criteria or SelectionCriteria(),
        force_update=force_update,
    )
    return VersionCommand(context, options).execute()
