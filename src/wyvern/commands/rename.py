"""Rename command implementation."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from wyvern.commands.base import CommandContext, SyncCommand, updates_message
from wyvern.errors import ConfigError, PackageNotFoundError
from wyvern.manifest import (
    DependencyAction,
    EntryHandle,
    ManifestDocument,
    Visitor,
    edit_each,
    walk_dependencies,
    walk_workspace_dependencies,
)
from wyvern.workspace import DependencySection, Package


@dataclass
class RenameResult:
    """Result of rename command."""

    renamed: dict[str, str] = field(default_factory=dict)
    dependencies_updated: int = 0


def alias_updater(renames: Mapping[str, str]) -> Visitor:
    """Visitor pointing path dependencies on renamed packages to the new name.

    The entry key stays; a ``package`` field now names the renamed package.
    """

    def visit(
        name: str, _alias: str | None, entry: EntryHandle, _section: DependencySection
    ) -> DependencyAction:
        new_name = renames.get(name)
        if new_name is None or not entry.is_path:
            return DependencyAction.UNTOUCHED
        entry.set("package", new_name)
        return DependencyAction.MUTATED

    return visit


class RenameCommand(SyncCommand[RenameResult]):
    """Rename a package and keep every reference to it resolving."""

    def __init__(self, context: CommandContext, old_name: str, new_name: str) -> None:
        super().__init__(context)
        self.old_name = old_name.strip()
        self.new_name = new_name.strip()

    def _rename(self, pkg: Package, doc: ManifestDocument) -> tuple[str, str]:
        self.reporter.status("Renaming", f"{pkg.name} -> {self.new_name}")
        doc.set_value(("package", "name"), self.new_name)
        return pkg.name, self.new_name

    def execute(self) -> RenameResult:
        if not self.new_name:
            raise ConfigError("The new package name must not be empty")

        selected = [p for p in self.workspace.members_deep() if p.name.strip() == self.old_name]
        if not selected:
            raise PackageNotFoundError(self.old_name)
        if self.new_name != self.old_name and self.new_name in self.workspace.packages:
            raise ConfigError(f"Package '{self.new_name}' already exists in the workspace")

        result = RenameResult(renamed=dict(edit_each(selected, self._rename, reporter=self.reporter)))

        visitor = alias_updater(result.renamed)
        self.reporter.status("Updating", "Dependency tree")

        def rewrite(pkg: Package, doc: ManifestDocument) -> int:
            self.reporter.status("Updating", pkg.name)
            count = walk_dependencies(doc, visitor, reporter=self.reporter)
            self.reporter.status("Done", updates_message(count))
            return count

        result.dependencies_updated = sum(
            edit_each(self.workspace.members_deep(), rewrite, reporter=self.reporter)
        )

        if self.workspace.has_workspace_dependencies:
            root = ManifestDocument.load(self.workspace.manifest_path)
            count = walk_workspace_dependencies(root, visitor, reporter=self.reporter)
            if count:
                self.reporter.status("Updating", f"workspace dependencies: {updates_message(count)}")
            root.save()
            result.dependencies_updated += count
        return result


def rename(context: CommandContext, old_name: str, new_name: str) -> RenameResult:
    """Convenience function to rename a package.

    Raises:
        PackageNotFoundError: If no package is named ``old_name``.
        ManifestIOError: If a manifest cannot be read or written.
    """
    return RenameCommand(context, old_name, new_name).execute()
