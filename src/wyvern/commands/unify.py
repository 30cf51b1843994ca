"""Unify-deps command: inherit pinned dependency versions from the workspace."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from wyvern.commands.base import CommandContext, SyncCommand
from wyvern.errors import ConfigError
from wyvern.filters import SelectionCriteria
from wyvern.manifest import (
    ManifestDocument,
    edit_each,
    new_inline_table,
    resolve_identity,
    wrap_entry,
)
from wyvern.workspace import DependencySection, Package

UNIFIED_SECTIONS = (DependencySection.REGULAR, DependencySection.DEV)


@dataclass
class UnifyResult:
    """Result of unify-deps command.

    Attributes:
        unified: ``(package, dependency, previous requirement)`` per entry.
    """

    unified: list[tuple[str, str, str]] = field(default_factory=list)


def pinned_name(key: str, pin: Any) -> str:
    """The package a ``[workspace.dependencies]`` entry resolves to."""
    if isinstance(pin, Mapping) and pin.get("package"):
        return str(pin["package"])
    return key


class UnifyCommand(SyncCommand[UnifyResult]):
    """Replace local version requirements with ``workspace = true``.

    Only entries whose key is pinned in ``[workspace.dependencies]`` and that
    resolve to the same package are touched; entries without a local
    ``version`` are left alone.
    """

    def __init__(self, context: CommandContext, criteria: SelectionCriteria | None = None) -> None:
        super().__init__(context)
        self.criteria = criteria or SelectionCriteria()

    def _unify(
        self, pkg: Package, doc: ManifestDocument, pins: Mapping[str, str]
    ) -> list[tuple[str, str, str]]:
        unified: list[tuple[str, str, str]] = []
        for section in UNIFIED_SECTIONS:
            table = doc.table(section.key)
            if table is None:
                continue
            for key in list(table.keys()):
                if key not in pins:
                    continue
                value = table[key]

                if isinstance(value, str):
                    table[key] = new_inline_table({"workspace": True})
                    unified.append((pkg.name, key, str(value)))
                    continue

                entry = wrap_entry(value, table, key)
                if entry is None:
                    self.reporter.warn(f"Unsupported dependency format for {key}, skipping")
                    continue
                name, _ = resolve_identity(key, entry)
                if name != pins[key] or "version" not in entry:
                    continue

                previous = str(entry.get("version"))
                entry.remove("version")
                entry.promote("workspace", True)
                unified.append((pkg.name, key, previous))

        for package, dep, previous in unified:
            self.reporter.status(
                "Unifying", f"Unified {dep} @ {previous} of {package} -> workspace"
            )
        if unified:
            doc.mark_dirty()
        return unified

    def execute(self) -> UnifyResult:
        if not self.workspace.has_workspace_dependencies:
            raise ConfigError(
                "No workspace level dependencies, nothing to unify",
                path=self.workspace.manifest_path,
            )
        pins = {
            key: pinned_name(key, pin) for key, pin in self.workspace.workspace_dependencies.items()
        }

        predicate = self.context.predicate(self.criteria)
        selected = [p for p in self.workspace.members_deep() if predicate(p)]
        per_package = edit_each(
            selected,
            lambda pkg, doc: self._unify(pkg, doc, pins),
            reporter=self.reporter,
        )
        return UnifyResult(unified=[u for found in per_package for u in found])


def unify_dependencies(
    context: CommandContext, criteria: SelectionCriteria | None = None
) -> UnifyResult:
    """Convenience function to unify dependencies.

    Raises:
        ConfigError: If the root manifest has no ``[workspace.dependencies]``.
        ManifestIOError: If a manifest cannot be read or written.
    """
    return UnifyCommand(context, criteria).execute()
