"""Pointing an unpacked package at already verified dependencies."""

from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path

import tomlkit

from wyvern.manifest import DependencyAction, EntryHandle, ManifestDocument, walk_dependencies
from wyvern.workspace import DependencySection

# package name -> directory of its verified copy
ReplacementMap = dict[str, Path]


def inject_replacements(manifest_path: Path, replacements: Mapping[str, Path]) -> int:
    """Rewrite a standalone manifest to use local copies of dependencies.

    Every dependency resolving to a name in ``replacements`` gets a ``path``
    to that copy. An empty ``[workspace]`` table makes the package its own
    workspace root, so a workspace further up the directory tree is ignored.

    Returns:
        Number of dependencies redirected.

    Raises:
        ManifestIOError: If the manifest cannot be read or written.
    """
    doc = ManifestDocument.load(manifest_path)

    def redirect(
        name: str, _alias: str | None, entry: EntryHandle, _section: DependencySection
    ) -> DependencyAction:
        target = replacements.get(name)
        if target is None:
            return DependencyAction.UNTOUCHED
        entry.set("path", str(target))
        return DependencyAction.MUTATED

    count = walk_dependencies(doc, redirect)
    if doc.table("workspace") is None:
        doc.document.add("workspace", tomlkit.table())
        doc.mark_dirty()
    doc.save()
    return count
