"""Visiting and editing the dependency entries of manifests."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator, MutableMapping
from enum import Enum
from typing import Any, TypeVar

from tomlkit.items import Array

from wyvern.manifest.document import ManifestDocument
from wyvern.manifest.entry import EntryHandle, wrap_entry
from wyvern.reporter import Reporter
from wyvern.workspace.package import DependencySection, Package

R = TypeVar("R")


class DependencyAction(Enum):
    """What a visitor did with an entry."""

    UNTOUCHED = "untouched"
    MUTATED = "mutated"
    REMOVE = "remove"


# (resolved name, entry key if aliased, entry, section) -> action
Visitor = Callable[[str, "str | None", EntryHandle, DependencySection], DependencyAction]


def dependency_tables(
    doc: ManifestDocument,
) -> Iterator[tuple[MutableMapping[str, Any], DependencySection]]:
    """Every dependency table: the top level ones, then those under each target."""
    for section in DependencySection:
        table = doc.table(section.key)
        if table is not None:
            yield table, section

    targets = doc.table("target")
    if targets is None:
        return
    for target in list(targets.keys()):
        for section in DependencySection:
            table = doc.table("target", target, section.key)
            if table is not None:
                yield table, section


def resolve_identity(key: str, entry: EntryHandle) -> tuple[str, str | None]:
    """Return the package an entry refers to and its key when that is an alias."""
    package = entry.get("package")
    if package:
        return str(package), key
    return key, None


def _walk_table(
    table: MutableMapping[str, Any],
    section: DependencySection,
    visitor: Visitor,
    reporter: Reporter | None,
) -> tuple[int, list[str]]:
    counter = 0
    removed: list[str] = []
    for key in list(table.keys()):
        value = table[key]
        entry = wrap_entry(value, table, key)
        if entry is None:
            if not isinstance(value, str) and reporter is not None:
                reporter.warn(f"Unsupported dependency format for {key}, skipping")
            continue

        name, alias = resolve_identity(key, entry)
        action = visitor(name, alias, entry, section)
        if action is DependencyAction.REMOVE:
            del table[key]
            removed.append(key)
            counter += 1
        elif action is DependencyAction.MUTATED:
            counter += 1
    return counter, removed


def strip_feature_references(doc: ManifestDocument, names: Iterable[str]) -> int:
    """Remove ``"name"`` and ``"name/..."`` from every feature array.

    Returns:
        Number of array elements removed.
    """
    names = set(names)
    features = doc.table("features")
    if features is None or not names:
        return 0

    stripped = 0
    for feature in list(features.keys()):
        refs = features[feature]
        if not isinstance(refs, Array):
            continue
        for idx in reversed(range(len(refs))):
            ref = refs[idx]
            if not isinstance(ref, str):
                continue
            ref = ref.strip()
            if ref in names or any(ref.startswith(f"{n}/") for n in names):
                del refs[idx]
                stripped += 1
    if stripped:
        doc.mark_dirty()
    return stripped


def walk_dependencies(
    doc: ManifestDocument,
    visitor: Visitor,
    *,
    reporter: Reporter | None = None,
) -> int:
    """Call ``visitor`` on every table-style dependency entry of a manifest.

    Bare ``name = "1.0"`` entries are not visited. Removing an entry also
    removes the feature references to it.

    Returns:
        Number of entries that were mutated or removed.
    """
    counter = 0
    removed: list[str] = []
    for table, section in dependency_tables(doc):
        count, gone = _walk_table(table, section, visitor, reporter)
        counter += count
        removed.extend(gone)

    strip_feature_references(doc, removed)
    if counter:
        doc.mark_dirty()
    return counter


def walk_workspace_dependencies(
    doc: ManifestDocument,
    visitor: Visitor,
    *,
    reporter: Reporter | None = None,
) -> int:
    """Call ``visitor`` on the entries of the root ``[workspace.dependencies]`` table."""
    table = doc.table("workspace", "dependencies")
    if table is None:
        return 0
    counter, _ = _walk_table(table, DependencySection.REGULAR, visitor, reporter)
    if counter:
        doc.mark_dirty()
    return counter


def edit_each(
    packages: Iterable[Package],
    fn: Callable[[Package, ManifestDocument], R],
    *,
    reporter: Reporter | None = None,
) -> list[R]:
    """Load, edit and save the manifest of every package.

    The first failure aborts; manifests written before it stay written.
    A manifest is only rewritten when ``fn`` changed it.
    """
    results: list[R] = []
    for pkg in packages:
        doc = ManifestDocument.load(pkg.manifest_path)
        results.append(fn(pkg, doc))
        if doc.save() and reporter is not None:
            reporter.debug(f"Wrote {pkg.manifest_path}")
    return results
