"""Format preserving manifest editing."""

from wyvern.manifest.document import ManifestDocument
from wyvern.manifest.entry import (
    EntryHandle,
    EntryKind,
    InlineEntry,
    TableEntry,
    new_inline_table,
    wrap_entry,
)
from wyvern.manifest.walker import (
    DependencyAction,
    Visitor,
    dependency_tables,
    edit_each,
    resolve_identity,
    strip_feature_references,
    walk_dependencies,
    walk_workspace_dependencies,
)

__all__ = [
    "DependencyAction",
    "EntryHandle",
    "EntryKind",
    "InlineEntry",
    "ManifestDocument",
    "TableEntry",
    "Visitor",
    "dependency_tables",
    "edit_each",
    "new_inline_table",
    "resolve_identity",
    "strip_feature_references",
    "walk_dependencies",
    "walk_workspace_dependencies",
    "wrap_entry",
]
