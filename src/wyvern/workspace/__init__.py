"""Workspace model, discovery and dependency graph."""

from wyvern.workspace.graph import DependencyGraph, ensure_not_empty, write_dot_graph
from wyvern.workspace.package import (
    Dependency,
    DependencySection,
    Package,
    PackageMetadata,
    PublishPolicy,
    SourceKind,
)
from wyvern.workspace.workspace import MANIFEST_NAME, Workspace, load_package, read_manifest

__all__ = [
    "MANIFEST_NAME",
    "Dependency",
    "DependencyGraph",
    "DependencySection",
    "Package",
    "PackageMetadata",
    "PublishPolicy",
    "SourceKind",
    "Workspace",
    "ensure_not_empty",
    "load_package",
    "read_manifest",
    "write_dot_graph",
]
