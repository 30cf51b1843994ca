"""wyvern - release tool for cargo workspaces.

Automates the release of many packages living in one workspace:
- Package selection by pattern, publish policy, pre-release tag and git changes
- Dependency-first release order with cycle detection
- Format-preserving version, rename and dependency unification edits
- Verification of packaged archives and feature-combination independence
- Rate-limited publishing in release order
"""

from wyvern.config import WyvernConfig, load_config
from wyvern.errors import (
    ConfigError,
    CyclicDependencyError,
    DriftError,
    GitError,
    GraphError,
    ManifestIOError,
    NoPackagesError,
    PackageNotFoundError,
    PackagingError,
    RegistryError,
    SoftCheckError,
    UnresolvedDependencyError,
    VerificationFailure,
    WorkspaceNotFoundError,
    WyvernError,
)
from wyvern.execution import CellResult, ExecutionResult, ExecutionStatus, ParallelExecutor
from wyvern.reporter import Reporter
from wyvern.versioning import Version, VersionReq, VersionTransform
from wyvern.workspace import DependencyGraph, Package, Workspace

__version__ = "0.1.0"

__all__ = [
    # Version
    "__version__",
    # Core
    "Workspace",
    "Package",
    "DependencyGraph",
    "WyvernConfig",
    "load_config",
    "Reporter",
    # Versioning
    "Version",
    "VersionReq",
    "VersionTransform",
    # Execution
    "ExecutionResult",
    "ExecutionStatus",
    "CellResult",
    "ParallelExecutor",
    # Errors
    "WyvernError",
    "ConfigError",
    "WorkspaceNotFoundError",
    "PackageNotFoundError",
    "GraphError",
    "CyclicDependencyError",
    "UnresolvedDependencyError",
    "ManifestIOError",
    "NoPackagesError",
    "SoftCheckError",
    "PackagingError",
    "VerificationFailure",
    "DriftError",
    "RegistryError",
    "GitError",
]
