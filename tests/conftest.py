"""Shared test fixtures for wyvern tests."""

from __future__ import annotations

import io
import subprocess
import tarfile
import tempfile
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import pytest
from dotenv import load_dotenv
from rich.console import Console

from wyvern.commands import CommandContext
from wyvern.errors import PackagingError
from wyvern.execution import ExecutionResult
from wyvern.reporter import Reporter
from wyvern.toolchain import CompileMode, archive_path, unpack_archive
from wyvern.versioning import Version
from wyvern.workspace import Package, Workspace

# Load .env from project root (doesn't override existing env vars)
load_dotenv(Path(__file__).parent.parent / ".env")


ROOT_MANIFEST = """\
# Release test workspace
[workspace]
members = ["crates/*"]
resolver = "2"

[workspace.dependencies]
serde = { version = "1.0", features = ["derive"] }
log = "0.4"
"""

CORE_MANIFEST = """\
[package]
name = "core"
version = "1.0.0"
edition = "2021"
description = "Core types"
license = "MIT"
repository = "https://example.com/wyvern"

[dependencies]
log = "0.4" # logging

[features]
std = []
"""

UTILS_MANIFEST = """\
[package]
name = "utils"
version = "1.0.0"
edition = "2021"
description = "Helpers"
license = "MIT"
repository = "https://example.com/wyvern"

[dependencies]
core = { path = "../core", version = "1.0.0" }
serde = { version = "1.0", optional = true }

[features]
default = ["std"]
std = ["core/std"]
serde = ["dep:serde"]
"""

APP_MANIFEST = """\
[package]
name = "app"
version = "0.3.0"
edition = "2021"
description = "The application"
license = "MIT"
repository = "https://example.com/wyvern"

[dependencies]
utils = { path = "../utils", version = "1.0" }
log = "0.4"

[dependencies.serde]
version = "1.0"
features = ["derive"]

[dev-dependencies]
core = { path = "../core", features = ["std"] }

[features]
testing = ["core/std"]
"""

INTERNAL_MANIFEST = """\
[package]
name = "internal"
version = "0.1.0"
edition = "2021"
publish = false

[dependencies]
app = { path = "../app", version = "0.3.0" }
"""


def write_crate(root: Path, name: str, manifest: str) -> Path:
    crate = root / "crates" / name
    (crate / "src").mkdir(parents=True)
    (crate / "Cargo.toml").write_text(manifest)
    (crate / "src" / "lib.rs").write_text(f"//! {name}\n")
    return crate


def git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, capture_output=True, text=True, check=True
    )
    return result.stdout.strip()


class CapturingReporter(Reporter):
    """Reporter writing to memory."""

    def __init__(self, *, verbose: bool = False) -> None:
        super().__init__(
            Console(file=io.StringIO(), width=200, color_system=None, soft_wrap=True),
            Console(file=io.StringIO(), width=200, color_system=None, soft_wrap=True),
            verbose=verbose,
        )

    @property
    def out(self) -> str:
        return self.console.file.getvalue()

    @property
    def err(self) -> str:
        return self.error_console.file.getvalue()


class FakeToolchain:
    """In-process toolchain: real archives, scripted compilations.

    Attributes:
        calls: ``(package or manifest dir, mode, features, output dir)`` per compile.
        failing: Package names (or ``name:feature`` pairs) that fail to compile.
        on_compile: Hook run before a compile returns, e.g. to touch files.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, CompileMode, tuple[str, ...], Path]] = []
        self.packed: list[str] = []
        self.failing: set[str] = set()
        self.package_failures: set[str] = set()
        self.on_compile: Callable[[Path], None] | None = None

    async def compile(
        self,
        manifest_path: Path,
        mode: CompileMode,
        features: Sequence[str],
        output_dir: Path,
        *,
        package_spec: str | None = None,
    ) -> ExecutionResult:
        label = package_spec.split("@")[0] if package_spec else manifest_path.parent.name
        self.calls.append((label, mode, tuple(features), output_dir))
        if self.on_compile is not None:
            self.on_compile(manifest_path.parent)
        name = label.rsplit("-", 1)[0] if package_spec is None else label
        if name in self.failing or any(f"{name}:{f}" in self.failing for f in features):
            return ExecutionResult.failure_result(label, 101, stderr="error[E0433]: failed")
        return ExecutionResult.success_result(label)

    async def package(self, pkg: Package, output_dir: Path) -> Path:
        if pkg.name in self.package_failures:
            raise PackagingError(pkg.name, "cannot package")
        archive = archive_path(pkg, output_dir)
        archive.parent.mkdir(parents=True, exist_ok=True)
        with tarfile.open(archive, "w:gz") as tar:
            tar.add(
                pkg.path,
                arcname=f"{pkg.name}-{pkg.version}",
                filter=lambda info: None if "/target" in info.name else info,
            )
        self.packed.append(pkg.name)
        return archive

    def unpack(self, archive: Path, destination: Path) -> Path:
        return unpack_archive(archive, destination)


class FakeRegistry:
    """Records publish and owner requests."""

    def __init__(self) -> None:
        self.published: list[str] = []
        self.owners: list[tuple[str, str]] = []
        self.target_dirs: list[Path] = []
        self.manifests: list[tuple[Path, str]] = []
        self.tokens: list[str | None] = []
        self.dry_runs: list[bool] = []
        self.rejected: set[str] = set()
        self.already_owned: set[str] = set()
        self.owner_failures: set[str] = set()
        self.on_publish: Callable[[str], None] | None = None

    async def publish(
        self,
        pkg: Package,
        manifest_path: Path,
        *,
        token: str | None,
        dry_run: bool,
        target_dir: Path,
    ) -> ExecutionResult:
        self.manifests.append((manifest_path, manifest_path.read_text()))
        self.target_dirs.append(target_dir)
        self.tokens.append(token)
        self.dry_runs.append(dry_run)
        if pkg.name in self.rejected:
            return ExecutionResult.failure_result(
                pkg.name, 101, stderr=f"crate version `{pkg.version}` is already uploaded"
            )
        self.published.append(pkg.name)
        if self.on_publish is not None:
            self.on_publish(pkg.name)
        return ExecutionResult.success_result(pkg.name)

    async def add_owner(self, pkg: Package, owner: str, *, token: str | None) -> ExecutionResult:
        if pkg.name in self.already_owned:
            return ExecutionResult.failure_result(
                pkg.name, 101, stderr=f"error: `{owner}` is already an owner"
            )
        if pkg.name in self.owner_failures:
            return ExecutionResult.failure_result(pkg.name, 101, stderr="error: forbidden")
        self.owners.append((pkg.name, owner))
        return ExecutionResult.success_result(pkg.name)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir).resolve()


@pytest.fixture
def workspace_dir(temp_dir: Path) -> Path:
    """A cargo workspace: core <- utils <- app <- internal (unpublished)."""
    (temp_dir / "Cargo.toml").write_text(ROOT_MANIFEST)
    write_crate(temp_dir, "core", CORE_MANIFEST)
    write_crate(temp_dir, "utils", UTILS_MANIFEST)
    write_crate(temp_dir, "app", APP_MANIFEST)
    write_crate(temp_dir, "internal", INTERNAL_MANIFEST)
    return temp_dir


@pytest.fixture
def git_workspace(workspace_dir: Path) -> Path:
    """Create a workspace with git initialized."""
    git(workspace_dir, "init", "-q")
    git(workspace_dir, "config", "user.email", "test@test.com")
    git(workspace_dir, "config", "user.name", "Test")
    git(workspace_dir, "config", "commit.gpgsign", "false")
    git(workspace_dir, "add", "-A")
    git(workspace_dir, "commit", "-q", "-m", "Initial commit")
    git(workspace_dir, "tag", "v1")
    return workspace_dir


@pytest.fixture
def reporter() -> CapturingReporter:
    return CapturingReporter()


@pytest.fixture
def workspace(workspace_dir: Path) -> Workspace:
    return Workspace.discover(workspace_dir)


@pytest.fixture
def context(workspace: Workspace, reporter: CapturingReporter) -> CommandContext:
    return CommandContext(workspace, reporter=reporter)


@pytest.fixture
def toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def registry() -> FakeRegistry:
    return FakeRegistry()


@pytest.fixture
def make_package(temp_dir: Path) -> Callable[..., Package]:
    """Build an in-memory package with a directory under ``temp_dir``."""
    def make(name: str, version: str = "1.0.0", **kwargs) -> Package:
        path = temp_dir / "mem" / name
        return Package(
            name=name,
            version=Version.parse(version),
            path=path,
            manifest_path=path / "Cargo.toml",
            **kwargs,
        )

    return make
