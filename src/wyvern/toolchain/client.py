"""Cargo as the toolchain and registry client."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from wyvern.errors import PackagingError
from wyvern.execution import ExecutionResult, run_tool
from wyvern.reporter import Reporter
from wyvern.toolchain.compile import CompileMode, compile_args
from wyvern.toolchain.package import archive_path, package_args, unpack_archive
from wyvern.toolchain.registry import owner_args, publish_args, token_env_var
from wyvern.workspace import Package


class Toolchain(Protocol):
    """Compiles, packages and unpacks packages."""

    async def compile(
        self,
        manifest_path: Path,
        mode: CompileMode,
        features: Sequence[str],
        output_dir: Path,
        *,
        package_spec: str | None = None,
    ) -> ExecutionResult: ...

    async def package(self, pkg: Package, output_dir: Path) -> Path: ...

    def unpack(self, archive: Path, destination: Path) -> Path: ...


class Registry(Protocol):
    """Publishes packages and manages their owners."""

    async def publish(
        self,
        pkg: Package,
        manifest_path: Path,
        *,
        token: str | None,
        dry_run: bool,
        target_dir: Path,
    ) -> ExecutionResult: ...

    async def add_owner(self, pkg: Package, owner: str, *, token: str | None) -> ExecutionResult: ...


class CargoClient:
    """Runs cargo subcommands.

    Every call is a separate process with an optional timeout. Failures come
    back as results; only packaging raises, since nothing can continue
    without an archive.

    Attributes:
        cargo: Cargo executable.
        env: Extra environment for every call.
        timeout: Seconds before a call is killed.
        registry: Alternative registry name, if any.
    """

    def __init__(
        self,
        cargo: str = "cargo",
        *,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
        registry: str | None = None,
        reporter: Reporter | None = None,
    ) -> None:
        self.cargo = cargo
        self.env = dict(env or {})
        self.timeout = timeout
        self.registry = registry
        self.reporter = reporter

    async def run(
        self,
        label: str,
        args: Sequence[str],
        cwd: Path,
        *,
        env: Mapping[str, str] | None = None,
    ) -> ExecutionResult:
        run_env = {**self.env, **(env or {})}
        on_line = None
        if self.reporter is not None and self.reporter.verbose:
            reporter = self.reporter

            def on_line(line: str) -> None:
                reporter.debug(f"[{label}] {line}")

        return await run_tool(
            label,
            [self.cargo, *args],
            cwd,
            env=run_env,
            timeout=self.timeout,
            on_stdout=on_line,
            on_stderr=on_line,
        )

    async def compile(
        self,
        manifest_path: Path,
        mode: CompileMode,
        features: Sequence[str],
        output_dir: Path,
        *,
        package_spec: str | None = None,
    ) -> ExecutionResult:
        args = compile_args(manifest_path, mode, features, output_dir, package_spec=package_spec)
        return await self.run(package_spec or manifest_path.parent.name, args, manifest_path.parent)

    async def package(self, pkg: Package, output_dir: Path) -> Path:
        """Create the distributable archive of ``pkg``.

        Raises:
            PackagingError: If cargo fails or leaves no archive behind.
        """
        result = await self.run(pkg.name, package_args(pkg, output_dir), pkg.path)
        if not result.success:
            raise PackagingError(pkg.name, result.output or f"exit code {result.exit_code}")
        archive = archive_path(pkg, output_dir)
        if not archive.is_file():
            raise PackagingError(pkg.name, f"expected archive {archive} was not created")
        return archive

    def unpack(self, archive: Path, destination: Path) -> Path:
        return unpack_archive(archive, destination)

    def _token_env(self, token: str | None) -> dict[str, str]:
        return {token_env_var(self.registry): token} if token else {}

    async def publish(
        self,
        pkg: Package,
        manifest_path: Path,
        *,
        token: str | None,
        dry_run: bool,
        target_dir: Path,
    ) -> ExecutionResult:
        """Publish ``pkg`` from the manifest at ``manifest_path``."""
        args = publish_args(manifest_path, target_dir, dry_run=dry_run, registry=self.registry)
        return await self.run(
            pkg.name, args, manifest_path.parent, env=self._token_env(token)
        )

    async def add_owner(self, pkg: Package, owner: str, *, token: str | None) -> ExecutionResult:
        args = owner_args(pkg, owner, registry=self.registry)
        return await self.run(pkg.name, args, pkg.path, env=self._token_env(token))
