"""Verifying that packages compile on their own."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from wyvern.errors import ConfigError, DriftError, PackagingError
from wyvern.execution import ExecutionResult
from wyvern.reporter import Reporter
from wyvern.toolchain import CompileMode, Toolchain
from wyvern.verify.fingerprint import DEFAULT_EXCLUDE, changed_paths, snapshot
from wyvern.verify.replace import inject_replacements
from wyvern.workspace import MANIFEST_NAME, Package, Workspace


class VerifyContext(Enum):
    """Where a package is compiled.

    ``IN_PLACE`` compiles the package inside its workspace. ``EPHEMERAL``
    compiles the unpacked archive outside of it, which also catches files
    missing from the archive.
    """

    IN_PLACE = "in-place"
    EPHEMERAL = "ephemeral"

    @classmethod
    def parse(cls, value: str) -> VerifyContext:
        normalized = value.strip().lower()
        if normalized in ("in-place", "inplace", "in_place"):
            return cls.IN_PLACE
        if normalized == "ephemeral":
            return cls.EPHEMERAL
        raise ConfigError(f"Unknown context: {value}")


@dataclass
class VerifyOutcome:
    """Result of compiling one package in one mode with one feature set."""

    package: str
    mode: CompileMode
    features: tuple[str, ...]
    result: ExecutionResult
    scratch_dir: Path | None = None

    @property
    def success(self) -> bool:
        return self.result.success

    def describe(self) -> str:
        features = ", ".join(self.features) or "no features"
        return f"{self.package} [{self.mode.value}] with {features}"


class VerificationPipeline:
    """Compiles packages in place or from their packaged archive.

    Attributes:
        toolchain: Compiles, packages and unpacks.
        reporter: Output sink.
        work_dir: Root for archives and scratch copies.
        fingerprint_exclude: Top level names a build may touch in a scratch copy.
    """

    def __init__(
        self,
        toolchain: Toolchain,
        reporter: Reporter,
        work_dir: Path,
        *,
        fingerprint_exclude: Iterable[str] = DEFAULT_EXCLUDE,
    ) -> None:
        self.toolchain = toolchain
        self.reporter = reporter
        self.work_dir = work_dir
        self.fingerprint_exclude = tuple(fingerprint_exclude)

    @property
    def archive_dir(self) -> Path:
        return self.work_dir / "archives"

    @property
    def scratch_root(self) -> Path:
        return self.work_dir / "scratch"

    async def package(self, pkg: Package) -> Path:
        """Create the archive of ``pkg``.

        Raises:
            PackagingError: If packaging fails.
        """
        self.reporter.status("Packing", str(pkg))
        return await self.toolchain.package(pkg, self.archive_dir)

    async def verify_in_place(
        self,
        workspace: Workspace,
        pkg: Package,
        mode: CompileMode,
        features: Sequence[str],
        output_dir: Path,
    ) -> VerifyOutcome:
        """Compile ``name@version`` inside the original workspace."""
        result = await self.toolchain.compile(
            workspace.manifest_path,
            mode,
            features,
            output_dir,
            package_spec=f"{pkg.name}@{pkg.version}",
        )
        return VerifyOutcome(pkg.name, mode, tuple(features), result)

    async def verify_ephemeral(
        self,
        pkg: Package,
        archive: Path,
        mode: CompileMode,
        features: Sequence[str],
        replacements: Mapping[str, Path],
        output_dir: Path,
        *,
        scratch_root: Path | None = None,
    ) -> VerifyOutcome:
        """Compile the unpacked archive of ``pkg`` as a standalone package.

        Dependencies named in ``replacements`` resolve to those directories.
        The scratch copy must look the same after the build as before it.

        Raises:
            PackagingError: If the archive cannot be unpacked or read.
            DriftError: If the build modified the scratch copy.
        """
        scratch = self.toolchain.unpack(archive, scratch_root or self.scratch_root)
        manifest = scratch / MANIFEST_NAME
        redirected = inject_replacements(manifest, replacements)
        if redirected:
            self.reporter.debug(f"{pkg.name}: {redirected} dependencies use verified copies")

        before = self._snapshot(pkg, scratch)
        result = await self.toolchain.compile(manifest, mode, features, output_dir)
        after = self._snapshot(pkg, scratch)

        drifted = changed_paths(before, after)
        if drifted:
            raise DriftError(pkg.name, scratch / drifted[0])

        return VerifyOutcome(pkg.name, mode, tuple(features), result, scratch_dir=scratch)

    def _snapshot(self, pkg: Package, scratch: Path) -> dict[str, str]:
        try:
            return snapshot(scratch, self.fingerprint_exclude)
        except OSError as e:
            raise PackagingError(pkg.name, f"cannot fingerprint {scratch}: {e}") from e
