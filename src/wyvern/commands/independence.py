"""Independence check: compile every package with every feature combination."""

from __future__ import annotations

import asyncio
from contextlib import nullcontext
from dataclasses import dataclass, field
from itertools import combinations
from pathlib import Path

from wyvern.commands.base import Command, CommandContext, cargo_client, select, work_dir
from wyvern.errors import VerificationFailure
from wyvern.execution import CellResult, ParallelExecutor
from wyvern.filters import SelectionCriteria
from wyvern.toolchain import CompileMode, Toolchain
from wyvern.verify import VerificationPipeline, VerifyContext, VerifyOutcome
from wyvern.workspace import Package, ensure_not_empty


def feature_powerset(pkg: Package) -> list[tuple[str, ...]]:
    """Every subset of the package's optional features, smallest first."""
    names = pkg.optional_features
    return [combo for size in range(len(names) + 1) for combo in combinations(names, size)]


@dataclass
class MatrixCell:
    """One compilation of the independence matrix."""

    index: int
    package: Package
    mode: CompileMode
    features: tuple[str, ...]

    def describe(self) -> str:
        features = ", ".join(self.features) or "no features"
        return f"{self.package.name} [{self.mode.value}] with {features}"


@dataclass
class IndependenceOptions:
    """Options for independence-check command."""

    criteria: SelectionCriteria = field(default_factory=SelectionCriteria)
    modes: list[CompileMode] = field(default_factory=lambda: [CompileMode.TEST])
    context: VerifyContext = VerifyContext.IN_PLACE
    failfast: bool = False
    concurrency: int | None = None


@dataclass
class IndependenceResult:
    """Result of independence-check command."""

    packages: list[Package] = field(default_factory=list)
    cells: list[CellResult[MatrixCell, VerifyOutcome]] = field(default_factory=list)

    @property
    def failures(self) -> list[CellResult[MatrixCell, VerifyOutcome]]:
        return [c for c in self.cells if c.result is not None and not c.result.success]

    @property
    def cancelled(self) -> int:
        return sum(1 for c in self.cells if c.cancelled)


class IndependenceCommand(Command[IndependenceResult]):
    """Compile each selected package alone, for every mode and feature subset.

    Cells run on a bounded pool. With ``isolate_cells`` every cell has its own
    output directory; otherwise cells share one and take turns.
    """

    def __init__(
        self,
        context: CommandContext,
        options: IndependenceOptions | None = None,
        *,
        toolchain: Toolchain | None = None,
    ) -> None:
        super().__init__(context)
        self.options = options or IndependenceOptions()
        self.toolchain = toolchain

    def build_matrix(self, packages: list[Package]) -> list[MatrixCell]:
        cells: list[MatrixCell] = []
        for pkg in packages:
            for mode in self.options.modes:
                subsets = feature_powerset(pkg)
                self.reporter.status(
                    "Independence",
                    f"{pkg.name} Checking compilation of these feature combinations "
                    f"({len(subsets)}): {[list(s) for s in subsets]}",
                    style="bold magenta",
                )
                start = len(cells)
                cells.extend(MatrixCell(start + i, pkg, mode, s) for i, s in enumerate(subsets))
        return cells

    async def execute(self) -> IndependenceResult:
        packages = select(self.context, self.options.criteria)
        fail = self.workspace.config.selection.empty_package_is_failure
        if not ensure_not_empty(packages, fail=fail, reporter=self.reporter):
            return IndependenceResult()

        ctx = self.options.context
        verify_config = self.workspace.config.verify
        self.reporter.status(
            "Processing",
            f"Running independence check using {ctx.value} context for {len(packages)} packages",
            style="bold magenta",
        )

        base = work_dir(self.workspace) / "independence"
        pipeline = VerificationPipeline(
            self.toolchain or cargo_client(self.context),
            self.reporter,
            base,
            fingerprint_exclude=verify_config.fingerprint_exclude,
        )

        archives: dict[str, Path] = {}
        if ctx is VerifyContext.EPHEMERAL:
            for pkg in packages:
                archives[pkg.name] = await pipeline.package(pkg)

        cells = self.build_matrix(packages)
        shared_output = None if verify_config.isolate_cells else asyncio.Lock()

        async def run_cell(cell: MatrixCell) -> VerifyOutcome:
            if shared_output is None:
                output_dir = base / "cells" / str(cell.index)
            else:
                output_dir = base / "target"
            async with shared_output or nullcontext():
                self.reporter.status(
                    f"{ctx.value}/{cell.mode.value}",
                    f"{cell.package.name} {cell.package.version} with features "
                    f"{list(cell.features)}",
                    style="bold cyan",
                )
                if ctx is VerifyContext.IN_PLACE:
                    return await pipeline.verify_in_place(
                        self.workspace, cell.package, cell.mode, cell.features, output_dir
                    )
                return await pipeline.verify_ephemeral(
                    cell.package,
                    archives[cell.package.name],
                    cell.mode,
                    cell.features,
                    {},
                    output_dir,
                    scratch_root=base / "scratch" / str(cell.index),
                )

        executor = ParallelExecutor(
            self.options.concurrency or verify_config.concurrency,
            fail_fast=self.options.failfast,
        )
        results = await executor.run_cells(cells, run_cell, is_failure=lambda o: not o.success)
        result = IndependenceResult(packages, results)

        if result.failures:
            for cell in result.cells:
                if cell.result is None or cell.result.success:
                    continue
                self.reporter.error(
                    f"{cell.cell.describe()} failed:\n{cell.result.result.output.strip()}"
                )
            if result.cancelled:
                self.reporter.warn(f"{result.cancelled} cases were not run")
            raise VerificationFailure([f.cell.describe() for f in result.failures])

        self.reporter.status(
            "Done",
            f"Checking independence succeed for all {len(packages)} packages",
            style="bold magenta",
        )
        return result
