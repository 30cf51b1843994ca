"""Check command: make sure every package builds from its packaged archive."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path

from wyvern.commands.base import Command, CommandContext, cargo_client, work_dir
from wyvern.commands.to_release import PlanOptions, plan_release
from wyvern.errors import PackagingError, SoftCheckError, VerificationFailure
from wyvern.reporter import Reporter
from wyvern.toolchain import CompileMode, Toolchain
from wyvern.verify import ReplacementMap, VerificationPipeline, VerifyOutcome
from wyvern.workspace import Package, SourceKind

MAX_KEYWORDS = 5


def check_metadata(pkg: Package) -> str | None:
    """Describe what keeps ``pkg`` from being accepted by the registry."""
    meta = pkg.metadata
    bad: list[str] = []
    if meta.description is None:
        bad.append("description is missing")
    elif not meta.description:
        bad.append("description is empty")
    if meta.repository is None:
        bad.append("repository is missing")
    elif not meta.repository:
        bad.append("repository is empty")

    if meta.license is not None and meta.license_file is not None:
        bad.append("You can't have license AND license_file")
    elif not (meta.license or meta.license_file):
        bad.append("Neither license nor license_file is provided")

    if len(meta.keywords) > MAX_KEYWORDS:
        bad.append(f"crates.io only allows up to {MAX_KEYWORDS} keywords")

    if bad:
        return f"{pkg.name}: Bad metadata: {'; '.join(bad)}"
    return None


def check_dependencies(pkg: Package) -> str | None:
    """Git dependencies need a version requirement to be publishable."""
    unversioned = [
        d.name for d in pkg.dependencies if d.source is SourceKind.GIT and not d.requirement
    ]
    if unversioned:
        return (
            f"{pkg.name}: has dependencies defined as git without a version: "
            f"{', '.join(unversioned)}"
        )
    return None


def soft_check(packages: Sequence[Package], reporter: Reporter) -> None:
    """Run the metadata and dependency checks over every package.

    Raises:
        SoftCheckError: With every problem found, after all packages ran.
    """
    reporter.status("Checking", "Metadata & Dependencies")
    problems = [
        problem
        for pkg in packages
        for problem in (check_metadata(pkg), check_dependencies(pkg))
        if problem is not None
    ]
    for problem in problems:
        reporter.error(problem)
    if problems:
        raise SoftCheckError(problems)


async def check_packages(
    packages: Sequence[Package],
    pipeline: VerificationPipeline,
    *,
    mode: CompileMode = CompileMode.CHECK,
) -> list[VerifyOutcome]:
    """Soft-check, package, then verify every package in the given order.

    Each verified scratch copy replaces the path dependency of the packages
    after it, so the whole batch is checked using packaged files only.

    Raises:
        SoftCheckError: If metadata or dependency checks fail.
        PackagingError: If any package cannot be packed.
        VerificationFailure: If a package does not compile from its archive.
        DriftError: If a build modified the unpacked sources.
    """
    reporter = pipeline.reporter
    soft_check(packages, reporter)

    archives: dict[str, Path] = {}
    failures: list[PackagingError] = []
    for pkg in packages:
        try:
            archives[pkg.name] = await pipeline.package(pkg)
        except PackagingError as e:
            reporter.error(str(e))
            failures.append(e)
    if failures:
        raise PackagingError(
            ", ".join(f.package for f in failures),
            f"Packing failed with {len(failures)} errors (see above)",
        )

    reporter.status("Checking", "Packages")
    output_dir = pipeline.work_dir / "target"
    replacements: ReplacementMap = {}
    outcomes: list[VerifyOutcome] = []
    for pkg in packages:
        reporter.status("Verifying", str(pkg))
        outcome = await pipeline.verify_ephemeral(
            pkg, archives[pkg.name], mode, (), replacements, output_dir
        )
        if not outcome.success:
            raise VerificationFailure([f"{outcome.describe()}:\n{outcome.result.output.strip()}"])
        if outcome.scratch_dir is None:
            raise PackagingError(pkg.name, "verified copy was not kept")
        replacements[pkg.name] = outcome.scratch_dir
        outcomes.append(outcome)
    return outcomes


@dataclass
class CheckOptions(PlanOptions):
    """Options for check command."""

    build: bool = False

    @property
    def mode(self) -> CompileMode:
        return CompileMode.BUILD if self.build else CompileMode.CHECK


@dataclass
class CheckResult:
    """Result of check command."""

    packages: list[Package] = field(default_factory=list)
    outcomes: list[VerifyOutcome] = field(default_factory=list)


class CheckCommand(Command[CheckResult]):
    """Verify the packages that would be released."""

    def __init__(
        self,
        context: CommandContext,
        options: CheckOptions | None = None,
        *,
        toolchain: Toolchain | None = None,
    ) -> None:
        super().__init__(context)
        self.options = options or CheckOptions()
        self.toolchain = toolchain

    def pipeline(self) -> VerificationPipeline:
        return VerificationPipeline(
            self.toolchain or cargo_client(self.context),
            self.reporter,
            work_dir(self.workspace),
            fingerprint_exclude=self.workspace.config.verify.fingerprint_exclude,
        )

    async def execute(self) -> CheckResult:
        packages = plan_release(self.context, self.options)
        if not packages:
            return CheckResult()
        outcomes = await check_packages(packages, self.pipeline(), mode=self.options.mode)
        return CheckResult(packages, outcomes)
