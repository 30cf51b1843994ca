"""Release (unleash) command: check and publish packages in release order."""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from wyvern.commands.base import Command, CommandContext, cargo_client, work_dir
from wyvern.commands.check import check_packages
from wyvern.commands.to_release import PlanOptions, format_packages, plan_release
from wyvern.errors import PackagingError, RegistryError
from wyvern.reporter import Reporter
from wyvern.toolchain import (
    CompileMode,
    Registry,
    Toolchain,
    archive_path,
    default_credentials_file,
    is_already_owner,
    resolve_token,
    token_env_var,
)
from wyvern.toolchain.registry import DEFAULT_TOKEN_ENV
from wyvern.verify import VerificationPipeline, inject_replacements
from wyvern.workspace import MANIFEST_NAME, Package, Workspace


def resolve_publish_token(
    workspace: Workspace,
    explicit: str | None,
    environ: Mapping[str, str] | None = None,
) -> str | None:
    """Registry token from the flag, the environment or the credentials file."""
    environ = os.environ if environ is None else environ
    publish = workspace.config.publish
    env_var = publish.token_env
    if env_var == DEFAULT_TOKEN_ENV and publish.registry:
        env_var = token_env_var(publish.registry)
    if publish.credentials_file:
        credentials = (workspace.root / Path(publish.credentials_file).expanduser()).resolve()
    else:
        credentials = default_credentials_file(environ)
    return resolve_token(explicit, environ, credentials, env_var)


async def add_owner(
    registry: Registry,
    pkg: Package,
    owner: str,
    *,
    token: str | None,
    reporter: Reporter,
) -> bool:
    """Add ``owner`` to ``pkg``.

    Returns:
        False if ``owner`` already owned the package.

    Raises:
        RegistryError: If the registry refused for any other reason.
    """
    result = await registry.add_owner(pkg, owner, token=token)
    if result.success:
        reporter.status("Owner", f"Added {owner} to {pkg.name}")
        return True
    if is_already_owner(result.output):
        reporter.status("Owner", f"{owner} is already an owner of {pkg.name}")
        return False
    raise RegistryError(pkg.name, result.output.strip() or f"exit code {result.exit_code}")


@dataclass
class PublishReport:
    """What a publish run got done.

    Attributes:
        published: Names published, in order.
        pending: Names not published because the run was cancelled.
        cancelled: Whether a cancellation stopped the run.
    """

    published: list[str] = field(default_factory=list)
    pending: list[str] = field(default_factory=list)
    cancelled: bool = False


class Publisher:
    """Publishes packages one after another, dependencies first.

    Batches larger than ``rate_limit_threshold`` wait ``rate_limit_delay``
    seconds before every publish but the first. The wait ends early when
    the cancel event is set, and nothing else is published after that.
    """

    def __init__(
        self,
        registry: Registry,
        toolchain: Toolchain,
        reporter: Reporter,
        *,
        rate_limit_threshold: int = 30,
        rate_limit_delay: float = 21.0,
        target_root: Path | None = None,
    ) -> None:
        self.registry = registry
        self.toolchain = toolchain
        self.reporter = reporter
        self.rate_limit_threshold = rate_limit_threshold
        self.rate_limit_delay = rate_limit_delay
        self.target_root = target_root

    def delay_for(self, count: int) -> float:
        return self.rate_limit_delay if count > self.rate_limit_threshold else 0.0

    @staticmethod
    async def _cancelled_during(cancel_event: asyncio.Event, delay: float) -> bool:
        try:
            await asyncio.wait_for(cancel_event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return False
        return True

    async def publish_all(
        self,
        packages: Sequence[Package],
        *,
        token: str | None,
        dry_run: bool = False,
        owner: str | None = None,
        cancel_event: asyncio.Event | None = None,
        archives: Mapping[str, Path] | None = None,
    ) -> PublishReport:
        """Publish ``packages`` in the given order.

        Each package is published from its own unpacked archive. ``archives``
        maps names to archives built earlier; the rest are packaged on the spot.

        Raises:
            RegistryError: On the first rejected publish or owner change;
                ``published`` lists what went out before it.
        """
        cancel_event = cancel_event or asyncio.Event()
        delay = self.delay_for(len(packages))
        report = PublishReport()

        self.reporter.status("Publishing", "Packages")
        for idx, pkg in enumerate(packages):
            if idx > 0 and delay > 0 and not cancel_event.is_set():
                self.reporter.status(
                    "Waiting",
                    f"more than {self.rate_limit_threshold} packages to publish, "
                    "API limits require us to wait in between.",
                )
                await self._cancelled_during(cancel_event, delay)
            if cancel_event.is_set():
                report.cancelled = True
                report.pending = [p.name for p in packages[idx:]]
                return report

            self.reporter.status("Publishing", str(pkg))
            await self._publish_one(
                pkg,
                (archives or {}).get(pkg.name),
                token=token,
                dry_run=dry_run,
                published=report.published,
            )
            report.published.append(pkg.name)

            if owner and not dry_run:
                try:
                    await add_owner(self.registry, pkg, owner, token=token, reporter=self.reporter)
                except RegistryError as e:
                    raise RegistryError(pkg.name, e.reason, published=report.published) from e
        return report

    async def _isolate(self, pkg: Package, archive: Path | None, stage: Path) -> Path:
        """Unpack ``pkg`` under ``stage`` as its own workspace root.

        The parent workspace, its patches and its lockfile do not apply to
        the unpacked copy.

        Returns:
            Path to the manifest of the unpacked copy.
        """
        if archive is None:
            archive = await self.toolchain.package(pkg, stage / "archive")
        manifest = self.toolchain.unpack(archive, stage / "src") / MANIFEST_NAME
        inject_replacements(manifest, {})
        return manifest

    async def _publish_one(
        self,
        pkg: Package,
        archive: Path | None,
        *,
        token: str | None,
        dry_run: bool,
        published: list[str],
    ) -> None:
        if self.target_root is not None:
            self.target_root.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix=f"{pkg.name}-", dir=self.target_root) as tmp:
            stage = Path(tmp)
            try:
                manifest = await self._isolate(pkg, archive, stage)
            except PackagingError as e:
                raise RegistryError(pkg.name, e.reason, published=published) from e
            result = await self.registry.publish(
                pkg, manifest, token=token, dry_run=dry_run, target_dir=stage / "target"
            )
        if not result.success:
            raise RegistryError(
                pkg.name,
                result.output.strip() or f"exit code {result.exit_code}",
                published=published,
            )


@dataclass
class ReleaseOptions(PlanOptions):
    """Options for release command."""

    build: bool = False
    dry_run: bool = False
    no_check: bool = False
    owner: str | None = None
    token: str | None = None


@dataclass
class ReleaseResult:
    """Result of release command."""

    packages: list[Package] = field(default_factory=list)
    report: PublishReport = field(default_factory=PublishReport)


class ReleaseCommand(Command[ReleaseResult]):
    """Select, order, check and publish."""

    def __init__(
        self,
        context: CommandContext,
        options: ReleaseOptions | None = None,
        *,
        toolchain: Toolchain | None = None,
        registry: Registry | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> None:
        super().__init__(context)
        self.options = options or ReleaseOptions()
        self.toolchain = toolchain
        self.registry = registry
        self.cancel_event = cancel_event

    @property
    def is_dry_run(self) -> bool:
        return self.options.dry_run or self.context.dry_run

    async def execute(self) -> ReleaseResult:
        packages = plan_release(self.context, self.options)
        if not packages:
            return ReleaseResult()

        config = self.workspace.config
        toolchain = self.toolchain or cargo_client(self.context)
        archives: dict[str, Path] = {}
        if not self.options.no_check:
            pipeline = VerificationPipeline(
                toolchain,
                self.reporter,
                work_dir(self.workspace),
                fingerprint_exclude=config.verify.fingerprint_exclude,
            )
            mode = CompileMode.BUILD if self.options.build else CompileMode.CHECK
            await check_packages(packages, pipeline, mode=mode)
            archives = {p.name: archive_path(p, pipeline.archive_dir) for p in packages}

        self.reporter.status("Releasing", format_packages(packages))
        publisher = Publisher(
            self.registry or cargo_client(self.context),
            toolchain,
            self.reporter,
            rate_limit_threshold=config.publish.rate_limit_threshold,
            rate_limit_delay=config.publish.rate_limit_delay,
            target_root=work_dir(self.workspace) / "publish",
        )
        report = await publisher.publish_all(
            packages,
            token=resolve_publish_token(self.workspace, self.options.token),
            dry_run=self.is_dry_run,
            owner=self.options.owner or config.publish.owner,
            cancel_event=self.cancel_event,
            archives=archives,
        )
        if report.cancelled:
            self.reporter.warn(
                f"Release cancelled after {len(report.published)} packages, "
                f"not published: {', '.join(report.pending)}"
            )
        return ReleaseResult(packages, report)


@dataclass
class AddOwnerResult:
    """Result of add-owner command."""

    added: list[str] = field(default_factory=list)
    already: list[str] = field(default_factory=list)


class AddOwnerCommand(Command[AddOwnerResult]):
    """Add an owner to every selected member on the registry."""

    def __init__(
        self,
        context: CommandContext,
        owner: str,
        criteria: PlanOptions | None = None,
        *,
        token: str | None = None,
        registry: Registry | None = None,
    ) -> None:
        super().__init__(context)
        self.owner = owner
        self.options = criteria or PlanOptions()
        self.token = token
        self.registry = registry

    async def execute(self) -> AddOwnerResult:
        predicate = self.context.predicate(self.options.criteria)
        registry = self.registry or cargo_client(self.context)
        token = resolve_publish_token(self.workspace, self.token)

        result = AddOwnerResult()
        for pkg in self.workspace.members:
            if not predicate(pkg):
                continue
            added = await add_owner(registry, pkg, self.owner, token=token, reporter=self.reporter)
            (result.added if added else result.already).append(pkg.name)
        return result
