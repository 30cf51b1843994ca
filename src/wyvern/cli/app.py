"""wyvern CLI application."""

from __future__ import annotations

import asyncio
import signal
from collections.abc import Callable, Iterator
from contextlib import contextmanager, suppress
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console
from rich.markup import escape

from wyvern.errors import WyvernError
from wyvern.filters import SelectionCriteria
from wyvern.reporter import Reporter
from wyvern.workspace import Workspace

T = TypeVar("T")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from wyvern import __version__

        print(f"wyvern {__version__}")
        raise typer.Exit()


app = typer.Typer(
    name="wyvern",
    help="Release tool for cargo workspaces",
    no_args_is_help=True,
    add_completion=False,
)
version_app = typer.Typer(
    help="Change the version of the selected packages and update their dependents",
    no_args_is_help=True,
)
app.add_typer(version_app, name="version")


@dataclass
class GlobalOptions:
    manifest_path: Path
    reporter: Reporter


@app.callback()
def _app_callback(
    ctx: typer.Context,
    manifest_path: Annotated[
        Path,
        typer.Option("--manifest-path", "-m", help="Workspace root or its Cargo.toml"),
    ] = Path("."),
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show debug output"),
    ] = False,
    version: Annotated[  # noqa: ARG001
        bool,
        typer.Option("--version", "-V", help="Show version and exit", callback=version_callback),
    ] = False,
) -> None:
    """Release tool for cargo workspaces."""
    reporter = Reporter(
        Console(soft_wrap=True),
        Console(stderr=True, soft_wrap=True),
        verbose=verbose,
    )
    ctx.obj = GlobalOptions(manifest_path, reporter)


@contextmanager
def exit_on_error(error_console: Console) -> Iterator[None]:
    """Turn errors into a message on stderr and exit code 1."""
    try:
        yield
    except (typer.Exit, typer.Abort):
        raise
    except WyvernError as e:
        error_console.print(f"[red]Error:[/red] {escape(e.message)}")
        raise typer.Exit(1) from e
    except Exception as e:
        error_console.print_exception()
        raise typer.Exit(1) from e


def run_in_workspace(ctx: typer.Context, action: Callable[..., T]) -> T:
    """Load the workspace, build a command context and run ``action`` on it."""
    from wyvern.commands import CommandContext

    options: GlobalOptions = ctx.obj
    with exit_on_error(options.reporter.error_console):
        workspace = Workspace.discover(options.manifest_path)
        return action(CommandContext(workspace, reporter=options.reporter))


PackagesOption = Annotated[
    list[str] | None,
    typer.Option("--packages", "-p", help="Only packages matching these regular expressions"),
]
SkipOption = Annotated[
    list[str] | None,
    typer.Option("--skip", "-s", help="Skip packages matching these regular expressions"),
]
IgnorePreOption = Annotated[
    list[str] | None,
    typer.Option(
        "--ignore-pre-version", "-i", help="Skip packages on one of these pre-release tags"
    ),
]
IgnorePublishOption = Annotated[
    bool,
    typer.Option("--ignore-publish", help="Also select packages with publish = false"),
]
ChangedSinceOption = Annotated[
    str | None,
    typer.Option("--changed-since", "-c", help="Only packages changed since this git ref"),
]
IncludePreDepsOption = Annotated[
    bool,
    typer.Option("--include-pre-deps", help="Also select packages on a pre-release"),
]
IncludeDevOption = Annotated[
    bool,
    typer.Option("--include-dev-deps", help="Do not disable path dev-dependencies"),
]
EmptyIsFailureOption = Annotated[
    bool | None,
    typer.Option(
        "--empty-package-is-failure/--empty-package-is-ok",
        help="Fail when no package is selected",
    ),
]
DotGraphOption = Annotated[
    Path | None,
    typer.Option("--dot-graph", help="Write the release graph in dot format to this file"),
]
ForceUpdateOption = Annotated[
    bool,
    typer.Option("--force-update", help="Rewrite dependent requirements even if they match"),
]


def make_criteria(
    workspace: Workspace,
    packages: list[str] | None,
    skip: list[str] | None,
    ignore_pre_version: list[str] | None,
    ignore_publish: bool,
    changed_since: str | None,
    include_pre_deps: bool,
) -> SelectionCriteria:
    return SelectionCriteria(
        packages=tuple(packages or ()),
        skip=tuple(skip or ()),
        skip_pre=tuple(ignore_pre_version or ()),
        ignore_publish=ignore_publish,
        changed_since=changed_since,
        include_pre_deps=include_pre_deps,
        cascade=workspace.config.selection.pre_release_cascade,
    )


@app.command("set")
def set_cmd(
    ctx: typer.Context,
    root_key: Annotated[str, typer.Argument(help="Table to write into, e.g. package")],
    name: Annotated[str, typer.Argument(help="Field name")],
    value: Annotated[str, typer.Argument(help="New value")],
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Set a field in the manifest of the selected packages."""
    from wyvern.commands import SetFieldCommand

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        SetFieldCommand(context, root_key, name, value, criteria).execute()

    run_in_workspace(ctx, action)


@app.command()
def rename(
    ctx: typer.Context,
    old_name: Annotated[str, typer.Argument(help="Current package name")],
    new_name: Annotated[str, typer.Argument(help="New package name")],
) -> None:
    """Rename a package and update every path dependency on it."""
    from wyvern.commands import rename as do_rename

    run_in_workspace(ctx, lambda context: do_rename(context, old_name, new_name))


def _change_version(
    ctx: typer.Context,
    transform_factory: Callable[[], object],
    packages: list[str] | None,
    skip: list[str] | None,
    ignore_pre_version: list[str] | None,
    ignore_publish: bool,
    changed_since: str | None,
    include_pre_deps: bool,
    force_update: bool,
) -> None:
    from wyvern.commands import version as do_version

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        do_version(context, transform_factory(), criteria=criteria, force_update=force_update)

    run_in_workspace(ctx, action)


ValueArgument = Annotated[
    str,
    typer.Argument(help="New version, pre-release tag or build metadata"),
]


def _register_version_command(kind_name: str, help_text: str, *, takes_value: bool = False) -> None:
    from wyvern.versioning import TransformKind, VersionTransform

    kind = TransformKind(kind_name)

    if takes_value:

        def with_value(
            ctx: typer.Context,
            value: ValueArgument,
            packages: PackagesOption = None,
            skip: SkipOption = None,
            ignore_pre_version: IgnorePreOption = None,
            ignore_publish: IgnorePublishOption = False,
            changed_since: ChangedSinceOption = None,
            include_pre_deps: IncludePreDepsOption = False,
            force_update: ForceUpdateOption = False,
        ) -> None:
            _change_version(
                ctx,
                lambda: VersionTransform(kind, value),
                packages,
                skip,
                ignore_pre_version,
                ignore_publish,
                changed_since,
                include_pre_deps,
                force_update,
            )

        with_value.__doc__ = help_text
        version_app.command(kind_name)(with_value)
        return

    def without_value(
        ctx: typer.Context,
        packages: PackagesOption = None,
        skip: SkipOption = None,
        ignore_pre_version: IgnorePreOption = None,
        ignore_publish: IgnorePublishOption = False,
        changed_since: ChangedSinceOption = None,
        include_pre_deps: IncludePreDepsOption = False,
        force_update: ForceUpdateOption = False,
    ) -> None:
        _change_version(
            ctx,
            lambda: VersionTransform(kind),
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
            force_update,
        )

    without_value.__doc__ = help_text
    version_app.command(kind_name)(without_value)


_register_version_command("set", "Set the version to a fixed value", takes_value=True)
_register_version_command("bump-pre", "Increase the pre-release counter")
_register_version_command("bump-patch", "Increase the patch version")
_register_version_command("bump-minor", "Increase the minor version")
_register_version_command("bump-major", "Increase the major version")
_register_version_command("bump-breaking", "Bump to the next semver-incompatible version")
_register_version_command("set-pre", "Set the pre-release tag", takes_value=True)
_register_version_command("set-build", "Set the build metadata", takes_value=True)
_register_version_command("release", "Drop pre-release and build metadata")


@version_app.command("bump-to-dev")
def bump_to_dev(
    ctx: typer.Context,
    pre_tag: Annotated[
        str | None,
        typer.Option("--pre-tag", help="Pre-release tag to use (default: dev)"),
    ] = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
    force_update: ForceUpdateOption = False,
) -> None:
    """Bump to the next breaking version with a development pre-release tag."""
    from wyvern.versioning import VersionTransform

    _change_version(
        ctx,
        lambda: VersionTransform.bump_to_dev(pre_tag),
        packages,
        skip,
        ignore_pre_version,
        ignore_publish,
        changed_since,
        include_pre_deps,
        force_update,
    )


@app.command("add-owner")
def add_owner_cmd(
    ctx: typer.Context,
    owner: Annotated[str, typer.Argument(help="Login or team to add as owner")],
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", envvar="CRATES_TOKEN", help="Registry token"),
    ] = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Add an owner to the selected packages on the registry."""
    from wyvern.commands import AddOwnerCommand, PlanOptions

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        command = AddOwnerCommand(context, owner, PlanOptions(criteria), token=token)
        asyncio.run(command.execute())

    run_in_workspace(ctx, action)


@app.command("de-dev-deps")
def de_dev_deps(
    ctx: typer.Context,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Deactivate path dev-dependencies of the selected packages."""
    from wyvern.commands import DeDevDepsCommand

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        DeDevDepsCommand(context, criteria).execute()

    run_in_workspace(ctx, action)


@app.command("to-release")
def to_release(
    ctx: typer.Context,
    include_dev_deps: IncludeDevOption = False,
    empty_package_is_failure: EmptyIsFailureOption = None,
    dot_graph: DotGraphOption = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Print the packages to release, in release order."""
    from wyvern.commands import PlanOptions, ToReleaseCommand

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        options = PlanOptions(criteria, include_dev_deps, empty_package_is_failure, dot_graph)
        ToReleaseCommand(context, options).execute()

    run_in_workspace(ctx, action)


@app.command()
def check(
    ctx: typer.Context,
    build: Annotated[
        bool,
        typer.Option("--build", help="Build instead of only checking"),
    ] = False,
    include_dev_deps: IncludeDevOption = False,
    empty_package_is_failure: EmptyIsFailureOption = None,
    dot_graph: DotGraphOption = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Package the selected packages and compile each from its archive."""
    from wyvern.commands import CheckCommand, CheckOptions

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        options = CheckOptions(
            criteria, include_dev_deps, empty_package_is_failure, dot_graph, build=build
        )
        result = asyncio.run(CheckCommand(context, options).execute())
        if result.packages:
            context.reporter.status("Checked", f"{len(result.packages)} packages")

    run_in_workspace(ctx, action)


@app.command()
def unleash(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Do everything but the actual upload"),
    ] = False,
    no_check: Annotated[
        bool,
        typer.Option("--no-check", help="Skip packaging and verification"),
    ] = False,
    build: Annotated[
        bool,
        typer.Option("--build", help="Build instead of only checking"),
    ] = False,
    owner: Annotated[
        str | None,
        typer.Option("--owner", help="Add this owner to every published package"),
    ] = None,
    token: Annotated[
        str | None,
        typer.Option("--token", "-t", envvar="CRATES_TOKEN", help="Registry token"),
    ] = None,
    include_dev_deps: IncludeDevOption = False,
    empty_package_is_failure: EmptyIsFailureOption = None,
    dot_graph: DotGraphOption = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Check and publish the selected packages in release order."""
    from wyvern.commands import ReleaseCommand, ReleaseOptions

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        options = ReleaseOptions(
            criteria,
            include_dev_deps,
            empty_package_is_failure,
            dot_graph,
            build=build,
            dry_run=dry_run,
            no_check=no_check,
            owner=owner,
            token=token,
        )

        async def run():
            cancel = asyncio.Event()
            loop = asyncio.get_running_loop()
            with suppress(NotImplementedError):
                loop.add_signal_handler(signal.SIGINT, cancel.set)
            return await ReleaseCommand(context, options, cancel_event=cancel).execute()

        result = asyncio.run(run())
        if result.report.cancelled:
            raise typer.Exit(130)
        if result.packages:
            verb = "Checked" if dry_run else "Published"
            context.reporter.status("Done", f"{verb} {len(result.report.published)} packages")

    run_in_workspace(ctx, action)


@app.command("unify-deps")
def unify_deps(
    ctx: typer.Context,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Point dependencies pinned in [workspace.dependencies] at the workspace."""
    from wyvern.commands import unify_dependencies

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        unify_dependencies(context, criteria)

    run_in_workspace(ctx, action)


@app.command("independence-check")
def independence_check(
    ctx: typer.Context,
    mode: Annotated[
        list[str] | None,
        typer.Option("--mode", help="Compile mode: build, check or test (repeatable)"),
    ] = None,
    context_name: Annotated[
        str,
        typer.Option("--ctx", help="Verification context: in-place or ephemeral"),
    ] = "in-place",
    failfast: Annotated[
        bool,
        typer.Option("--failfast", help="Stop at the first failing combination"),
    ] = False,
    concurrency: Annotated[
        int | None,
        typer.Option("--concurrency", "-j", min=1, help="Parallel compilations"),
    ] = None,
    packages: PackagesOption = None,
    skip: SkipOption = None,
    ignore_pre_version: IgnorePreOption = None,
    ignore_publish: IgnorePublishOption = False,
    changed_since: ChangedSinceOption = None,
    include_pre_deps: IncludePreDepsOption = False,
) -> None:
    """Compile every selected package alone with each feature combination."""
    from wyvern.commands import IndependenceCommand, IndependenceOptions
    from wyvern.toolchain import CompileMode
    from wyvern.verify import VerifyContext

    def action(context):
        criteria = make_criteria(
            context.workspace,
            packages,
            skip,
            ignore_pre_version,
            ignore_publish,
            changed_since,
            include_pre_deps,
        )
        options = IndependenceOptions(
            criteria,
            modes=[CompileMode.parse(m) for m in mode or ["test"]],
            context=VerifyContext.parse(context_name),
            failfast=failfast,
            concurrency=concurrency,
        )
        asyncio.run(IndependenceCommand(context, options).execute())

    run_in_workspace(ctx, action)


def main() -> None:
    """Main entry point."""
    app()


if __name__ == "__main__":
    main()
