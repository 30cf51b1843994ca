"""Turning selection options into a package predicate."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass

from wyvern.config import PreReleaseCascade
from wyvern.errors import ConfigError
from wyvern.filters.scope import compile_patterns, match_scope
from wyvern.filters.since import DiffProvider, get_changed_packages
from wyvern.reporter import Reporter
from wyvern.workspace import Package, PublishPolicy, Workspace

PackagePredicate = Callable[[Package], bool]


@dataclass(frozen=True)
class SelectionCriteria:
    """Options deciding which packages a command works on.

    Attributes:
        packages: Regular expressions; only matching packages are selected.
        skip: Regular expressions; matching packages are not selected.
        skip_pre: Pre-release tags; packages on exactly such a tag are skipped.
        ignore_publish: Also select packages that are not published everywhere.
        changed_since: Only select packages changed since this git reference.
        include_pre_deps: Also select packages matched by the pre-release cascade.
        cascade: Which package has to carry the pre-release tag.
    """

    packages: tuple[str, ...] = ()
    skip: tuple[str, ...] = ()
    skip_pre: tuple[str, ...] = ()
    ignore_publish: bool = False
    changed_since: str | None = None
    include_pre_deps: bool = False
    cascade: PreReleaseCascade = PreReleaseCascade.SELF

    def validate(self) -> None:
        """Check option combinations and patterns.

        Raises:
            ConfigError: If mutually exclusive options are combined or a
                pattern is malformed.
        """
        excluded = bool(self.skip or self.skip_pre)
        if self.packages and excluded:
            raise ConfigError(
                "-p/--packages is mutually exclusive to using -s/--skip and -i/--ignore-pre-version"
            )
        if self.packages and self.changed_since is not None:
            raise ConfigError("-p/--packages is mutually exclusive to using -c/--changed-since")
        if self.changed_since is not None and excluded:
            raise ConfigError(
                "-c/--changed-since is mutually exclusive to using -s/--skip and "
                "-i/--ignore-pre-version"
            )
        compile_patterns(self.packages)
        compile_patterns(self.skip)


def build_predicate(
    criteria: SelectionCriteria,
    workspace: Workspace,
    *,
    diff_provider: DiffProvider | None = None,
    reporter: Reporter | None = None,
) -> PackagePredicate:
    """Build the selection predicate.

    Everything the predicate needs, the changed files included, is computed
    here, so calling it has no side effects and the answer only depends on
    the package.

    Raises:
        ConfigError: If the criteria are invalid.
        GitError: If changed files cannot be computed.
    """
    criteria.validate()
    include = compile_patterns(criteria.packages)
    skip = compile_patterns(criteria.skip)
    skip_pre = frozenset(criteria.skip_pre)

    changed: set[str] | None = None
    if criteria.changed_since is not None:
        changed = get_changed_packages(
            workspace,
            criteria.changed_since,
            diff_provider=diff_provider,
            reporter=reporter,
        )

    pre_release = frozenset(p.name for p in workspace if p.version.is_prerelease)
    by_path = {p.path: p.name for p in workspace}

    def cascades(pkg: Package) -> bool:
        if not criteria.include_pre_deps:
            return False
        if criteria.cascade is PreReleaseCascade.SELF:
            return pkg.name in pre_release
        return any(
            by_path.get(dep.path, dep.name) in pre_release for dep in pkg.path_dependencies
        )

    def predicate(pkg: Package) -> bool:
        if not criteria.ignore_publish and pkg.publish is not PublishPolicy.EVERYWHERE:
            return False

        if changed is not None:
            return pkg.name in changed or cascades(pkg)

        if include:
            return match_scope(pkg.name, include) or cascades(pkg)

        if match_scope(pkg.name, skip):
            return False
        if pkg.version.pre and pkg.version.pre in skip_pre:
            return False
        return True

    return predicate
