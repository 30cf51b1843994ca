"""wyvern commands."""

from wyvern.commands.base import Command, CommandContext, SyncCommand, select
from wyvern.commands.check import (
    CheckCommand,
    CheckOptions,
    CheckResult,
    check_metadata,
    check_packages,
    soft_check,
)
from wyvern.commands.dev_deps import (
    DeDevDepsCommand,
    DeDevDepsResult,
    deactivate_dev_dependencies,
)
from wyvern.commands.independence import (
    IndependenceCommand,
    IndependenceOptions,
    IndependenceResult,
    MatrixCell,
    feature_powerset,
)
from wyvern.commands.release import (
    AddOwnerCommand,
    AddOwnerResult,
    PublishReport,
    Publisher,
    ReleaseCommand,
    ReleaseOptions,
    ReleaseResult,
    add_owner,
    resolve_publish_token,
)
from wyvern.commands.rename import RenameCommand, RenameResult, rename
from wyvern.commands.set_field import SetFieldCommand, SetFieldResult, parse_field_value
from wyvern.commands.to_release import (
    PlanOptions,
    ToReleaseCommand,
    ToReleaseResult,
    format_packages,
    plan_release,
)
from wyvern.commands.unify import UnifyCommand, UnifyResult, unify_dependencies
from wyvern.commands.version import (
    VersionChange,
    VersionCommand,
    VersionOptions,
    VersionResult,
    version,
)

__all__ = [
    "AddOwnerCommand",
    "AddOwnerResult",
    "CheckCommand",
    "CheckOptions",
    "CheckResult",
    "Command",
    "CommandContext",
    "DeDevDepsCommand",
    "DeDevDepsResult",
    "IndependenceCommand",
    "IndependenceOptions",
    "IndependenceResult",
    "MatrixCell",
    "PlanOptions",
    "PublishReport",
    "Publisher",
    "ReleaseCommand",
    "ReleaseOptions",
    "ReleaseResult",
    "RenameCommand",
    "RenameResult",
    "SetFieldCommand",
    "SetFieldResult",
    "SyncCommand",
    "ToReleaseCommand",
    "ToReleaseResult",
    "UnifyCommand",
    "UnifyResult",
    "VersionChange",
    "VersionCommand",
    "VersionOptions",
    "VersionResult",
    "add_owner",
    "check_metadata",
    "check_packages",
    "deactivate_dev_dependencies",
    "feature_powerset",
    "format_packages",
    "parse_field_value",
    "plan_release",
    "rename",
    "resolve_publish_token",
    "select",
    "soft_check",
    "unify_dependencies",
    "version",
]
