"""Compile modes and the cargo arguments for them."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from pathlib import Path

from wyvern.errors import ConfigError


class CompileMode(Enum):
    """How a package is compiled during verification."""

    BUILD = "build"
    TEST = "test"
    CHECK = "check"

    @classmethod
    def parse(cls, value: str) -> CompileMode:
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise ConfigError(f"Unknown check type: {value}") from None

    @property
    def cargo_args(self) -> list[str]:
        if self is CompileMode.TEST:
            # compile the test harness without running it
            return ["test", "--no-run"]
        return [self.value]


def compile_args(
    manifest_path: Path,
    mode: CompileMode,
    features: Sequence[str],
    output_dir: Path,
    *,
    package_spec: str | None = None,
) -> list[str]:
    """Cargo arguments compiling exactly the given feature set."""
    args = [*mode.cargo_args, "--manifest-path", str(manifest_path)]
    if package_spec is not None:
        args += ["--package", package_spec]
    args.append("--no-default-features")
    if features:
        args += ["--features", ",".join(features)]
    args += ["--target-dir", str(output_dir)]
    return args
