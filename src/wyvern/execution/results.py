"""Execution result types."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ExecutionStatus(Enum):
    """Status of one external process invocation."""

    SUCCESS = "success"
    FAILURE = "failure"
    TIMEOUT = "timeout"


@dataclass
class ExecutionResult:
    """Result of running one external command.

    Failures are returned, never raised, so a caller running many commands
    can decide for itself whether to continue.

    Attributes:
        label: What the command ran for, usually a package name.
        status: Outcome of the command.
        exit_code: Process exit code, ``-1`` if the process never finished.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration_ms: Wall clock duration in milliseconds.
        command: The command line that was run.
    """

    label: str
    status: ExecutionStatus
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0
    command: str = ""

    @property
    def success(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @property
    def output(self) -> str:
        """Combined output, stderr last since that is where the toolchain reports."""
        return "\n".join(part for part in (self.stdout.strip(), self.stderr.strip()) if part)

    @classmethod
    def success_result(
        cls,
        label: str,
        *,
        stdout: str = "",
        stderr: str = "",
        duration_ms: int = 0,
        command: str = "",
    ) -> ExecutionResult:
        return cls(
            label=label,
            status=ExecutionStatus.SUCCESS,
            exit_code=0,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            command=command,
        )

    @classmethod
    def failure_result(
        cls,
        label: str,
        exit_code: int,
        *,
        stdout: str = "",
        stderr: str = "",
        duration_ms: int = 0,
        command: str = "",
        timed_out: bool = False,
    ) -> ExecutionResult:
        return cls(
            label=label,
            status=ExecutionStatus.TIMEOUT if timed_out else ExecutionStatus.FAILURE,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration_ms=duration_ms,
            command=command,
        )

