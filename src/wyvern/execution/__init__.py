"""Process execution and bounded parallelism."""

from wyvern.execution.parallel import CellResult, ParallelExecutor
from wyvern.execution.results import ExecutionResult, ExecutionStatus
from wyvern.execution.runner import run_command, run_tool

__all__ = [
    "CellResult",
    "ExecutionResult",
    "ExecutionStatus",
    "ParallelExecutor",
    "run_command",
    "run_tool",
]
