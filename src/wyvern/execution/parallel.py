"""Bounded parallel execution of independent work cells."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

TCell = TypeVar("TCell")
TResult = TypeVar("TResult")


@dataclass
class CellResult(Generic[TCell, TResult]):
    """Outcome of one cell; ``result`` is ``None`` when the cell never ran."""

    cell: TCell
    result: TResult | None = None
    cancelled: bool = False


class ParallelExecutor:
    """Run cells on a bounded worker pool.

    Cells share nothing but what the worker closes over. Results come back in
    submission order regardless of completion order.

    Attributes:
        concurrency: Maximum number of cells in flight.
        fail_fast: Stop scheduling new cells after the first failure.
    """

    def __init__(
        self,
        concurrency: int = 4,
        fail_fast: bool = False,
    ) -> None:
        """Initialize executor.

        Args:
            concurrency: Maximum parallel executions.
            fail_fast: Stop on first failure.
        """
        self.concurrency = max(1, concurrency)
        self.fail_fast = fail_fast
        self._cancelled = False

    async def run_cells(
        self,
        cells: Sequence[TCell],
        worker: Callable[[TCell], Awaitable[TResult]],
        *,
        is_failure: Callable[[TResult], bool] = lambda _: False,
    ) -> list[CellResult[TCell, TResult]]:
        """Run ``worker`` for every cell.

        A cell whose result satisfies ``is_failure`` is a failure. With
        ``fail_fast`` every cell that has not started yet is marked cancelled.
        An exception raised by a worker is fatal: all other cells are cancelled
        and the exception propagates.

        Args:
            cells: Work items.
            worker: Coroutine function processing one cell.
            is_failure: Classifies a worker result as failed.

        Returns:
            One :class:`CellResult` per cell, in submission order.
        """
        self._cancelled = False
        semaphore = asyncio.Semaphore(self.concurrency)

        async def run_one(cell: TCell) -> CellResult[TCell, TResult]:
            if self._cancelled:
                return CellResult(cell, cancelled=True)

            async with semaphore:
                if self._cancelled:
                    return CellResult(cell, cancelled=True)

                result = await worker(cell)

                if self.fail_fast and is_failure(result):
                    self._cancelled = True

                return CellResult(cell, result)

        tasks = [asyncio.create_task(run_one(cell)) for cell in cells]
        try:
            results = await asyncio.gather(*tasks)
        except BaseException:
            self._cancelled = True
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return list(results)
