"""
Worker Pool

Runs a batch of async tasks with bounded concurrency and settle-all semantics:
every task gets a slot in the result, failures never abort the batch.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Optional, Sequence

from restaurant_kb.core.base import PoolCancelledError


ProgressCallback = Callable[[int, int, Optional[BaseException]], None]


@dataclass
class PoolResult:
    """Outcome of a batch, indexed by each task's position in the input"""
    results_by_index: List[Any] = field(default_factory=list)
    errors_by_index: List[Optional[BaseException]] = field(default_factory=list)
    success_count: int = 0
    error_count: int = 0

    @property
    def total_tasks(self) -> int:
        return len(self.results_by_index)


class WorkerPool:
    """Bounded-concurrency executor built on an asyncio.Semaphore"""

    def __init__(self, concurrency: int = 3):
        if concurrency < 1:
            raise ValueError(f"concurrency must be at least 1, got {concurrency}")
        self.concurrency = concurrency
        self.running = 0
        self.peak_running = 0
        self.logger = logging.getLogger(__name__)

    async def execute_all(self, tasks: Sequence[Callable[[], Awaitable[Any]]],
                          on_progress: Optional[ProgressCallback] = None,
                          cancel_event: Optional[asyncio.Event] = None) -> PoolResult:
        """
        Execute every task with at most ``concurrency`` in flight.

        Args:
            tasks: Zero-argument async callables
            on_progress: Called as (completed, total, error_or_none) after each task
            cancel_event: When set, tasks that have not started yet are skipped

        Returns:
            PoolResult with results and errors stored at each task's index
        """
        total = len(tasks)
        result = PoolResult(
            results_by_index=[None] * total,
            errors_by_index=[None] * total,
        )
        if total == 0:
            return result

        semaphore = asyncio.Semaphore(self.concurrency)
        completed = 0

        async def run(index: int, task: Callable[[], Awaitable[Any]]) -> None:
            nonlocal completed
            error: Optional[BaseException] = None

            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    error = PoolCancelledError(f"Task {index} cancelled before start")
                else:
                    self.running += 1
                    self.peak_running = max(self.peak_running, self.running)
                    try:
                        result.results_by_index[index] = await task()
                    except Exception as e:
                        error = e
                    finally:
                        self.running -= 1

            if error is None:
                result.success_count += 1
            else:
                result.errors_by_index[index] = error
                result.error_count += 1
                self.logger.debug(f"Task {index} failed: {error}")

            completed += 1
            if on_progress:
                on_progress(completed, total, error)

        await asyncio.gather(*(run(i, task) for i, task in enumerate(tasks)))

        self.logger.debug(
            f"Worker pool finished {total} tasks: {result.success_count} ok, {result.error_count} failed"
        )
        return result
