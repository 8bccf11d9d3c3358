"""
Tests for WorkerPool
"""

import asyncio

import pytest

from restaurant_kb.core.base import PoolCancelledError
from restaurant_kb.core.worker_pool import WorkerPool


class TestWorkerPool:
    """Test suite for WorkerPool"""

    @pytest.mark.asyncio
    async def test_bounded_concurrency_and_order(self):
        """10 tasks with concurrency 3 never exceed 3 in flight; results keep input order"""
        pool = WorkerPool(concurrency=3)
        in_flight = 0
        observed_peak = 0

        def make_task(i):
            async def task():
                nonlocal in_flight, observed_peak
                in_flight += 1
                observed_peak = max(observed_peak, in_flight)
                # Later tasks finish first
                await asyncio.sleep(0.001 * (10 - i))
                in_flight -= 1
                return i * i
            return task

        result = await pool.execute_all([make_task(i) for i in range(10)])

        assert result.results_by_index == [i * i for i in range(10)]
        assert result.success_count == 10
        assert result.error_count == 0
        assert result.total_tasks == 10
        assert observed_peak <= 3
        assert pool.peak_running <= 3

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_batch(self):
        pool = WorkerPool(concurrency=2)

        async def ok():
            return "ok"

        async def boom():
            raise RuntimeError("boom")

        result = await pool.execute_all([ok, boom, ok])

        assert result.results_by_index == ["ok", None, "ok"]
        assert isinstance(result.errors_by_index[1], RuntimeError)
        assert result.errors_by_index[0] is None
        assert result.success_count == 2
        assert result.error_count == 1

    @pytest.mark.asyncio
    async def test_progress_callback(self):
        pool = WorkerPool(concurrency=1)
        progress = []

        async def ok():
            return 1

        async def boom():
            raise ValueError("x")

        await pool.execute_all([ok, boom], on_progress=lambda done, total, err: progress.append((done, total, err)))

        assert [(done, total) for done, total, _ in progress] == [(1, 2), (2, 2)]
        assert progress[0][2] is None
        assert isinstance(progress[1][2], ValueError)

    @pytest.mark.asyncio
    async def test_cancel_skips_pending_tasks(self):
        pool = WorkerPool(concurrency=1)
        cancel_event = asyncio.Event()
        started = []

        def make_task(i):
            async def task():
                started.append(i)
                if i == 0:
                    cancel_event.set()
                return i
            return task

        result = await pool.execute_all([make_task(i) for i in range(4)], cancel_event=cancel_event)

        assert started == [0]
        assert result.results_by_index[0] == 0
        assert all(isinstance(err, PoolCancelledError) for err in result.errors_by_index[1:])
        assert result.error_count == 3

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        result = await WorkerPool().execute_all([])
        assert result.total_tasks == 0
        assert result.success_count == 0

    def test_invalid_concurrency(self):
        with pytest.raises(ValueError):
            WorkerPool(concurrency=0)
