"""Tests for the background task runner module."""

import asyncio

import pytest

from incident_api.core.background import InProcessTaskRunner


class TestInProcessTaskRunner:
    """Tests for InProcessTaskRunner."""

    @pytest.mark.asyncio
    async def test_submitted_task_runs(self) -> None:
        runner = InProcessTaskRunner()
        completed = False

        async def simple_task() -> None:
            nonlocal completed
            completed = True

        runner.submit(simple_task(), label="simple")
        await runner.drain()

        assert completed
        assert runner.pending == 0
        assert runner.failures == []

    @pytest.mark.asyncio
    async def test_submit_does_not_wait(self) -> None:
        runner = InProcessTaskRunner()
        gate = asyncio.Event()

        async def blocked() -> None:
            await gate.wait()

        runner.submit(blocked())
        assert runner.pending == 1

        gate.set()
        await runner.drain()
        assert runner.pending == 0

    @pytest.mark.asyncio
    async def test_failure_recorded_not_raised(self) -> None:
        runner = InProcessTaskRunner()

        async def failing() -> None:
            msg = "edge unavailable"
            raise RuntimeError(msg)

        runner.submit(failing(), label="edge write")
        await runner.drain()

        assert len(runner.failures) == 1
        assert runner.failures[0].label == "edge write"
        assert runner.failures[0].error == "edge unavailable"

    @pytest.mark.asyncio
    async def test_failures_bounded(self) -> None:
        runner = InProcessTaskRunner(max_failures=2)

        async def failing(n: int) -> None:
            raise ValueError(str(n))

        for n in range(5):
            runner.submit(failing(n))
        await runner.drain()

        assert [f.error for f in runner.failures] == ["3", "4"]

    @pytest.mark.asyncio
    async def test_drain_waits_for_tasks_submitted_while_draining(self) -> None:
        runner = InProcessTaskRunner()
        done: list[str] = []

        async def second() -> None:
            done.append("second")

        async def first() -> None:
            runner.submit(second())
            done.append("first")

        runner.submit(first())
        await runner.drain()

        assert done == ["first", "second"]
