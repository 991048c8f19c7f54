"""Fire-and-forget background task runner.

Side-channel work such as cache write-through must never delay or fail the
request that triggered it. Tasks are scheduled on the running event loop,
kept alive by a strong reference until they finish, and their failures are
recorded for observability instead of being propagated.
"""

import asyncio
from collections import deque
from collections.abc import Coroutine
from dataclasses import dataclass
from typing import Any, Protocol

from loguru import logger

_MAX_RECORDED_FAILURES = 100


@dataclass(frozen=True)
class TaskFailure:
    """A recorded failure of a background task."""

    label: str
    error: str


class BackgroundTaskRunner(Protocol):
    """Protocol for fire-and-forget task execution."""

    def submit(self, coro: Coroutine[Any, Any, Any], *, label: str = "task") -> None:
        """Schedule a coroutine without awaiting it.

        Args:
            coro: The coroutine to execute.
            label: Short name used when logging a failure.
        """
        ...


class InProcessTaskRunner:
    """Runs side tasks on the current event loop with asyncio.create_task()."""

    def __init__(self, max_failures: int = _MAX_RECORDED_FAILURES) -> None:
        self._pending: set[asyncio.Task[Any]] = set()
        self._failures: deque[TaskFailure] = deque(maxlen=max_failures)

    @property
    def pending(self) -> int:
        """Number of submitted tasks that have not finished yet."""
        return len(self._pending)

    @property
    def failures(self) -> list[TaskFailure]:
        """Most recent task failures, oldest first."""
        return list(self._failures)

    def submit(self, coro: Coroutine[Any, Any, Any], *, label: str = "task") -> None:
        """Schedule a coroutine without awaiting it.

        Args:
            coro: The coroutine to execute.
            label: Short name used when logging a failure.
        """

        async def _run() -> None:
            try:
                await coro
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.warning(f"Background task {label!r} failed: {e}")
                self._failures.append(TaskFailure(label=label, error=str(e)))

        task = asyncio.create_task(_run())
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    async def drain(self) -> None:
        """Wait until every task submitted so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
