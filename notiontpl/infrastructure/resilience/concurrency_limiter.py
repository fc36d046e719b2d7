"""Implementation of a bounded concurrency limiter.

Admits a stream of async tasks and runs at most ``concurrency`` of them at
once, starting queued tasks in submission order as slots free up.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Deque, Set

logger = logging.getLogger(__name__)

DEFAULT_CONCURRENCY = 3

Task = Callable[[], Awaitable[Any]]


@dataclass
class _QueuedTask:
    """A submitted task and the future handed back to the caller."""
    task: Task
    future: "asyncio.Future[Any]"


class ConcurrencyLimiter:
    """FIFO limiter for async tasks.

    Only the limiter's own admission and completion logic touches
    ``_active`` and ``_pending``; under a single event loop these mutations
    happen between suspension points, so no lock is needed.
    """

    def __init__(self, concurrency: int = DEFAULT_CONCURRENCY):
        """Initializes the limiter.

        Args:
            concurrency: Maximum number of tasks executing at the same time.
        """
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.concurrency = concurrency
        self._active = 0
        self._pending: Deque[_QueuedTask] = deque()
        self._running: Set["asyncio.Task[None]"] = set()
        logger.info(f"ConcurrencyLimiter initialized: concurrency={concurrency}")

    @property
    def active_count(self) -> int:
        return self._active

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def submit(self, task: Task) -> "asyncio.Future[Any]":
        """Queues a task and returns a future mirroring its outcome.

        Never blocks: the task is accepted immediately and started on a
        later loop iteration once a slot is free. Must be called while an
        event loop is running.
        """
        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._pending.append(_QueuedTask(task=task, future=future))
        logger.debug(f"Task queued (active={self._active}, pending={len(self._pending)})")
        loop.call_soon(self._next)
        return future

    def _next(self) -> None:
        """Promotes queued tasks while capacity exists."""
        while self._active < self.concurrency and self._pending:
            item = self._pending.popleft()
            self._active += 1
            runner = asyncio.ensure_future(self._run(item))
            self._running.add(runner)
            runner.add_done_callback(self._running.discard)

    async def _run(self, item: _QueuedTask) -> None:
        try:
            result = await item.task()
        except asyncio.CancelledError:
            if not item.future.done():
                item.future.cancel()
            raise
        except Exception as e:
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            self._active -= 1
            self._next()
