"""In-process job queue for rehosting runs.

Runs are queued by message id and consumed by a small pool of asyncio
workers. In immediate mode jobs execute inline, which guarantees no overlap
and lets the processor skip its run lock.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Union

LOGGER = logging.getLogger(__name__)

MessageId = Union[int, str]
JobHandler = Callable[[MessageId], Awaitable[object]]


class JobQueue:
    """Queue of pending message ids drained by worker tasks."""

    def __init__(self, handler: JobHandler, workers: int = 2, run_immediately: bool = False) -> None:
        self._handler = handler
        self._workers = max(1, workers)
        self._run_immediately = run_immediately
        self._queue: "asyncio.Queue[Optional[MessageId]]" = asyncio.Queue()
        self._tasks: List[asyncio.Task] = []
        self.completed = 0
        self.failed = 0

    @property
    def run_immediately(self) -> bool:
        return self._run_immediately

    def start(self) -> None:
        if self._tasks:
            return
        for index in range(self._workers):
            self._tasks.append(asyncio.create_task(self._worker(index)))

    async def enqueue(self, message_id: MessageId) -> None:
        if self._run_immediately:
            await self._run(message_id)
            return
        await self._queue.put(message_id)

    async def join(self) -> None:
        """Wait until every queued job has been processed."""

        await self._queue.join()

    async def stop(self) -> None:
        for _ in self._tasks:
            await self._queue.put(None)
        await asyncio.gather(*self._tasks)
        self._tasks = []

    async def _worker(self, index: int) -> None:
        while True:
            message_id = await self._queue.get()
            try:
                if message_id is None:
                    return
                await self._run(message_id)
            finally:
                self._queue.task_done()

    async def _run(self, message_id: MessageId) -> None:
        try:
            await self._handler(message_id)
            self.completed += 1
        except Exception:
            self.failed += 1
            LOGGER.exception("Job failed for chat message %s", message_id)
