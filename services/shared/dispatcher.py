"""
Fire-and-forget side effects.

Notifications, fraud scoring, analytics and the like are handed to a
``SideEffectDispatcher`` after the event that triggers them has been
committed. The caller gets control back immediately; the work runs on the
event loop, at most ``max_workers`` jobs at a time.

    request ──▶ commit ──▶ dispatch(email) ──▶ return response
                              │
                              ├─▶ [worker] email    ─▶ Redis
                              ├─▶ [worker] sms      ─▶ Redis
                              └─▶ [worker] audit    ─▶ Redis

A failing job is logged and dropped. It is never retried and never touches
its siblings or the response that was already sent.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

logger = logging.getLogger(__name__)


class SideEffectDispatcher:
    def __init__(self, max_workers: int = 8) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be >= 1")
        self._slots = asyncio.Semaphore(max_workers)
        self._tasks: set[asyncio.Task] = set()
        self.failures = 0

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def dispatch(
        self,
        name: str,
        job: Callable[..., Awaitable[Any]],
        *args: Any,
        **kwargs: Any,
    ) -> asyncio.Task:
        """Schedule ``job(*args, **kwargs)`` and return without waiting for it."""
        task = asyncio.create_task(self._run(name, job, args, kwargs), name=name)
        # Keep a strong reference until the task finishes
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, job, args: tuple, kwargs: dict) -> None:
        try:
            async with self._slots:
                result = await job(*args, **kwargs)
            logger.debug("Side effect %s finished: %s", name, result)
        except asyncio.CancelledError:
            logger.warning("Side effect %s interrupted", name)
        except Exception:
            self.failures += 1
            logger.exception("Side effect %s failed", name)

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait for every in-flight job. Returns False if the timeout hit first."""
        while self._tasks:
            done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
            if pending:
                return False
        return True

    async def shutdown(self, grace_period: float = 5.0) -> None:
        if await self.drain(timeout=grace_period):
            return
        leftover = list(self._tasks)
        logger.warning("Cancelling %d unfinished side effects", len(leftover))
        for task in leftover:
            task.cancel()
        await asyncio.gather(*leftover, return_exceptions=True)
