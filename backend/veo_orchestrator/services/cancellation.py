"""Cooperative cancellation token threaded through every suspension point of a job."""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from veo_orchestrator.services.errors import JobCancelledError

T = TypeVar("T")


class CancelToken:
    """Fire-and-forget cancellation signal for one job.

    Cancelling only stops local waits; nothing is sent to the remote service.
    """

    def __init__(self, job_id: str | None = None) -> None:
        self.job_id = job_id
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise JobCancelledError(self.job_id)

    async def sleep(self, delay: float) -> None:
        """Sleep for `delay` seconds, waking early and raising if cancelled."""
        self.raise_if_cancelled()
        try:
            await asyncio.wait_for(self._event.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise JobCancelledError(self.job_id)

    async def run(self, awaitable: Awaitable[T]) -> T:
        """Await `awaitable` unless the token fires first, in which case it is abandoned."""
        self.raise_if_cancelled()
        work = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            work.cancel()
            raise
        finally:
            waiter.cancel()
        if work.done():
            return work.result()
        work.cancel()
        raise JobCancelledError(self.job_id)
