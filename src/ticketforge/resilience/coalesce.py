"""In-flight request coalescing.

RequestCoalescer lets at most one computation run per key. When a
context aggregation for fingerprint ``abc`` is running and an identical
request arrives, the newcomer awaits the running computation and
receives the same result (or the same exception) instead of starting a
second fan-out over the analyzers.

The computation runs in a task the coalescer owns and every caller awaits
it through ``asyncio.shield``. Cancelling the request that started it
cancels only that caller; the others still get the result.

Single-process only: each worker process has its own registry. The
result cache covers reuse across processes.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass


@dataclass
class _Pending[T]:
    task: asyncio.Future[T]
    waiters: int = 0


class RequestCoalescer[T]:
    """Shares one in-progress computation among identical requests.

    Usage::

        coalescer = RequestCoalescer[Context]()
        context = await coalescer.run(fingerprint, compute)
    """

    def __init__(self) -> None:
        self._pending: dict[str, _Pending[T]] = {}
        self._lock = asyncio.Lock()
        self.coalesced_total = 0

    async def run(
        self,
        key: str,
        compute: Callable[[], Awaitable[T]],
    ) -> T:
        """Run ``compute`` for ``key`` unless a run is already in flight.

        Registration happens under the lock, and the entry is released by
        the task's own done callback, so a caller arriving after the
        result is set always starts a fresh run.
        """
        async with self._lock:
            pending = self._pending.get(key)
            if pending is None:
                pending = _Pending[T](asyncio.ensure_future(compute()))
                self._pending[key] = pending
                pending.task.add_done_callback(
                    lambda _task: self._release(key, pending)
                )
            else:
                pending.waiters += 1
                self.coalesced_total += 1
        return await asyncio.shield(pending.task)

    def _release(self, key: str, pending: _Pending[T]) -> None:
        if self._pending.get(key) is pending:
            del self._pending[key]
        if not pending.task.cancelled():
            # every caller may have gone; mark the outcome as retrieved
            pending.task.exception()

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_keys(self) -> list[str]:
        """Keys with a computation currently in flight."""
        return list(self._pending)
