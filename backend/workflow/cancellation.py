"""Cancellation and deadline handling for a single workflow run.

A run has no preemption: the token is checked between steps and around
every suspending call (delay, webhook, email, store writes issued by
actions). Cancelling a run therefore stops it at the next check.
"""

import asyncio
import time
from typing import Awaitable, Optional, TypeVar

from core.exceptions import ExecutionCancelledError, ExecutionTimeoutError

T = TypeVar("T")


class CancellationToken:
    """Cooperative cancellation flag with an optional absolute deadline."""

    def __init__(self, timeout: Optional[float] = None):
        self._cancelled = asyncio.Event()
        self._reason = "Execution cancelled"
        self._deadline: Optional[float] = (
            time.monotonic() + timeout if timeout is not None else None
        )

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def deadline(self) -> Optional[float]:
        return self._deadline

    def cancel(self, reason: str = "Execution cancelled") -> None:
        """Request cancellation; the run stops at its next check."""
        self._reason = reason
        self._cancelled.set()

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None when unbounded."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self._cancelled.is_set():
            raise ExecutionCancelledError(self._reason)
        if self._deadline is not None and time.monotonic() >= self._deadline:
            raise ExecutionTimeoutError()

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` unless cancelled or the deadline passes first."""
        self.raise_if_cancelled()
        remaining = self.remaining()
        wait_for = seconds if remaining is None else min(seconds, remaining)
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout=wait_for)
        except asyncio.TimeoutError:
            if wait_for < seconds:
                raise ExecutionTimeoutError() from None
        self.raise_if_cancelled()

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` bounded by the deadline, checking before and after."""
        try:
            self.raise_if_cancelled()
        except (ExecutionCancelledError, ExecutionTimeoutError):
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise
        remaining = self.remaining()
        if remaining is None:
            result = await awaitable
        else:
            try:
                result = await asyncio.wait_for(awaitable, timeout=remaining)
            except asyncio.TimeoutError:
                raise ExecutionTimeoutError() from None
        self.raise_if_cancelled()
        return result
