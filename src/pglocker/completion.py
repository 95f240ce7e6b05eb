"""
One-shot completion signal for held locks.

The signal is how a lock holder learns that the lock is gone. It fires
exactly once with either None (clean release) or the terminal error, and
every later read returns the same stored value.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Generator
from dataclasses import dataclass
from datetime import datetime
from typing import Any


@dataclass(frozen=True)
class LockInfo:
    """
    Information about an acquired lock.

    Attributes:
        key: The lock name
        lock_id: The numeric PostgreSQL lock ID (derived from the name)
        acquired_at: When the lock was acquired (UTC)
        holder_id: Optional identifier for the lock holder (for debugging)
    """

    key: str
    lock_id: int
    acquired_at: datetime
    holder_id: str | None = None


class CompletionSignal:
    """
    Single-fire result cell resolved when a held lock is released.

    Only the liveness loop resolves the signal. Callers wait on it:

    Example:
        >>> signal = await lock(ctx, engine, "jobs")
        >>> ctx.cancel()
        >>> error = await signal.wait()
        >>> assert error is None

    Args:
        info: Details of the lock this signal belongs to
    """

    def __init__(self, info: LockInfo) -> None:
        self.info = info
        self._future: asyncio.Future[BaseException | None] = (
            asyncio.get_running_loop().create_future()
        )

    def done(self) -> bool:
        """True once the lock has been released and the outcome stored."""
        return self._future.done()

    def error(self) -> BaseException | None:
        """
        Return the stored outcome without waiting.

        Raises:
            asyncio.InvalidStateError: If the signal has not fired yet
        """
        return self._future.result()

    async def wait(self) -> BaseException | None:
        """
        Wait for the lock to be released.

        Cancelling the waiter does not affect the lock or the signal.

        Returns:
            None after a clean release, otherwise the terminal error
        """
        return await asyncio.shield(self._future)

    def add_done_callback(self, fn: Callable[[CompletionSignal], Any]) -> None:
        """Call ``fn(signal)`` once the signal fires (immediately if it already has)."""
        self._future.add_done_callback(lambda _: fn(self))

    def _resolve(self, error: BaseException | None) -> None:
        if self._future.done():
            raise asyncio.InvalidStateError(
                f"Completion signal for lock '{self.info.key}' already fired"
            )
        self._future.set_result(error)

    def __await__(self) -> Generator[Any, None, BaseException | None]:
        return self.wait().__await__()

    def __repr__(self) -> str:
        if not self._future.done():
            state = "held"
        else:
            outcome = self._future.result()
            state = "released" if outcome is None else f"failed: {outcome!r}"
        return f"<CompletionSignal key={self.info.key!r} {state}>"


__all__ = ["CompletionSignal", "LockInfo"]
