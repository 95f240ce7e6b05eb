"""
Cancellation contexts bounding how long a lock is wanted.

A Context ends exactly once, either because someone called ``cancel()``
or because its deadline passed. Anything awaited through ``Context.run``
is abandoned as soon as the context ends, and the context's error is
raised in its place.

Example:
    >>> ctx = Context(timeout=30.0)
    >>> signal = await lock(ctx, engine, "nightly-report")
    >>> ...
    >>> ctx.cancel()
    >>> assert await signal.wait() is None
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable
from types import TracebackType
from typing import TypeVar

from pglocker.exceptions import (
    ContextCancelledError,
    DeadlineExceededError,
    PgLockerError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Context:
    """
    A cancellable scope with an optional deadline.

    Contexts created with a timeout schedule their expiry on the running
    event loop, so they must be created from inside a coroutine.

    Args:
        timeout: Seconds until the context expires on its own (None = never)
    """

    def __init__(self, timeout: float | None = None) -> None:
        self._done = asyncio.Event()
        self._error: PgLockerError | None = None
        self._timer: asyncio.TimerHandle | None = None
        self._parent: Context | None = None
        self._children: set[Context] = set()

        if timeout is not None:
            if timeout < 0:
                raise ValueError(f"timeout must be non-negative, got {timeout}")
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(timeout, self._expire)

    @classmethod
    def background(cls) -> Context:
        """Return a context that only ends when cancelled."""
        return cls()

    def child(self, timeout: float | None = None) -> Context:
        """
        Derive a context that ends when this one ends, or earlier.

        Args:
            timeout: Optional deadline for the child only

        Returns:
            A new Context linked to this one
        """
        child = Context(timeout)
        if self._error is not None:
            child._finish(self._copy_error())
            return child
        child._parent = self
        self._children.add(child)
        return child

    @property
    def done(self) -> bool:
        """True once the context has been cancelled or has expired."""
        return self._done.is_set()

    @property
    def error(self) -> PgLockerError | None:
        """
        Why the context ended.

        Returns:
            ContextCancelledError, DeadlineExceededError, or None while active
        """
        return self._error

    def cancel(self) -> None:
        """End the context with ContextCancelledError. Idempotent."""
        self._finish(ContextCancelledError())

    def _expire(self) -> None:
        self._finish(DeadlineExceededError())

    def _finish(self, error: PgLockerError) -> None:
        if self._error is not None:
            return
        self._error = error
        self._done.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._parent is not None:
            self._parent._children.discard(self)
            self._parent = None
        children, self._children = self._children, set()
        for child in children:
            child._parent = None
            child._finish(type(error)(*error.args))
        logger.debug("Context finished: %s", error)

    def _copy_error(self) -> PgLockerError:
        assert self._error is not None
        return type(self._error)(*self._error.args)

    async def wait(self, timeout: float | None = None) -> bool:
        """
        Wait until the context ends.

        Args:
            timeout: Maximum seconds to wait (None = wait indefinitely)

        Returns:
            True if the context ended, False if ``timeout`` elapsed first
        """
        if self._done.is_set():
            return True
        try:
            async with asyncio.timeout(timeout):
                await self._done.wait()
        except TimeoutError:
            return False
        return True

    async def run(self, aw: Awaitable[T], timeout: float | None = None) -> T:
        """
        Await ``aw`` bounded by this context and an optional local deadline.

        The local deadline is measured from the moment this call begins.
        When either bound is hit, or the caller is cancelled, the underlying
        task is cancelled and awaited before the error is raised.

        Args:
            aw: Coroutine or awaitable to run
            timeout: Extra deadline in seconds for this call only

        Returns:
            Whatever ``aw`` returns

        Raises:
            ContextCancelledError: If the context was cancelled
            DeadlineExceededError: If the context or local deadline expired
        """
        if self._error is not None:
            if inspect.iscoroutine(aw):
                aw.close()
            raise self._copy_error()

        task = asyncio.ensure_future(aw)
        waiter = asyncio.ensure_future(self._done.wait())
        try:
            finished, _ = await asyncio.wait(
                {task, waiter},
                timeout=timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
            raise
        finally:
            waiter.cancel()

        if task in finished:
            return task.result()

        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

        if self._error is not None:
            raise self._copy_error()
        raise DeadlineExceededError(f"deadline of {timeout}s exceeded")

    def __enter__(self) -> Context:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cancel()

    def __repr__(self) -> str:
        state = "active" if self._error is None else type(self._error).__name__
        return f"<Context {state}>"


__all__ = ["Context"]
