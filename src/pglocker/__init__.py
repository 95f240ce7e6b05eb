"""
pglocker - named distributed locks on PostgreSQL advisory locks.

A lock is acquired by name and held for as long as a caller-supplied
Context stays active. While held, a background task pings the session so a
dead connection is noticed and idle timeouts never reclaim it. When the
context ends the lock is released, even though the context is already
over, and the returned CompletionSignal fires exactly once.

Example:
    >>> from sqlalchemy.ext.asyncio import create_async_engine
    >>> from pglocker import Context, LockAcquisitionError, lock
    >>>
    >>> engine = create_async_engine("postgresql+asyncpg://localhost/app")
    >>>
    >>> ctx = Context()
    >>> try:
    ...     signal = await lock(ctx, engine, "nightly-report", timeout=5.0)
    ... except LockAcquisitionError:
    ...     print("Another instance is running the report")
    ... else:
    ...     await run_report()
    ...     ctx.cancel()
    ...     error = await signal.wait()
"""

from pglocker.completion import CompletionSignal, LockInfo
from pglocker.context import Context
from pglocker.exceptions import (
    ContextCancelledError,
    DeadlineExceededError,
    LockAcquisitionError,
    LockReleaseError,
    PgLockerError,
    SessionClosedError,
    ignore_error,
)
from pglocker.identifier import lock_id, lock_name
from pglocker.locker import AdvisoryLocker, lock
from pglocker.options import DEFAULT_PING_INTERVAL, DEFAULT_RELEASE_TIMEOUT, LockOptions

__version__ = "0.1.0"

__all__ = [
    # Entry points
    "lock",
    "AdvisoryLocker",
    # Cancellation
    "Context",
    # Results
    "CompletionSignal",
    "LockInfo",
    # Configuration
    "LockOptions",
    "DEFAULT_PING_INTERVAL",
    "DEFAULT_RELEASE_TIMEOUT",
    # Identifiers
    "lock_id",
    "lock_name",
    # Exceptions
    "PgLockerError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "SessionClosedError",
    "LockAcquisitionError",
    "LockReleaseError",
    "ignore_error",
]
