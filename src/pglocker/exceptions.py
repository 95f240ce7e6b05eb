"""Library exceptions for the pglocker package."""

from __future__ import annotations


class PgLockerError(Exception):
    """Base exception for pglocker library."""

    pass


class ContextCancelledError(PgLockerError):
    """Raised when a Context was cancelled explicitly."""

    def __init__(self, message: str = "context cancelled") -> None:
        super().__init__(message)


class DeadlineExceededError(PgLockerError, TimeoutError):
    """
    Raised when a Context deadline, or a local wait deadline, expires.

    Subclasses TimeoutError so callers that already handle asyncio
    timeouts keep working.
    """

    def __init__(self, message: str = "context deadline exceeded") -> None:
        super().__init__(message)


class SessionClosedError(PgLockerError):
    """
    Raised when the session holding a lock is already closed.

    PostgreSQL drops advisory locks when the owning session ends, so a
    closed session means the lock is already gone.

    Attributes:
        key: The lock key whose session was closed
    """

    def __init__(self, key: str) -> None:
        self.key = key
        super().__init__(f"Session for lock '{key}' is already closed")


class LockAcquisitionError(PgLockerError):
    """
    Raised when a lock cannot be acquired.

    Attributes:
        key: The lock key that could not be acquired
        reason: Description of why acquisition failed
        timeout: The timeout value if timeout was the cause
    """

    def __init__(
        self,
        key: str,
        reason: str,
        timeout: float | None = None,
    ) -> None:
        self.key = key
        self.reason = reason
        self.timeout = timeout
        super().__init__(f"Failed to acquire lock '{key}': {reason}")


class LockReleaseError(PgLockerError):
    """
    Raised when the unlock request fails for a reason other than a closed session.

    Attributes:
        key: The lock key that could not be released
        reason: Description of why release failed
    """

    def __init__(self, key: str, reason: str) -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to release lock '{key}': {reason}")


# Causes that end a lock's lifetime normally.
IGNORABLE_ERRORS: tuple[type[BaseException], ...] = (
    ContextCancelledError,
    DeadlineExceededError,
    SessionClosedError,
)


def ignore_error(error: BaseException | None) -> BaseException | None:
    """
    Map expected termination causes to None.

    Args:
        error: The terminal cause, or None

    Returns:
        None if ``error`` is one of IGNORABLE_ERRORS, otherwise ``error``
        unchanged.

    Example:
        >>> ignore_error(ContextCancelledError()) is None
        True
        >>> err = LockReleaseError("jobs", "boom")
        >>> ignore_error(err) is err
        True
    """
    if isinstance(error, IGNORABLE_ERRORS):
        return None
    return error


__all__ = [
    "PgLockerError",
    "ContextCancelledError",
    "DeadlineExceededError",
    "SessionClosedError",
    "LockAcquisitionError",
    "LockReleaseError",
    "IGNORABLE_ERRORS",
    "ignore_error",
]
