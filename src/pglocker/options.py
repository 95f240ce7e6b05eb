"""
Configuration for a single lock call.

This module provides:
- LockOptions: Immutable per-call settings
- DEFAULT_PING_INTERVAL: Default liveness ping cadence
- DEFAULT_RELEASE_TIMEOUT: Default deadline for the unlock request
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

DEFAULT_PING_INTERVAL = 10.0
DEFAULT_RELEASE_TIMEOUT = 10.0


@dataclass(frozen=True)
class LockOptions:
    """
    Settings for one lock call.

    Attributes:
        timeout: Seconds to wait for the lock before giving up.
            0 (default) means fail immediately if the lock is unavailable.
        ping_interval: Seconds between liveness pings while the lock is held
        release_timeout: Seconds allowed for the unlock request. This
            deadline is independent of the caller's context.

    Example:
        >>> options = LockOptions(timeout=5.0, ping_interval=1.0)
        >>> options.waits
        True
    """

    timeout: float = 0.0
    ping_interval: float = DEFAULT_PING_INTERVAL
    release_timeout: float = DEFAULT_RELEASE_TIMEOUT

    def __post_init__(self) -> None:
        """Validate configuration values."""
        if self.timeout < 0:
            raise ValueError(
                f"timeout must be non-negative, got {self.timeout}. "
                "Use 0 to fail immediately when the lock is unavailable."
            )

        if self.ping_interval <= 0:
            raise ValueError(
                f"ping_interval must be positive, got {self.ping_interval}. "
                f"Use a value like {DEFAULT_PING_INTERVAL} (default)."
            )

        if self.release_timeout <= 0:
            raise ValueError(
                f"release_timeout must be positive, got {self.release_timeout}. "
                f"Use a value like {DEFAULT_RELEASE_TIMEOUT} (default)."
            )

    @property
    def waits(self) -> bool:
        """True if acquisition blocks (up to ``timeout``) instead of trying once."""
        return self.timeout > 0

    @classmethod
    def build(cls, options: LockOptions | None = None, **overrides: Any) -> LockOptions:
        """
        Combine a base LockOptions with keyword overrides.

        Overrides set to None are ignored, so callers can forward optional
        keyword arguments unchanged.

        Args:
            options: Base options (defaults if None)
            **overrides: Field values that replace the base ones

        Raises:
            TypeError: If an override names an unknown field
        """
        base = options or cls()
        values = {
            "timeout": base.timeout,
            "ping_interval": base.ping_interval,
            "release_timeout": base.release_timeout,
        }
        for name, value in overrides.items():
            if name not in values:
                raise TypeError(f"Unknown lock option: {name!r}")
            if value is not None:
                values[name] = value
        return cls(**values)


__all__ = [
    "DEFAULT_PING_INTERVAL",
    "DEFAULT_RELEASE_TIMEOUT",
    "LockOptions",
]
