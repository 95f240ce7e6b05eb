"""
Mapping from lock names to PostgreSQL advisory lock identifiers.

PostgreSQL advisory locks are keyed by integers, so every lock name is
reduced to an unsigned 32-bit IEEE CRC-32 checksum of its UTF-8 bytes.
The checksum is fixed (not salted per process), which is what lets
independent processes agree on the identifier for the same name.

Distinct names can collide. Callers who need stronger separation should
namespace their names with ``lock_name``.
"""

from __future__ import annotations

import zlib


def lock_id(name: str) -> int:
    """
    Convert a lock name to a 32-bit advisory lock identifier.

    Args:
        name: Lock name

    Returns:
        Unsigned integer in ``[0, 2**32)``

    Example:
        >>> lock_id("hello")
        907060870
    """
    return zlib.crc32(name.encode("utf-8")) & 0xFFFFFFFF


def lock_name(*parts: object) -> str:
    """
    Build a lock name from its components.

    Provides a consistent ``a:b:c`` naming convention so related locks
    share a readable prefix.

    Args:
        *parts: Name components; each is converted with ``str()``

    Returns:
        Components joined with ``:``

    Raises:
        ValueError: If no parts are given

    Example:
        >>> lock_name("report", "daily", 42)
        'report:daily:42'
    """
    if not parts:
        raise ValueError("lock_name requires at least one part")
    return ":".join(str(part) for part in parts)


__all__ = ["lock_id", "lock_name"]
