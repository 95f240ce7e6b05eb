"""
Standard span attributes for pglocker.

Lock spans carry these attributes so traces from different holders of the
same lock can be correlated by key or by numeric identifier.
"""

# =============================================================================
# Lock Attributes
# =============================================================================

ATTR_LOCK_KEY = "pglocker.lock.key"
"""Human-readable lock name (string)."""

ATTR_LOCK_ID = "pglocker.lock.id"
"""Numeric advisory lock identifier derived from the key (integer)."""

ATTR_LOCK_TIMEOUT = "pglocker.lock.timeout"
"""Acquisition timeout in seconds; 0 means try once (float)."""

ATTR_LOCK_ACQUIRED = "pglocker.lock.acquired"
"""Whether the lock was acquired (boolean)."""

ATTR_LOCK_HOLDER_ID = "pglocker.lock.holder_id"
"""Optional identifier of the process holding the lock (string)."""

# =============================================================================
# Database Attributes (OTEL semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system identifier (always 'postgresql')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation name (e.g., 'pg_advisory_unlock')."""

# =============================================================================
# Error Attributes
# =============================================================================

ATTR_ERROR_TYPE = "error.type"
"""Exception class name of the terminal error (string)."""


__all__ = [
    "ATTR_LOCK_KEY",
    "ATTR_LOCK_ID",
    "ATTR_LOCK_TIMEOUT",
    "ATTR_LOCK_ACQUIRED",
    "ATTR_LOCK_HOLDER_ID",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
    "ATTR_ERROR_TYPE",
]
