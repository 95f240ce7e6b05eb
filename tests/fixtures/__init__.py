"""
Shared test fixtures for the pglocker library.

This module provides in-memory stand-ins for SQLAlchemy's async engine and
connection, backed by a fake advisory-lock server, so lock behavior can be
tested without PostgreSQL.

Usage:
    from tests.fixtures import FakeAdvisoryServer, FakeEngine
"""

from tests.fixtures.postgres import (
    FakeAdvisoryServer,
    FakeConnection,
    FakeEngine,
    FakeResult,
)

__all__ = [
    "FakeAdvisoryServer",
    "FakeConnection",
    "FakeEngine",
    "FakeResult",
]
