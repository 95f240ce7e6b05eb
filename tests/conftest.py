"""
Shared pytest fixtures for the pglocker library tests.

This module provides:
- Fake engine fixtures (advisory_server, fake_engine)
- Context fixtures (ctx)
- Tracer fixtures (mock_tracer)
- Lock name fixtures (lock_key)
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncGenerator
from uuid import uuid4

import pytest

from pglocker import AdvisoryLocker, Context
from pglocker.observability import MockTracer
from tests.fixtures import FakeAdvisoryServer, FakeEngine

# =============================================================================
# Sample Data Fixtures
# =============================================================================


@pytest.fixture
def lock_key() -> str:
    """
    Provide a unique lock name.

    Returns:
        A lock name that no other test uses.
    """
    return f"test:{uuid4()}"


# =============================================================================
# Fake Database Fixtures
# =============================================================================


@pytest.fixture
def advisory_server() -> FakeAdvisoryServer:
    """Provide an empty in-memory advisory lock server."""
    return FakeAdvisoryServer()


@pytest.fixture
def fake_engine(advisory_server: FakeAdvisoryServer) -> FakeEngine:
    """
    Provide a fake AsyncEngine backed by ``advisory_server``.

    Every ``connect()`` is a separate session on the same server, so two
    connections contend for locks like two real PostgreSQL backends.
    """
    return FakeEngine(advisory_server)


# =============================================================================
# Lock Fixtures
# =============================================================================


@pytest.fixture
async def ctx() -> AsyncGenerator[Context, None]:
    """
    Provide a background Context that is cancelled after the test.

    Cancelling on teardown lets any lock still held by the test release;
    teardown waits for those releases so no task outlives the test.
    """
    context = Context.background()
    yield context
    context.cancel()
    holding = [t for t in asyncio.all_tasks() if t.get_name().startswith("pglocker-hold:")]
    if holding:
        await asyncio.wait(holding, timeout=1.0)


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Provide a MockTracer that records spans."""
    return MockTracer()


@pytest.fixture
def locker(fake_engine: FakeEngine, mock_tracer: MockTracer) -> AdvisoryLocker:
    """Provide an AdvisoryLocker over the fake engine with span recording."""
    return AdvisoryLocker(fake_engine, holder_id="test-holder", tracer=mock_tracer)  # type: ignore[arg-type]
