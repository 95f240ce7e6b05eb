"""
Integration tests for lock tracing with the OpenTelemetry SDK.

Tests for:
- Acquire and release spans exported with lock attributes
- Failed acquisition recorded on the acquire span
- Default tracer selection when OpenTelemetry is installed
"""

from __future__ import annotations

import asyncio
from typing import Any
from uuid import uuid4

import pytest

from pglocker import AdvisoryLocker, Context, LockAcquisitionError, lock_id
from pglocker.observability import (
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_LOCK_ACQUIRED,
    ATTR_LOCK_HOLDER_ID,
    ATTR_LOCK_ID,
    ATTR_LOCK_KEY,
    ATTR_LOCK_TIMEOUT,
    OpenTelemetryTracer,
)
from tests.fixtures import FakeEngine

pytestmark = [pytest.mark.integration]


@pytest.fixture
def key() -> str:
    return f"traced:{uuid4()}"


def spans_for(find_spans: Any, name: str, key: str) -> list[Any]:
    return [s for s in find_spans(name) if s.attributes.get(ATTR_LOCK_KEY) == key]


class TestLockSpans:
    """Spans recorded by a real SDK tracer."""

    @pytest.mark.asyncio
    async def test_acquire_and_release_spans_exported(
        self, fake_engine: FakeEngine, find_spans: Any, key: str
    ) -> None:
        locker = AdvisoryLocker(
            fake_engine,  # type: ignore[arg-type]
            holder_id="worker-1",
            tracer=OpenTelemetryTracer("pglocker.tests"),
        )
        ctx = Context()
        signal = await locker.lock(ctx, key, timeout=1.0)
        ctx.cancel()
        assert await asyncio.wait_for(signal.wait(), timeout=1.0) is None

        (acquire,) = spans_for(find_spans, "pglocker.lock.acquire", key)
        assert acquire.attributes[ATTR_LOCK_ID] == lock_id(key)
        assert acquire.attributes[ATTR_LOCK_TIMEOUT] == 1.0
        assert acquire.attributes[ATTR_LOCK_HOLDER_ID] == "worker-1"
        assert acquire.attributes[ATTR_LOCK_ACQUIRED] is True

        (release,) = spans_for(find_spans, "pglocker.lock.release", key)
        assert release.attributes[ATTR_LOCK_ID] == lock_id(key)
        assert release.attributes[ATTR_DB_SYSTEM] == "postgresql"
        assert release.attributes[ATTR_DB_OPERATION] == "pg_advisory_unlock"

    @pytest.mark.asyncio
    async def test_contended_acquire_records_not_acquired(
        self, fake_engine: FakeEngine, find_spans: Any, key: str
    ) -> None:
        locker = AdvisoryLocker(
            fake_engine,  # type: ignore[arg-type]
            tracer=OpenTelemetryTracer("pglocker.tests"),
        )
        holder = Context()
        signal = await locker.lock(holder, key)

        with pytest.raises(LockAcquisitionError):
            await locker.lock(Context(), key)

        holder.cancel()
        await asyncio.wait_for(signal.wait(), timeout=1.0)

        acquired = [
            s.attributes[ATTR_LOCK_ACQUIRED]
            for s in spans_for(find_spans, "pglocker.lock.acquire", key)
        ]
        assert acquired == [True, False]

    @pytest.mark.asyncio
    async def test_default_tracer_exports_spans(
        self, fake_engine: FakeEngine, find_spans: Any, key: str
    ) -> None:
        locker = AdvisoryLocker(fake_engine)  # type: ignore[arg-type]
        ctx = Context()
        signal = await locker.lock(ctx, key)
        ctx.cancel()
        await asyncio.wait_for(signal.wait(), timeout=1.0)

        assert len(spans_for(find_spans, "pglocker.lock.acquire", key)) == 1
        assert len(spans_for(find_spans, "pglocker.lock.release", key)) == 1
