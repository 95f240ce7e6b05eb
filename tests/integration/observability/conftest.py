"""
Shared pytest fixtures for observability integration tests.

This module provides fixtures for OpenTelemetry testing infrastructure:
a session-wide SDK TracerProvider and a per-test in-memory exporter.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest

# Module-level provider shared across the session
_test_provider: Any = None


@pytest.fixture(scope="session", autouse=True)
def setup_test_tracing() -> Generator[Any, None, None]:
    """
    Set up a global TracerProvider for all tests at session scope.

    The global provider can only be set once per process, so tests add
    their own exporters to it instead of replacing it.
    """
    global _test_provider

    pytest.importorskip("opentelemetry.sdk")
    from opentelemetry import trace
    from opentelemetry.sdk.trace import TracerProvider

    current_provider = trace.get_tracer_provider()

    # Check if current provider is a proxy (not yet configured)
    if current_provider.__class__.__name__ == "ProxyTracerProvider":
        _test_provider = TracerProvider()
        trace.set_tracer_provider(_test_provider)
    else:
        _test_provider = current_provider

    yield _test_provider


@pytest.fixture
def trace_exporter(setup_test_tracing: Any) -> Generator[Any, None, None]:
    """
    Create an in-memory span exporter attached to the test provider.

    Yields:
        InMemorySpanExporter instance with captured spans
    """
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import SimpleSpanProcessor
    from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

    if not isinstance(_test_provider, TracerProvider):
        pytest.skip("global tracer provider is not an SDK TracerProvider")

    exporter = InMemorySpanExporter()
    _test_provider.add_span_processor(SimpleSpanProcessor(exporter))

    yield exporter

    # Processors can't be removed; clearing keeps later tests isolated
    exporter.clear()


@pytest.fixture
def find_spans(trace_exporter: Any) -> Callable[[str], list[Any]]:
    """Return finished spans with the given name."""

    def _find_spans(name: str) -> list[Any]:
        return [s for s in trace_exporter.get_finished_spans() if s.name == name]

    return _find_spans
