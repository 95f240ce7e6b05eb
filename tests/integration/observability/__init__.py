"""Integration tests for OpenTelemetry tracing of lock operations."""
