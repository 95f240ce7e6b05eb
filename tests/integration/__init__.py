"""
Integration tests for the pglocker library.

These tests require an actual PostgreSQL instance, either via:
- testcontainers (automatic container provisioning)
- an existing server given as PG_ADDR=host:port

Tests are skipped automatically if required infrastructure is not available.

Run integration tests:
    pytest tests/integration/ -v

Skip integration tests:
    pytest tests/ -v -m "not integration"
"""
