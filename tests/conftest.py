"""
Shared test fixtures for binlog relay tests.
"""

from datetime import datetime, timezone

import pytest

from binlog_relay.broker.memory import InMemoryBrokerClient
from binlog_relay.events import RowMutation
from binlog_relay.handlers.relay import BatchingRelay, FailurePolicy


RELAY_ENV_VARS = (
    "KAFKA",
    "KAFKA_TOPIC",
    "KAFKA_CLIENT_CERT",
    "KAFKA_CLIENT_KEY",
    "KAFKA_CA_FILE",
)


# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def clean_relay_env(monkeypatch):
    """Keep broker variables from the host environment out of every test."""
    for name in RELAY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# =============================================================================
# Event Fixtures
# =============================================================================


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2025, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_mutation():
    """Factory for row mutations on sales.orders."""

    def _make(action: str = "insert", rows=None, schema: str = "sales", table: str = "orders"):
        return RowMutation(
            action=action,
            schema=schema,
            table=table,
            rows=rows if rows is not None else [{"id": 1, "status": "new"}],
        )

    return _make


# =============================================================================
# Relay Fixtures
# =============================================================================


@pytest.fixture
def memory_client() -> InMemoryBrokerClient:
    client = InMemoryBrokerClient()
    yield client
    client.release()


@pytest.fixture
def relay(memory_client) -> BatchingRelay:
    """Relay over an in-memory broker; auto-flush is not started."""
    r = BatchingRelay(memory_client, flush_period=0.05, send_timeout=2.0)
    yield r
    r.stop_auto_flush(timeout=2.0)


@pytest.fixture
def requeue_relay(memory_client) -> BatchingRelay:
    r = BatchingRelay(
        memory_client,
        flush_period=0.05,
        send_timeout=2.0,
        failure_policy=FailurePolicy.REQUEUE,
    )
    yield r
    r.stop_auto_flush(timeout=2.0)
