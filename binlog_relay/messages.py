"""
Broker message shaping: PendingMessage and conversion from row mutations.
"""

import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any
from uuid import UUID

from binlog_relay.events import RowMutation

DEFAULT_MESSAGE_KEY = b"shard:GTID"

KEY_STRATEGIES = ("static", "table")


@dataclass(frozen=True)
class PendingMessage:
    """A keyed message waiting in the relay buffer for the next flush."""

    key: bytes
    value: bytes
    timestamp: datetime

    @property
    def timestamp_ms(self) -> int:
        """Timestamp as epoch milliseconds, the unit Kafka expects."""
        return int(self.timestamp.timestamp() * 1000)


def message_from_mutation(
    event: RowMutation,
    key: bytes = DEFAULT_MESSAGE_KEY,
    key_strategy: str = "static",
    now: datetime | None = None,
) -> PendingMessage:
    """
    Build the broker message for a row mutation.

    The value is the action followed by the affected rows as compact JSON,
    e.g. ``insert [[1,"alice"]]``.

    Args:
        event: Row mutation from the capture engine
        key: Static message key used by the "static" strategy
        key_strategy: "static" (one key for every message) or "table"
            ("schema.table", keeps per-table ordering within a partition)
        now: Message timestamp (defaults to current UTC time)

    Returns:
        PendingMessage ready to be buffered
    """
    if key_strategy == "table":
        message_key = f"{event.schema}.{event.table}".encode("utf-8")
    elif key_strategy == "static":
        message_key = key
    else:
        raise ValueError(f"Unknown key strategy: {key_strategy!r}")

    rows = json.dumps(event.rows, default=_serialize, separators=(",", ":"))
    value = f"{event.action} {rows}".encode("utf-8")

    return PendingMessage(
        key=message_key,
        value=value,
        timestamp=now or datetime.now(timezone.utc),
    )


def _serialize(value: Any) -> Any:
    """Serialize a column value that JSON can't encode natively."""
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Decimal):
        # Keep exact precision; consumers parse it back
        return str(value)
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    return str(value)
