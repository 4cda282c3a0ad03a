"""
Tests for change events and broker message shaping.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

import pytest

from binlog_relay.events import (
    BinlogPosition,
    DDLStatement,
    GlobalTransactionMarker,
    PositionSync,
    RotateNotice,
    RowMutation,
    SchemaChange,
    TransactionCommit,
)
from binlog_relay.messages import (
    DEFAULT_MESSAGE_KEY,
    PendingMessage,
    _serialize,
    message_from_mutation,
)


# =============================================================================
# Events
# =============================================================================


class TestEvents:
    def test_position_str(self):
        assert str(BinlogPosition("mysql-bin.000003", 1547)) == "mysql-bin.000003:1547"

    def test_row_mutation_rejects_unknown_action(self):
        with pytest.raises(ValueError, match="Unknown row action"):
            RowMutation(action="upsert", schema="sales", table="orders")

    def test_row_mutation_frozen(self):
        mutation = RowMutation(action="insert", schema="sales", table="orders")
        with pytest.raises(AttributeError):
            mutation.table = "other"  # type: ignore

    @pytest.mark.parametrize(
        "event",
        [
            RotateNotice("mysql-bin.000002", 4),
            SchemaChange("sales", "orders"),
            DDLStatement(BinlogPosition("mysql-bin.000001", 120), "DROP TABLE t"),
            TransactionCommit(BinlogPosition("mysql-bin.000001", 300), xid=17),
            GlobalTransactionMarker("3E11FA47-71CA-11E1-9E33-C80AA9429562:23"),
            PositionSync(BinlogPosition("mysql-bin.000001", 300), force=True),
        ],
    )
    def test_notifications_frozen(self, event):
        with pytest.raises(AttributeError):
            event.extra = 1  # type: ignore


# =============================================================================
# message_from_mutation
# =============================================================================


class TestMessageFromMutation:
    def test_insert_value(self, fixed_now):
        message = message_from_mutation(
            RowMutation("insert", "sales", "orders", [[1, "alice"]]), now=fixed_now
        )

        assert message.key == DEFAULT_MESSAGE_KEY
        assert message.value == b'insert [[1,"alice"]]'
        assert message.timestamp == fixed_now

    def test_update_value_keeps_before_after_pairs(self, fixed_now):
        message = message_from_mutation(
            RowMutation(
                "update",
                "sales",
                "orders",
                [{"id": 1, "status": "new"}, {"id": 1, "status": "paid"}],
            ),
            now=fixed_now,
        )

        assert message.value == (
            b'update [{"id":1,"status":"new"},{"id":1,"status":"paid"}]'
        )

    def test_empty_rows(self, fixed_now):
        message = message_from_mutation(
            RowMutation("delete", "sales", "orders", []), now=fixed_now
        )
        assert message.value == b"delete []"

    def test_static_key(self, fixed_now, make_mutation):
        message = message_from_mutation(make_mutation(), key=b"orders", now=fixed_now)
        assert message.key == b"orders"

    def test_table_key(self, fixed_now, make_mutation):
        message = message_from_mutation(
            make_mutation(schema="crm", table="contacts"),
            key_strategy="table",
            now=fixed_now,
        )
        assert message.key == b"crm.contacts"

    def test_unknown_key_strategy(self, make_mutation):
        with pytest.raises(ValueError):
            message_from_mutation(make_mutation(), key_strategy="hash")

    def test_non_ascii_text_is_escaped(self, fixed_now):
        message = message_from_mutation(
            RowMutation("insert", "sales", "orders", [["Zoë"]]), now=fixed_now
        )
        assert message.value.decode("utf-8") == 'insert [["Zo\\u00eb"]]'

    def test_default_timestamp_is_utc(self, make_mutation):
        message = message_from_mutation(make_mutation())
        assert message.timestamp.tzinfo is not None

    def test_timestamp_ms(self, fixed_now):
        message = PendingMessage(key=b"k", value=b"v", timestamp=fixed_now)
        assert message.timestamp_ms == int(fixed_now.timestamp() * 1000)


# =============================================================================
# Column value serialization
# =============================================================================


class TestSerialize:
    def test_uuid(self):
        u = UUID("12345678-1234-5678-1234-567812345678")
        assert _serialize(u) == "12345678-1234-5678-1234-567812345678"

    def test_datetime(self):
        assert _serialize(datetime(2025, 1, 15, 10, 30)) == "2025-01-15T10:30:00"

    def test_date(self):
        assert _serialize(date(2025, 1, 15)) == "2025-01-15"

    def test_decimal_keeps_precision(self):
        assert _serialize(Decimal("1500.10")) == "1500.10"

    def test_bytes(self):
        assert _serialize(b"blob") == "blob"

    def test_invalid_utf8_bytes_replaced(self):
        assert _serialize(b"\xff") == "\ufffd"

    def test_set_sorted(self):
        assert _serialize({"b", "a"}) == ["a", "b"]

    def test_mixed_row(self, fixed_now):
        message = message_from_mutation(
            RowMutation(
                "insert",
                "sales",
                "orders",
                [{"total": Decimal("9.99"), "placed": datetime(2025, 1, 15, tzinfo=timezone.utc)}],
            ),
            now=fixed_now,
        )
        assert message.value == (
            b'insert [{"total":"9.99","placed":"2025-01-15T00:00:00+00:00"}]'
        )
