"""
Tests for the event handler protocol and the logging handler.
"""

from unittest.mock import patch

from binlog_relay.broker.noop import NoopBrokerClient
from binlog_relay.events import BinlogPosition, RotateNotice
from binlog_relay.handlers import BatchingRelay, EventHandler, LoggingEventHandler


class TestEventHandlerProtocol:
    def test_logging_handler_satisfies_protocol(self):
        assert isinstance(LoggingEventHandler(), EventHandler)

    def test_relay_satisfies_protocol(self):
        assert isinstance(BatchingRelay(NoopBrokerClient()), EventHandler)

    def test_incomplete_handler_does_not(self):
        class RowsOnly:
            def on_row_mutation(self, event):
                pass

        assert not isinstance(RowsOnly(), EventHandler)


class TestLoggingEventHandler:
    def test_identity(self):
        handler = LoggingEventHandler()
        assert handler.identity() == "loggingEventHandler"
        assert str(handler) == "loggingEventHandler"

    def test_every_callback_accepted(self, make_mutation):
        handler = LoggingEventHandler()
        position = BinlogPosition("mysql-bin.000001", 120)

        handler.on_stream_rotated(RotateNotice("mysql-bin.000002", 4))
        handler.on_schema_changed("sales", "orders")
        handler.on_ddl(position, "CREATE TABLE t (id INT)")
        handler.on_row_mutation(make_mutation())
        handler.on_row_mutation(make_mutation(action="delete"))
        handler.on_transaction_commit(position)
        handler.on_gtid("3E11FA47-71CA-11E1-9E33-C80AA9429562:23")
        handler.on_position_synced(position, False)

        assert handler.stats == {
            "rotate": 1,
            "schema_change": 1,
            "ddl": 1,
            "row": 2,
            "xid": 1,
            "gtid": 1,
            "pos_synced": 1,
        }

    @patch("binlog_relay.handlers.log.logger")
    def test_event_name_passed_positionally(self, mock_logger, make_mutation):
        handler = LoggingEventHandler(level="info")

        handler.on_row_mutation(make_mutation(rows=[[1], [2]]))

        mock_logger.info.assert_called_once_with(
            "row_event",
            action="insert",
            schema="sales",
            table="orders",
            row_count=2,
        )

    def test_unknown_level_falls_back(self, make_mutation):
        handler = LoggingEventHandler(level="chatty")
        handler.on_row_mutation(make_mutation())
        assert handler.stats == {"row": 1}

    def test_empty_rows(self, make_mutation):
        handler = LoggingEventHandler(level="info")
        handler.on_row_mutation(make_mutation(rows=[]))
        assert handler.stats["row"] == 1
