"""
EventHandler protocol: every notification the capture engine may deliver.
"""

from typing import Protocol, runtime_checkable

from binlog_relay.events import BinlogPosition, RotateNotice, RowMutation


@runtime_checkable
class EventHandler(Protocol):
    """
    Protocol for binlog event handlers.

    Each callback returns None on success. Raising tells the capture
    dispatcher to stop; recovery (restart from the last synced position)
    is the caller's decision.
    """

    def on_stream_rotated(self, event: RotateNotice) -> None:
        """The binlog file was rotated because the previous one filled up."""
        ...

    def on_schema_changed(self, schema: str, table: str) -> None:
        """A table's structure changed. Must not block for long."""
        ...

    def on_ddl(self, position: BinlogPosition, statement: str) -> None:
        """A DDL statement was executed at position."""
        ...

    def on_row_mutation(self, event: RowMutation) -> None:
        """Rows were inserted, updated or deleted."""
        ...

    def on_transaction_commit(self, position: BinlogPosition) -> None:
        """A transaction committed (XID event)."""
        ...

    def on_gtid(self, gtid: str) -> None:
        """A global transaction identifier was assigned."""
        ...

    def on_position_synced(self, position: BinlogPosition, force: bool) -> None:
        """Acknowledge a position. When force is True, sync immediately."""
        ...

    def identity(self) -> str:
        """Stable name for diagnostics."""
        ...
