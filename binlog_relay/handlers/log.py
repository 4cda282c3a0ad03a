"""
Logging handler: records every binlog event through structlog.
"""

import structlog

from binlog_relay.events import BinlogPosition, RotateNotice, RowMutation

logger = structlog.get_logger()


class LoggingEventHandler:
    """Logs each callback and never fails."""

    def __init__(self, level: str = "debug") -> None:
        self._level = level.lower()
        self._counts: dict[str, int] = {}

    def _log(self, callback: str, event_name: str, **kwargs: object) -> None:
        self._counts[callback] = self._counts.get(callback, 0) + 1
        log_fn = getattr(logger, self._level, logger.debug)
        log_fn(event_name, **kwargs)

    def on_stream_rotated(self, event: RotateNotice) -> None:
        self._log(
            "rotate",
            "binlog_rotated",
            next_log=event.next_log,
            position=event.position,
        )

    def on_schema_changed(self, schema: str, table: str) -> None:
        self._log("schema_change", "schema_changed", schema=schema, table=table)

    def on_ddl(self, position: BinlogPosition, statement: str) -> None:
        self._log("ddl", "ddl_statement", pos=str(position), statement=statement)

    def on_row_mutation(self, event: RowMutation) -> None:
        self._log(
            "row",
            "row_event",
            action=event.action,
            schema=event.schema,
            table=event.table,
            row_count=len(event.rows),
        )

    def on_transaction_commit(self, position: BinlogPosition) -> None:
        self._log("xid", "xid_event", position=str(position))

    def on_gtid(self, gtid: str) -> None:
        self._log("gtid", "gtid_event", gtid=gtid)

    def on_position_synced(self, position: BinlogPosition, force: bool) -> None:
        self._log("pos_synced", "position_synced", pos=str(position), force=force)

    def identity(self) -> str:
        return "loggingEventHandler"

    def __str__(self) -> str:
        return self.identity()

    @property
    def stats(self) -> dict[str, int]:
        """Number of callbacks received, by kind."""
        return dict(self._counts)
