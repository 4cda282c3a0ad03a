"""
Capture dispatcher: reads the MySQL binlog and drives an EventHandler.

Binlog decoding is done by mysql-replication (pymysqlreplication); this
module only translates its events into handler callbacks and keeps the
position bookkeeping.
"""

import re
import threading
from typing import Any, Callable, Iterable

import structlog
from pymysqlreplication import BinLogStreamReader
from pymysqlreplication.event import (
    GtidEvent,
    HeartbeatLogEvent,
    QueryEvent,
    RotateEvent,
    XidEvent,
)
from pymysqlreplication.row_event import (
    DeleteRowsEvent,
    UpdateRowsEvent,
    WriteRowsEvent,
)

from binlog_relay.config.models import MySQLConfig
from binlog_relay.events import (
    DELETE,
    INSERT,
    UPDATE,
    BinlogPosition,
    RotateNotice,
    RowMutation,
)
from binlog_relay.handlers.base import EventHandler

logger = structlog.get_logger()

HANDLED_EVENTS = [
    RotateEvent,
    QueryEvent,
    XidEvent,
    GtidEvent,
    WriteRowsEvent,
    UpdateRowsEvent,
    DeleteRowsEvent,
    HeartbeatLogEvent,
]

_TABLE_DDL = re.compile(
    r"^\s*(?:CREATE|ALTER|DROP|RENAME|TRUNCATE)\s+(?:TEMPORARY\s+)?TABLE\s+"
    r"(?:IF\s+(?:NOT\s+)?EXISTS\s+)?"
    r"`?(?:(\w+)`?\.`?)?(\w+)`?",
    re.IGNORECASE,
)

_TRANSACTION_CONTROL = frozenset({"BEGIN", "COMMIT", "ROLLBACK"})


def open_binlog_stream(config: MySQLConfig) -> BinLogStreamReader:
    """
    Open a blocking binlog stream for the configured source.

    The replication heartbeat is requested and passed through so an idle
    stream still yields control periodically.
    """
    stream_kwargs: dict[str, Any] = {
        "connection_settings": config.connection_settings(),
        "server_id": config.server_id,
        "blocking": True,
        "resume_stream": True,
        "only_events": HANDLED_EVENTS,
        "slave_heartbeat": config.heartbeat_seconds,
    }
    if config.only_schemas:
        stream_kwargs["only_schemas"] = config.only_schemas
    if config.only_tables:
        stream_kwargs["only_tables"] = config.only_tables

    logger.info(
        "binlog_stream_opening",
        host=config.host,
        port=config.port,
        label=config.label,
        server_id=config.server_id,
        only_schemas=config.only_schemas or None,
        only_tables=config.only_tables or None,
    )
    return BinLogStreamReader(**stream_kwargs)


def table_from_ddl(statement: str, default_schema: str = "") -> tuple[str, str] | None:
    """Return (schema, table) if statement changes a table's structure."""
    match = _TABLE_DDL.match(statement)
    if match is None:
        return None
    schema, table = match.groups()
    return schema or default_schema, table


class BinlogDispatcher:
    """
    Translates binlog events into EventHandler callbacks.

    Position syncs follow the replication semantics: rotations and DDL
    request a forced sync, commits a lazy one. Exceptions raised by the
    handler propagate unchanged and stop the dispatcher.
    """

    def __init__(
        self,
        handler: EventHandler,
        stream_factory: Callable[[], Iterable[Any]],
    ) -> None:
        self._handler = handler
        self._stream_factory = stream_factory
        self._stream: Any = None
        self._counts: dict[str, int] = {}

    def run(self, stop_event: threading.Event | None = None) -> None:
        """
        Consume the stream until it ends, stop_event is set, or the handler raises.

        The stream is always closed on exit.
        """
        self._stream = self._stream_factory()
        logger.info("dispatcher_started", handler=self._handler.identity())
        try:
            for binlog_event in self._stream:
                if stop_event is not None and stop_event.is_set():
                    break
                self.dispatch(binlog_event)
        finally:
            self._stream.close()
            logger.info("dispatcher_stopped", events=self.stats)

    def dispatch(self, binlog_event: Any) -> None:
        """Route a single binlog event to the handler."""
        handler = self._handler

        if isinstance(binlog_event, (WriteRowsEvent, UpdateRowsEvent, DeleteRowsEvent)):
            self._count("row")
            handler.on_row_mutation(_row_mutation(binlog_event))

        elif isinstance(binlog_event, XidEvent):
            self._count("xid")
            position = self._position()
            handler.on_transaction_commit(position)
            handler.on_position_synced(position, False)

        elif isinstance(binlog_event, GtidEvent):
            self._count("gtid")
            handler.on_gtid(str(binlog_event.gtid))

        elif isinstance(binlog_event, RotateEvent):
            self._count("rotate")
            notice = RotateNotice(
                next_log=binlog_event.next_binlog,
                position=binlog_event.position,
            )
            handler.on_stream_rotated(notice)
            handler.on_position_synced(
                BinlogPosition(notice.next_log, notice.position), True
            )

        elif isinstance(binlog_event, QueryEvent):
            self._dispatch_query(binlog_event)

        elif isinstance(binlog_event, HeartbeatLogEvent):
            self._count("heartbeat")

        else:
            self._count("ignored")

    def _dispatch_query(self, binlog_event: Any) -> None:
        statement = binlog_event.query.strip()
        if statement.upper() in _TRANSACTION_CONTROL:
            return

        self._count("ddl")
        schema = _decode(binlog_event.schema)
        position = self._position()
        self._handler.on_ddl(position, statement)

        changed = table_from_ddl(statement, schema)
        if changed is not None:
            self._handler.on_schema_changed(*changed)
        self._handler.on_position_synced(position, True)

    def _position(self) -> BinlogPosition:
        return BinlogPosition(
            name=getattr(self._stream, "log_file", None) or "",
            pos=getattr(self._stream, "log_pos", None) or 0,
        )

    def _count(self, kind: str) -> None:
        self._counts[kind] = self._counts.get(kind, 0) + 1

    @property
    def stats(self) -> dict[str, int]:
        """Binlog events seen, by kind."""
        return dict(self._counts)


def _row_mutation(binlog_event: Any) -> RowMutation:
    """Flatten a rows event into a RowMutation (updates as before/after pairs)."""
    if isinstance(binlog_event, UpdateRowsEvent):
        action = UPDATE
        rows = []
        for row in binlog_event.rows:
            rows.append(row["before_values"])
            rows.append(row["after_values"])
    else:
        action = INSERT if isinstance(binlog_event, WriteRowsEvent) else DELETE
        rows = [row["values"] for row in binlog_event.rows]

    return RowMutation(
        action=action,
        schema=_decode(binlog_event.schema),
        table=_decode(binlog_event.table),
        rows=rows,
    )


def _decode(value: Any) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value or ""
