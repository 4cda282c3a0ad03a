"""
Change events delivered by the capture engine to an event handler.

Each event is an immutable record of one binlog notification. The handler
owns the event only for the duration of the callback.
"""

from dataclasses import dataclass, field
from typing import Any

INSERT = "insert"
UPDATE = "update"
DELETE = "delete"

ROW_ACTIONS = frozenset({INSERT, UPDATE, DELETE})


@dataclass(frozen=True)
class BinlogPosition:
    """A position in the binlog: file name plus byte offset."""

    name: str
    pos: int

    def __str__(self) -> str:
        return f"{self.name}:{self.pos}"


@dataclass(frozen=True)
class RotateNotice:
    """The server switched to a new binlog file."""

    next_log: str
    position: int


@dataclass(frozen=True)
class SchemaChange:
    """The structure of a table changed."""

    schema: str
    table: str


@dataclass(frozen=True)
class DDLStatement:
    """A structural statement was executed at a position."""

    position: BinlogPosition
    statement: str
    schema: str = ""


@dataclass(frozen=True)
class RowMutation:
    """
    One row-level change (insert, update or delete) to a table.

    For updates, rows alternate before-image and after-image, so a single
    updated row contributes two entries.
    """

    action: str
    schema: str
    table: str
    rows: list[Any] = field(default_factory=list)

    def __post_init__(self) -> None:
        if self.action not in ROW_ACTIONS:
            raise ValueError(f"Unknown row action: {self.action!r}")


@dataclass(frozen=True)
class TransactionCommit:
    """A transaction committed (XID event)."""

    position: BinlogPosition
    xid: int | None = None


@dataclass(frozen=True)
class GlobalTransactionMarker:
    """A global transaction identifier was assigned."""

    gtid: str


@dataclass(frozen=True)
class PositionSync:
    """The capture engine asks for a position to be acknowledged."""

    position: BinlogPosition
    force: bool = False


ChangeEvent = (
    RotateNotice
    | SchemaChange
    | DDLStatement
    | RowMutation
    | TransactionCommit
    | GlobalTransactionMarker
    | PositionSync
)
