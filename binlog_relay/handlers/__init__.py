"""
Event handlers invoked by the capture dispatcher.

Two variants share the EventHandler protocol: LoggingEventHandler records
events for observability, BatchingRelay buffers row mutations and flushes
them to a broker.
"""

from binlog_relay.handlers.base import EventHandler
from binlog_relay.handlers.log import LoggingEventHandler
from binlog_relay.handlers.relay import BatchingRelay, FailurePolicy, FlushResult

__all__ = [
    "EventHandler",
    "LoggingEventHandler",
    "BatchingRelay",
    "FailurePolicy",
    "FlushResult",
]
