"""
BatchingRelay: buffers row mutations and flushes them to a broker on a timer.

The capture callback only appends to an in-memory buffer under a short-held
lock. A background thread periodically swaps the buffer out and hands the
batch to the broker client, so a slow broker never blocks the producer.
"""

import threading
from dataclasses import dataclass, field
from enum import Enum

import structlog

from binlog_relay.broker.base import BrokerClient
from binlog_relay.errors import ConfigurationError, RelayClosedError
from binlog_relay.events import BinlogPosition, RotateNotice, RowMutation
from binlog_relay.messages import (
    DEFAULT_MESSAGE_KEY,
    KEY_STRATEGIES,
    PendingMessage,
    message_from_mutation,
)

logger = structlog.get_logger()


class FailurePolicy(str, Enum):
    """What happens to a batch whose send failed."""

    DROP = "drop"
    REQUEUE = "requeue"


@dataclass
class FlushResult:
    """Outcome of one flush: the batch handed to the broker and any error."""

    sent: list[PendingMessage] = field(default_factory=list)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class BatchingRelay:
    """
    Event handler that relays row mutations to a broker in timed batches.

    Only row mutations produce messages; the other callbacks are accepted
    and logged. Batches are time-aligned, not transaction-aligned:
    on_transaction_commit is the hook for a variant that flushes per commit.
    """

    def __init__(
        self,
        client: BrokerClient,
        flush_period: float = 1.0,
        send_timeout: float = 10.0,
        key: bytes = DEFAULT_MESSAGE_KEY,
        key_strategy: str = "static",
        failure_policy: FailurePolicy | str = FailurePolicy.DROP,
        drain_on_close: bool = True,
    ) -> None:
        if client is None:
            raise ConfigurationError("BatchingRelay requires a broker client")
        if flush_period <= 0:
            raise ConfigurationError(f"flush_period must be positive, got {flush_period}")
        if send_timeout <= 0:
            raise ConfigurationError(f"send_timeout must be positive, got {send_timeout}")
        if key_strategy not in KEY_STRATEGIES:
            raise ConfigurationError(f"Unknown key strategy: {key_strategy!r}")
        try:
            self._failure_policy = FailurePolicy(failure_policy)
        except ValueError as e:
            raise ConfigurationError(f"Unknown failure policy: {failure_policy!r}") from e

        self._client = client
        self._flush_period = flush_period
        self._send_timeout = send_timeout
        self._key = key
        self._key_strategy = key_strategy
        self._drain_on_close = drain_on_close

        # Guards _buffer; held only for an append or a swap
        self._lock = threading.Lock()
        self._buffer: list[PendingMessage] = []
        # Serializes sends so two flushes never overlap
        self._flush_lock = threading.Lock()
        # Serializes start/stop of the auto-flush thread; never taken by producers
        self._lifecycle_lock = threading.Lock()

        self._thread: threading.Thread | None = None
        self._stop_event: threading.Event | None = None
        self._closing = False
        self._closed = False

        self._stats = {
            "messages_buffered": 0,
            "messages_sent": 0,
            "messages_dropped": 0,
            "messages_requeued": 0,
            "flushes": 0,
            "flush_errors": 0,
        }

    # ---- EventHandler ----

    def on_row_mutation(self, event: RowMutation) -> None:
        message = message_from_mutation(
            event, key=self._key, key_strategy=self._key_strategy
        )
        with self._lock:
            if self._closed:
                raise RelayClosedError(
                    f"{self.identity()} is closed; row event for "
                    f"{event.schema}.{event.table} rejected"
                )
            self._buffer.append(message)
            self._stats["messages_buffered"] += 1

    def on_stream_rotated(self, event: RotateNotice) -> None:
        logger.debug("binlog_rotated", next_log=event.next_log, position=event.position)

    def on_schema_changed(self, schema: str, table: str) -> None:
        pass

    def on_ddl(self, position: BinlogPosition, statement: str) -> None:
        pass

    def on_transaction_commit(self, position: BinlogPosition) -> None:
        pass

    def on_gtid(self, gtid: str) -> None:
        pass

    def on_position_synced(self, position: BinlogPosition, force: bool) -> None:
        pass

    def identity(self) -> str:
        return "batchingRelay"

    def __str__(self) -> str:
        return self.identity()

    # ---- Flushing ----

    def flush(self, timeout: float | None = None) -> FlushResult:
        """
        Send everything buffered so far as one batch.

        The buffer is swapped for an empty one under the lock, and the lock
        is released before the network call, so appends during a slow send
        go into the next batch. Under the drop policy the buffer is empty
        when this returns, whether or not the send succeeded.

        Args:
            timeout: Send deadline in seconds (defaults to send_timeout)

        Returns:
            FlushResult with the batch handed to the broker and any error

        Raises:
            ConfigurationError: If timeout is not positive
        """
        timeout = timeout if timeout is not None else self._send_timeout
        if timeout <= 0:
            raise ConfigurationError(f"flush timeout must be positive, got {timeout}")

        with self._flush_lock:
            with self._lock:
                batch, self._buffer = self._buffer, []

            if not batch:
                return FlushResult()

            try:
                self._client.send(batch, timeout)
            except Exception as e:
                self._handle_failed_batch(batch, e)
                return FlushResult(sent=batch, error=e)

            with self._lock:
                self._stats["flushes"] += 1
                self._stats["messages_sent"] += len(batch)
            logger.debug("relay_flushed", batch_size=len(batch))
            return FlushResult(sent=batch)

    def _handle_failed_batch(self, batch: list[PendingMessage], error: Exception) -> None:
        with self._lock:
            self._stats["flushes"] += 1
            self._stats["flush_errors"] += 1
            if self._failure_policy is FailurePolicy.REQUEUE and not self._closed:
                # Failed batch predates anything appended during the send
                self._buffer[:0] = batch
                self._stats["messages_requeued"] += len(batch)
                requeued = True
            else:
                self._stats["messages_dropped"] += len(batch)
                requeued = False

        logger.warning(
            "relay_flush_failed",
            batch_size=len(batch),
            requeued=requeued,
            error=str(error),
            error_type=type(error).__name__,
        )

    # ---- Auto-flush lifecycle ----

    def start_auto_flush(
        self,
        period: float | None = None,
        stop_event: threading.Event | None = None,
    ) -> threading.Thread:
        """
        Start the background thread that flushes every period seconds.

        Args:
            period: Flush interval (defaults to the relay's flush_period)
            stop_event: External cancellation signal; a private one is
                created when omitted. stop_auto_flush() sets it either way.

        Returns:
            The started daemon thread

        Raises:
            ConfigurationError: If period is not positive
            RuntimeError: If an auto-flush loop is already running
            RelayClosedError: If the relay is closing or closed
        """
        period = period if period is not None else self._flush_period
        if period <= 0:
            raise ConfigurationError(f"flush period must be positive, got {period}")

        with self._lifecycle_lock:
            if self._thread is not None and self._thread.is_alive():
                raise RuntimeError(f"{self.identity()} auto-flush is already running")
            if self._closing:
                raise RelayClosedError(f"{self.identity()} is closed")

            self._stop_event = stop_event if stop_event is not None else threading.Event()
            self._thread = threading.Thread(
                target=self._auto_flush_loop,
                args=(period, self._stop_event),
                name="relay-auto-flush",
                daemon=True,
            )
            self._thread.start()
            thread = self._thread

        logger.info("relay_auto_flush_started", period=period)
        return thread

    def stop_auto_flush(self, timeout: float | None = None) -> None:
        """Signal the auto-flush loop to stop and wait for it to exit."""
        with self._lifecycle_lock:
            self._stop_locked(timeout)

    def _stop_locked(self, timeout: float | None) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
        thread = self._thread
        if thread is None:
            return

        if timeout is None:
            # One tick plus one in-flight send is the longest the loop can take
            timeout = self._flush_period + self._send_timeout
        thread.join(timeout=timeout)
        if thread.is_alive():
            logger.warning("relay_auto_flush_join_timeout", pending=self.pending)
        else:
            self._thread = None

    def _auto_flush_loop(self, period: float, stop_event: threading.Event) -> None:
        while not stop_event.wait(period):
            self.flush()
        logger.info("relay_auto_flush_stopped")

    def close(self) -> None:
        """Stop auto-flush, optionally drain the buffer once, and reject further events."""
        with self._lifecycle_lock:
            self._closing = True
            self._stop_locked(None)
        if self._drain_on_close:
            result = self.flush()
            if result.sent:
                logger.info(
                    "relay_drained_on_close",
                    batch_size=len(result.sent),
                    ok=result.ok,
                )
        with self._lock:
            self._closed = True
            dropped = len(self._buffer)
            self._stats["messages_dropped"] += dropped
            self._buffer = []
        if dropped:
            logger.info("relay_closed_with_pending", dropped=dropped)

    # ---- Introspection ----

    @property
    def pending(self) -> int:
        """Number of messages waiting for the next flush."""
        with self._lock:
            return len(self._buffer)

    @property
    def is_auto_flushing(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            combined = dict(self._stats)
            combined["pending"] = len(self._buffer)
        combined.update(self._client.stats)
        return combined
