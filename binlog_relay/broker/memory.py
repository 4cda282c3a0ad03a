"""
In-memory broker client for unit testing.
"""

import threading

from binlog_relay.errors import BrokerSendError
from binlog_relay.messages import PendingMessage


class InMemoryBrokerClient:
    """
    Captures every delivered batch in memory for testing and inspection.

    Can be told to fail upcoming sends, and can be held on a gate so a
    test can observe the relay while a send is in flight.
    """

    def __init__(self) -> None:
        self._batches: list[list[PendingMessage]] = []
        self._lock = threading.Lock()
        self._fail_next = 0
        self._send_calls = 0
        self._failed_sends = 0
        self._gate: threading.Event | None = None
        self.in_flight = threading.Event()

    def send(self, batch: list[PendingMessage], timeout: float) -> None:
        with self._lock:
            self._send_calls += 1
            gate = self._gate
        if gate is not None:
            self.in_flight.set()
            gate.wait(timeout)
            self.in_flight.clear()

        with self._lock:
            if self._fail_next > 0:
                self._fail_next -= 1
                self._failed_sends += 1
                raise BrokerSendError("simulated broker failure", batch_size=len(batch))
            self._batches.append(list(batch))

    def close(self) -> None:
        self.release()

    @property
    def stats(self) -> dict[str, int]:
        with self._lock:
            return {
                "send_calls": self._send_calls,
                "failed_sends": self._failed_sends,
                "batch_count": len(self._batches),
                "total_messages": sum(len(b) for b in self._batches),
            }

    # ---- Test helpers ----

    @property
    def batches(self) -> list[list[PendingMessage]]:
        """All successfully delivered batches, in delivery order."""
        with self._lock:
            return [list(b) for b in self._batches]

    @property
    def messages(self) -> list[PendingMessage]:
        """All delivered messages, flattened in delivery order."""
        with self._lock:
            return [m for b in self._batches for m in b]

    def fail_next(self, count: int = 1) -> None:
        """Make the next count sends raise BrokerSendError."""
        with self._lock:
            self._fail_next = count

    def hold(self) -> None:
        """Block subsequent sends until release() is called."""
        with self._lock:
            self._gate = threading.Event()

    def release(self) -> None:
        """Unblock any held send."""
        with self._lock:
            gate, self._gate = self._gate, None
        if gate is not None:
            gate.set()

    def clear(self) -> None:
        """Forget all captured batches."""
        with self._lock:
            self._batches.clear()
            self._send_calls = 0
            self._failed_sends = 0
