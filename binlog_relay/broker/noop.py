"""
No-op broker client: discards all batches silently.
"""

from binlog_relay.messages import PendingMessage


class NoopBrokerClient:
    """Broker client that discards all batches. Used for dry runs."""

    def send(self, batch: list[PendingMessage], timeout: float) -> None:
        pass

    def close(self) -> None:
        pass

    @property
    def stats(self) -> dict[str, int]:
        return {}
