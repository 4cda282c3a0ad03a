"""
BrokerClient protocol: the collaborator that delivers message batches.
"""

from typing import Protocol, runtime_checkable

from binlog_relay.messages import PendingMessage


@runtime_checkable
class BrokerClient(Protocol):
    """
    Protocol for broker client backends.

    The client owns partitioning, transport-level retries and connection
    management. The relay only decides what to send and when.
    """

    def send(self, batch: list[PendingMessage], timeout: float) -> None:
        """
        Deliver a batch within timeout seconds.

        An empty batch is valid and sends nothing. Raises on failure.
        """
        ...

    def close(self) -> None:
        """Close the client and release resources."""
        ...

    @property
    def stats(self) -> dict[str, int]:
        """Return delivery statistics."""
        ...
