"""
Log broker client: emits batch summaries through structlog instead of sending.
"""

import structlog

from binlog_relay.messages import PendingMessage

logger = structlog.get_logger()


class LogBrokerClient:
    """Delivers batches by logging them via structlog."""

    def __init__(self, level: str = "info") -> None:
        self._level = level.lower()
        self._count = 0

    def send(self, batch: list[PendingMessage], timeout: float) -> None:
        if not batch:
            return
        log_fn = getattr(logger, self._level, logger.info)
        log_fn(
            "broker_batch",
            batch_size=len(batch),
            keys=sorted({m.key.decode("utf-8", errors="replace") for m in batch}),
        )
        self._count += len(batch)

    def close(self) -> None:
        pass

    @property
    def stats(self) -> dict[str, int]:
        return {"log_messages": self._count}
