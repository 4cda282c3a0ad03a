"""
Kafka broker client: delivers message batches with kafka-python.
"""

import time

import structlog
from kafka import KafkaProducer
from kafka.errors import KafkaError, KafkaTimeoutError

from binlog_relay.errors import BrokerSendError
from binlog_relay.messages import PendingMessage

logger = structlog.get_logger()


class KafkaBrokerClient:
    """
    Publishes batches to a single Kafka topic.

    Messages are partitioned by key hash (the producer's default
    partitioner), so messages sharing a key keep their relative order.
    TLS is enabled when a client certificate and key are configured.
    """

    def __init__(
        self,
        bootstrap_servers: list[str],
        topic: str,
        ssl_cafile: str | None = None,
        ssl_certfile: str | None = None,
        ssl_keyfile: str | None = None,
        acks: str | int = "all",
        compression_type: str | None = None,
        client_id: str = "binlog-relay",
        max_block_ms: int = 10000,
    ) -> None:
        self._topic = topic
        self._sent_count = 0
        self._batch_count = 0
        self._error_count = 0

        producer_config: dict[str, object] = {
            "bootstrap_servers": bootstrap_servers,
            "client_id": client_id,
            "acks": acks,
            "compression_type": compression_type,
            # Caps the metadata and buffer wait inside producer.send()
            "max_block_ms": max_block_ms,
        }
        if ssl_certfile and ssl_keyfile:
            producer_config.update(
                security_protocol="SSL",
                ssl_check_hostname=True,
                ssl_certfile=ssl_certfile,
                ssl_keyfile=ssl_keyfile,
            )
            if ssl_cafile:
                producer_config["ssl_cafile"] = ssl_cafile

        self._producer = KafkaProducer(**producer_config)

        logger.info(
            "kafka_client_initialized",
            bootstrap_servers=bootstrap_servers,
            topic=topic,
            tls=producer_config.get("security_protocol") == "SSL",
        )

    def send(self, batch: list[PendingMessage], timeout: float) -> None:
        """
        Send every message, then wait for all acknowledgements.

        The whole batch shares one deadline. No message is handed to the
        producer once it has passed, and the flush and result checks only
        get the time left. A single producer.send() can still block for up
        to max_block_ms, so the factory sets that to the send timeout.
        """
        if not batch:
            return

        deadline = time.monotonic() + timeout
        try:
            futures = []
            for message in batch:
                if _remaining(deadline) <= 0:
                    raise KafkaTimeoutError(
                        f"send deadline of {timeout}s passed after "
                        f"{len(futures)} of {len(batch)} messages"
                    )
                futures.append(
                    self._producer.send(
                        self._topic,
                        key=message.key,
                        value=message.value,
                        timestamp_ms=message.timestamp_ms,
                    )
                )
            self._producer.flush(timeout=_remaining(deadline))
            for future in futures:
                future.get(timeout=_remaining(deadline))
        except KafkaError as e:
            self._error_count += 1
            logger.warning(
                "kafka_send_error",
                topic=self._topic,
                batch_size=len(batch),
                error=str(e),
                error_type=type(e).__name__,
            )
            raise BrokerSendError(str(e), batch_size=len(batch)) from e

        self._sent_count += len(batch)
        self._batch_count += 1

    def close(self) -> None:
        try:
            self._producer.close(timeout=10)
        except KafkaError as e:
            logger.warning("kafka_close_error", error=str(e))

    @property
    def stats(self) -> dict[str, int]:
        return {
            "kafka_messages_sent": self._sent_count,
            "kafka_batches_sent": self._batch_count,
            "kafka_errors": self._error_count,
        }


def _remaining(deadline: float) -> float:
    return max(0.0, deadline - time.monotonic())
