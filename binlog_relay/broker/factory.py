"""
Factory for creating broker client instances from configuration.
"""

from binlog_relay.broker.base import BrokerClient
from binlog_relay.config.models import BrokerConfig


def create_broker_client(
    config: BrokerConfig, send_timeout: float | None = None
) -> BrokerClient:
    """
    Create a broker client based on configuration.

    Args:
        config: Broker configuration
        send_timeout: Relay send deadline in seconds; bounds how long the
            Kafka producer may block inside a single send

    Returns:
        A BrokerClient implementation
    """
    backend = config.backend.lower()

    if backend == "kafka":
        from binlog_relay.broker.kafka import KafkaBrokerClient

        acks: str | int = int(config.acks) if config.acks.isdigit() else config.acks
        block_seconds = send_timeout if send_timeout is not None else 10.0
        return KafkaBrokerClient(
            bootstrap_servers=config.bootstrap_servers,
            topic=config.topic,
            ssl_cafile=config.ca_file or None,
            ssl_certfile=config.client_cert or None,
            ssl_keyfile=config.client_key or None,
            acks=acks,
            max_block_ms=int(block_seconds * 1000),
        )

    elif backend == "log":
        from binlog_relay.broker.log import LogBrokerClient

        return LogBrokerClient(level=config.log_level)

    elif backend == "memory":
        from binlog_relay.broker.memory import InMemoryBrokerClient

        return InMemoryBrokerClient()

    else:
        from binlog_relay.broker.noop import NoopBrokerClient

        return NoopBrokerClient()
