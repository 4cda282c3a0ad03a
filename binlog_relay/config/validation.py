"""
Configuration validation for the binlog relay.

Provides cross-field checks beyond Pydantic model validation.
"""

from pathlib import Path

import structlog

from binlog_relay.config.models import RelayConfig
from binlog_relay.errors import ConfigurationError

logger = structlog.get_logger()


def validate_config(config: RelayConfig, require_source: bool = True) -> list[str]:
    """
    Validate relay configuration.

    Args:
        config: RelayConfig to validate
        require_source: Whether the MySQL source must be fully configured
            (False for commands that never open the binlog stream)

    Returns:
        List of warning messages (non-fatal issues)

    Raises:
        ConfigurationError: If configuration has fatal issues
    """
    warnings: list[str] = []
    errors: list[str] = []
    broker = config.broker

    if config.handler == "kafka" and broker.backend == "kafka":
        if not broker.bootstrap_servers:
            errors.append("broker.bootstrap_servers is empty (set it or the KAFKA variable)")
        if not broker.topic:
            errors.append("broker.topic is empty (set it or the KAFKA_TOPIC variable)")

    if bool(broker.client_cert) != bool(broker.client_key):
        errors.append("broker.client_cert and broker.client_key must be set together")
    for name in ("client_cert", "client_key", "ca_file"):
        value = getattr(broker, name)
        if value and not Path(value).exists():
            errors.append(f"broker.{name} does not exist: {value}")

    if require_source:
        if not config.mysql.host:
            errors.append("mysql.host is empty")
        if not config.mysql.user:
            errors.append("mysql.user is empty")

    if config.handler == "log" and broker.backend == "kafka" and broker.bootstrap_servers:
        warnings.append("handler is 'log'; broker settings are ignored")

    if config.relay.flush_period_seconds > 60:
        warnings.append(
            f"flush_period_seconds is {config.relay.flush_period_seconds}; "
            "messages may wait over a minute before delivery"
        )
    if config.relay.send_timeout_seconds < config.relay.flush_period_seconds / 10:
        warnings.append(
            "send_timeout_seconds is much shorter than the flush period; "
            "large batches may time out"
        )

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigurationError(error_msg)

    for warning in warnings:
        logger.warning("config_warning", message=warning)

    return warnings
