"""
Command-line interface for the binlog relay.

Provides commands for relaying the binlog to Kafka, logging it, and
checking configuration.
"""

import signal
import sys
import threading

import click
import structlog

from binlog_relay.config import load_config, validate_config
from binlog_relay.config.models import RelayConfig
from binlog_relay.errors import ConfigurationError
from binlog_relay.utils.logging import configure_logging


logger = structlog.get_logger()


@click.group()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True),
    help="Path to configuration file (YAML or JSON)",
)
@click.option(
    "--verbose", "-v",
    is_flag=True,
    help="Enable debug logging",
)
@click.option(
    "--json-logs",
    is_flag=True,
    help="Output logs as JSON",
)
@click.pass_context
def main(ctx, config, verbose, json_logs):
    """Relay MySQL binlog change events to Kafka."""
    ctx.ensure_object(dict)

    log_level = "DEBUG" if verbose else "INFO"
    configure_logging(level=log_level, json_output=json_logs)

    ctx.obj["config_path"] = config


def _load(
    ctx, handler: str | None = None, require_source: bool = True
) -> tuple[RelayConfig, list[str]]:
    """Load and validate configuration, exiting with status 1 on failure."""
    overrides = {"handler": handler} if handler else None
    try:
        config = load_config(ctx.obj.get("config_path"), override_values=overrides)
        warnings = validate_config(config, require_source=require_source)
    except (FileNotFoundError, ConfigurationError) as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)
    return config, warnings


@main.command()
@click.option(
    "--handler",
    type=click.Choice(["kafka", "log"]),
    default=None,
    help="Event handler (default: from config)",
)
@click.option(
    "--flush-period",
    type=float,
    default=None,
    help="Seconds between automatic flushes (default: from config)",
)
@click.pass_context
def run(ctx, handler, flush_period):
    """Stream the binlog through the configured handler until interrupted.

    Examples:

    \b
    # Relay row events to Kafka
    binlog-relay -c config/relay.yaml run

    \b
    # Only log events
    binlog-relay -c config/relay.yaml run --handler log
    """
    from binlog_relay.broker.factory import create_broker_client
    from binlog_relay.capture import BinlogDispatcher, open_binlog_stream
    from binlog_relay.handlers import BatchingRelay, LoggingEventHandler

    config, _ = _load(ctx, handler=handler)
    if flush_period is not None:
        if flush_period <= 0:
            click.echo("Error: --flush-period must be positive", err=True)
            sys.exit(1)
        config.relay.flush_period_seconds = flush_period

    stop_event = threading.Event()
    _install_signal_handlers(stop_event)

    client = None
    event_handler = None
    dispatcher = None
    exit_code = 0
    try:
        if config.handler == "kafka":
            settings = config.relay
            client = create_broker_client(
                config.broker, send_timeout=settings.send_timeout_seconds
            )
            event_handler = BatchingRelay(
                client,
                flush_period=settings.flush_period_seconds,
                send_timeout=settings.send_timeout_seconds,
                key=settings.message_key.encode("utf-8"),
                key_strategy=settings.key_strategy,
                failure_policy=settings.failure_policy,
                drain_on_close=settings.drain_on_close,
            )
            event_handler.start_auto_flush(stop_event=stop_event)
        else:
            event_handler = LoggingEventHandler(level="info")

        dispatcher = BinlogDispatcher(
            event_handler,
            stream_factory=lambda: open_binlog_stream(config.mysql),
        )
        logger.info("relay_starting", handler=event_handler.identity())
        dispatcher.run(stop_event=stop_event)
    except Exception as e:
        logger.error("relay_failed", error=str(e), error_type=type(e).__name__, exc_info=True)
        exit_code = 1
    finally:
        stop_event.set()
        if isinstance(event_handler, BatchingRelay):
            event_handler.close()
            logger.info("relay_stats", **event_handler.stats)
        if client is not None:
            client.close()
        if dispatcher is not None:
            logger.info("relay_stopped", dispatcher=dispatcher.stats)

    sys.exit(exit_code)


@main.command()
@click.option(
    "--no-source",
    is_flag=True,
    help="Skip checks on the MySQL source settings",
)
@click.pass_context
def validate(ctx, no_source):
    """Validate configuration file."""
    config, warnings = _load(ctx, require_source=not no_source)

    click.echo("Configuration is valid.")
    click.echo(f"  Handler: {config.handler}")
    click.echo(f"  Broker backend: {config.broker.backend}")
    if config.broker.bootstrap_servers:
        click.echo(f"  Brokers: {', '.join(config.broker.bootstrap_servers)}")
    if config.broker.topic:
        click.echo(f"  Topic: {config.broker.topic}")
    click.echo(f"  Source: {config.mysql.host}:{config.mysql.port}")
    click.echo(f"  Flush period: {config.relay.flush_period_seconds}s")
    click.echo(f"  Failure policy: {config.relay.failure_policy}")

    for warning in warnings:
        click.echo(f"  Warning: {warning}")


def _install_signal_handlers(stop_event: threading.Event) -> None:
    """Set stop_event on SIGINT/SIGTERM so the dispatcher and flush loop wind down."""

    def handle(signum, frame):
        logger.info("stop_signal_received", signal=signum)
        stop_event.set()

    signal.signal(signal.SIGINT, handle)
    signal.signal(signal.SIGTERM, handle)


if __name__ == "__main__":
    main()
