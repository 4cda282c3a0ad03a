"""
Structured logging setup for the relay process.

All relay modules log through structlog; kafka-python and
pymysqlreplication log through the standard library and are routed to
the same stream.
"""

import logging
import sys
from typing import Any

import structlog

# kafka-python logs every connection and metadata refresh at INFO
NOISY_LIBRARY_LOGGERS = ("kafka", "pymysqlreplication")


def configure_logging(
    level: str = "INFO",
    json_output: bool = False,
    include_timestamp: bool = True,
    library_level: str = "WARNING",
) -> None:
    """
    Configure structured logging for the relay.

    Args:
        level: Log level for relay events (DEBUG, INFO, WARNING, ERROR)
        json_output: Render one JSON object per line instead of console output
        include_timestamp: Add an ISO timestamp to every event
        library_level: Minimum level for the Kafka and binlog client libraries
    """
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
    )
    library_threshold = max(
        getattr(logging, level.upper()), getattr(logging, library_level.upper())
    )
    for name in NOISY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(library_threshold)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if include_timestamp:
        processors.insert(0, structlog.processors.TimeStamper(fmt="iso", utc=True))

    if json_output:
        processors.append(structlog.processors.JSONRenderer(default=str))
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty()))

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
