"""
Configuration module for the binlog relay.

This module provides:
- Pydantic configuration models
- YAML/JSON configuration loading with environment overrides
- Configuration validation
"""

from binlog_relay.config.models import (
    RelayConfig,
    MySQLConfig,
    BrokerConfig,
    RelaySettings,
)
from binlog_relay.config.loader import load_config
from binlog_relay.config.validation import validate_config

__all__ = [
    "RelayConfig",
    "MySQLConfig",
    "BrokerConfig",
    "RelaySettings",
    "load_config",
    "validate_config",
]
