"""
Configuration loader for the binlog relay.

Reads a YAML or JSON file (JSON is valid YAML), expands ${VAR} references
from the environment, then applies the broker environment overrides.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog
import yaml
from pydantic import ValidationError

from binlog_relay.config.models import RelayConfig
from binlog_relay.errors import ConfigurationError

logger = structlog.get_logger()

DEFAULT_CONFIG_PATHS = (
    Path("config/relay.yaml"),
    Path("config/secrets.json"),
    Path("relay.yaml"),
)

# ${NAME} or ${NAME:-fallback}
_ENV_REFERENCE = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")


def _expand_env(value: Any, environ: Mapping[str, str]) -> Any:
    """Expand ${NAME} and ${NAME:-fallback} in every string of a parsed document."""
    if isinstance(value, str):
        return _ENV_REFERENCE.sub(
            lambda m: environ.get(m.group(1), m.group(2) or ""), value
        )
    if isinstance(value, dict):
        return {key: _expand_env(item, environ) for key, item in value.items()}
    if isinstance(value, list):
        return [_expand_env(item, environ) for item in value]
    return value


def load_yaml(path: Path) -> dict[str, Any]:
    """
    Parse a relay configuration file and expand environment references.

    Args:
        path: YAML or JSON file

    Returns:
        Parsed mapping ({} for an empty file)

    Raises:
        FileNotFoundError: If path does not exist
        ConfigurationError: If the file is not valid YAML or not a mapping
    """
    if not path.exists():
        raise FileNotFoundError(f"Relay configuration not found: {path}")

    try:
        document = yaml.safe_load(path.read_text())
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid configuration file {path}: {e}") from e

    if document is None:
        return {}
    if not isinstance(document, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    return _expand_env(document, os.environ)


def apply_environment_overrides(
    config_dict: dict[str, Any],
    environ: dict[str, str] | None = None,
) -> dict[str, Any]:
    """
    Apply broker settings from the environment on top of file values.

    KAFKA: comma-separated broker list
    KAFKA_TOPIC: topic name
    KAFKA_CLIENT_CERT / KAFKA_CLIENT_KEY: TLS files, only applied as a pair
    KAFKA_CA_FILE: TLS CA bundle

    Returns:
        A new dictionary; the input is not modified
    """
    env = os.environ if environ is None else environ
    result = dict(config_dict)
    broker = dict(result.get("broker") or {})
    applied: list[str] = []

    if brokers := env.get("KAFKA"):
        broker["bootstrap_servers"] = [b.strip() for b in brokers.split(",") if b.strip()]
        applied.append("KAFKA")
    if topic := env.get("KAFKA_TOPIC"):
        broker["topic"] = topic
        applied.append("KAFKA_TOPIC")
    if env.get("KAFKA_CLIENT_CERT") and env.get("KAFKA_CLIENT_KEY"):
        broker["client_cert"] = env["KAFKA_CLIENT_CERT"]
        broker["client_key"] = env["KAFKA_CLIENT_KEY"]
        applied.extend(["KAFKA_CLIENT_CERT", "KAFKA_CLIENT_KEY"])
    if ca_file := env.get("KAFKA_CA_FILE"):
        broker["ca_file"] = ca_file
        applied.append("KAFKA_CA_FILE")

    if applied:
        result["broker"] = broker
        logger.info("environment_overrides", variables=applied)

    return result


def find_config_file() -> Path:
    """Return the first default configuration path that exists."""
    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            return path
    searched = ", ".join(str(p) for p in DEFAULT_CONFIG_PATHS)
    raise FileNotFoundError(f"No configuration file found. Searched: {searched}")


def load_config(
    config_path: str | Path | None = None,
    override_values: dict[str, Any] | None = None,
) -> RelayConfig:
    """
    Build a validated RelayConfig.

    Precedence, lowest first: file values, override_values, then the
    KAFKA* environment variables.

    Raises:
        FileNotFoundError: If no configuration file can be found
        ConfigurationError: If the file or the resulting values are invalid
    """
    path = Path(config_path) if config_path is not None else find_config_file()
    values = load_yaml(path)
    if override_values:
        values = _deep_merge(values, override_values)
    values = apply_environment_overrides(values)

    try:
        return RelayConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration in {path}:\n{e}") from e


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return base updated with override; nested mappings merge key by key."""
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            value = _deep_merge(current, value)
        merged[key] = value
    return merged
