"""
Pydantic configuration models for the binlog relay.
"""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings


class MySQLConfig(BaseModel):
    """Source database connection used by the binlog stream reader."""

    host: str = Field(default="localhost", description="MySQL host")
    port: int = Field(default=3306, ge=1, le=65535, description="MySQL port")
    user: str = Field(default="", description="Replication user")
    password: str = Field(default="", description="Replication password")
    server_id: int = Field(
        default=100,
        ge=1,
        description="Replica server id; must be unique among replicas",
    )
    label: str = Field(default="", description="Human-readable label for logs")
    heartbeat_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Replication heartbeat; bounds how long shutdown waits on an idle stream",
    )
    only_schemas: list[str] = Field(
        default_factory=list,
        description="Restrict the stream to these schemas (empty = all)",
    )
    only_tables: list[str] = Field(
        default_factory=list,
        description="Restrict the stream to these tables (empty = all)",
    )

    def connection_settings(self) -> dict[str, Any]:
        """Connection dict in the shape BinLogStreamReader expects."""
        return {
            "host": self.host,
            "port": self.port,
            "user": self.user,
            "passwd": self.password,
        }


class BrokerConfig(BaseModel):
    """Configuration for the broker client."""

    backend: Literal["kafka", "log", "memory", "noop"] = Field(
        default="kafka",
        description="Broker backend: kafka | log | memory | noop",
    )
    bootstrap_servers: list[str] = Field(
        default_factory=list,
        description="Kafka brokers (host:port)",
    )
    topic: str = Field(default="", description="Kafka topic for row events")
    client_cert: str = Field(default="", description="Path to TLS client certificate")
    client_key: str = Field(default="", description="Path to TLS client key")
    ca_file: str = Field(default="", description="Path to TLS CA bundle")
    acks: str = Field(default="all", description="Producer acks: 0 | 1 | all")
    log_level: str = Field(default="info", description="Log level for log backend")

    @field_validator("bootstrap_servers", mode="before")
    @classmethod
    def split_servers(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v


class RelaySettings(BaseModel):
    """Batching relay behaviour."""

    flush_period_seconds: float = Field(
        default=1.0,
        gt=0,
        description="Interval between automatic flushes",
    )
    send_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Deadline for a single batch send",
    )
    message_key: str = Field(
        default="shard:GTID",
        description="Message key used by the static key strategy",
    )
    key_strategy: Literal["static", "table"] = Field(
        default="static",
        description="static: one key for all messages | table: schema.table",
    )
    failure_policy: Literal["drop", "requeue"] = Field(
        default="drop",
        description="What to do with a batch whose send failed",
    )
    drain_on_close: bool = Field(
        default=True,
        description="Flush the remaining buffer once when the relay closes",
    )


class RelayConfig(BaseSettings):
    """
    Root relay configuration.

    Values are loaded from a YAML or JSON file and can be overridden via
    BINLOG_RELAY_* environment variables (nested with "__").
    """

    mysql: MySQLConfig = Field(default_factory=MySQLConfig)
    broker: BrokerConfig = Field(default_factory=BrokerConfig)
    relay: RelaySettings = Field(default_factory=RelaySettings)
    handler: Literal["kafka", "log"] = Field(
        default="kafka",
        description="Event handler: kafka (batching relay) | log",
    )

    model_config = {
        "env_prefix": "BINLOG_RELAY_",
        "env_nested_delimiter": "__",
    }
