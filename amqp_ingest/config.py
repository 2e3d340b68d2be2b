"""Connector configuration loaded from environment variables.

Uses pydantic-settings so every field can be overridden via env vars,
which is the natural config mechanism in Kubernetes.  The models are
frozen: configuration is built once at startup and never mutated.
"""

from __future__ import annotations

from typing import Any

from pydantic import AliasChoices, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings

from .errors import ConfigError

# Keyword names kept for compatibility with older deployments.  The
# matching environment variables (AMQP_PASS, AMQP_FORMAT) are field aliases.
_LEGACY_KEYS = {"pass": "password", "format": "payload_format"}


class AmqpConfig(BaseSettings):
    """Broker connection, queue topology and per-message resolution settings."""

    model_config = {"env_prefix": "AMQP_", "frozen": True, "populate_by_name": True}

    tag: str = Field(default="hunter.amqp", description="Static tag for forwarded records")

    host: str | None = Field(default=None, description="Broker hostname")
    hosts: list[str] | None = Field(
        default=None,
        description="Broker hostnames, tried in order; entries may be host:port",
    )
    user: str = Field(default="guest", description="Broker login")
    password: SecretStr = Field(
        default=SecretStr("guest"),
        validation_alias=AliasChoices("AMQP_PASSWORD", "AMQP_PASS"),
        description="Broker password",
    )
    vhost: str = Field(default="/", description="Broker virtual host")
    port: int = Field(default=5672, description="Broker port")
    heartbeat: int = Field(default=60, description="Heartbeat interval in seconds")
    prefetch_count: int = Field(
        default=1,
        ge=1,
        description="Maximum number of unacknowledged deliveries on the channel",
    )

    ssl: bool = Field(default=False, description="Enable TLS with the default context")
    verify_ssl: bool = Field(default=False, description="Verify the broker certificate (ssl)")
    tls: bool = Field(default=False, description="Enable TLS with client certificate")
    tls_cert: str | None = Field(default=None, description="Client certificate path")
    tls_key: str | None = Field(default=None, description="Client private key path")
    tls_ca_certificates: list[str] | None = Field(
        default=None,
        description="Trusted CA bundle paths",
    )
    tls_verify_peer: bool = Field(default=True, description="Verify the broker certificate (tls)")

    queue: str | None = Field(default=None, description="Queue to consume from")
    durable: bool = Field(default=False)
    exclusive: bool = Field(default=False)
    auto_delete: bool = Field(default=False)
    passive: bool = Field(default=False, description="Only attach to an existing queue")

    bind_exchange: bool = Field(default=False, description="Bind the queue to an exchange")
    exchange: str = Field(default="", description="Exchange to bind the queue to")
    routing_key: str = Field(
        default="#",
        description="Binding pattern; # matches zero or more words, * exactly one",
    )

    payload_format: str | None = Field(
        default="json",
        validation_alias=AliasChoices("AMQP_PAYLOAD_FORMAT", "AMQP_FORMAT"),
        description="Parser name, or comma-separated names tried in order; empty disables parsing",
    )
    parse_options: dict[str, Any] = Field(
        default_factory=dict,
        description="Options passed to the parser factory (e.g. expression, keys)",
    )

    tag_key: bool = Field(default=False, description="Use the routing key as tag when non-empty")
    tag_header: str | None = Field(default=None, description="Header to read the tag from")
    time_header: str | None = Field(default=None, description="Header to read the event time from")

    @model_validator(mode="before")
    @classmethod
    def _apply_legacy_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for legacy, current in _LEGACY_KEYS.items():
            if legacy in data:
                value = data.pop(legacy)
                data.setdefault(current, value)
        return data

    @property
    def endpoints(self) -> list[tuple[str, int]]:
        """Broker endpoints as ``(host, port)`` pairs, in connection order."""
        names = self.hosts or ([self.host] if self.host else [])
        endpoints: list[tuple[str, int]] = []
        for name in names:
            host, sep, port = name.rpartition(":")
            if sep and port.isdigit() and ":" not in host:
                endpoints.append((host, int(port)))
            else:
                endpoints.append((name, self.port))
        return endpoints

    @property
    def tls_enabled(self) -> bool:
        return self.tls or self.ssl

    def check(self) -> None:
        """Validate startup invariants.

        Raises :class:`ConfigError` when the connector cannot start with
        this configuration.  Called before any connection attempt.
        """
        if not self.endpoints or not self.queue:
            raise ConfigError("'host(s)' and 'queue' must be all specified.")
        if self.tls and not (self.tls_cert and self.tls_key):
            raise ConfigError("'tls_key' and 'tls_cert' must be all specified if tls is enabled.")
        if self.bind_exchange and not self.exchange:
            raise ConfigError("'exchange' must be specified if bind_exchange is enabled.")


class KafkaConfig(BaseSettings):
    """Kafka settings for the downstream record topic."""

    model_config = {"env_prefix": "KAFKA_", "frozen": True}

    bootstrap_servers: str = Field(
        default="localhost:9092",
        description="Comma-separated Kafka bootstrap servers",
    )
    records_topic: str = Field(
        default="amqp-records",
        description="Topic receiving forwarded records",
    )
    producer_acks: str = Field(
        default="all",
        description="Producer acknowledgement level",
    )
    producer_compression: str = Field(
        default="gzip",
        description="Compression codec for produced messages",
    )


class RetryConfig(BaseSettings):
    """In-process forwarding attempts before a delivery is requeued.

    The default of one attempt means the router is called exactly once per
    delivery; redelivery through the broker is the retry mechanism.
    """

    model_config = {"env_prefix": "RETRY_", "frozen": True}

    max_attempts: int = Field(default=1, ge=1, description="Router calls per delivery")
    initial_wait_seconds: float = Field(
        default=0.5,
        description="Initial backoff wait in seconds",
    )
    max_wait_seconds: float = Field(
        default=5.0,
        description="Maximum backoff wait in seconds",
    )
    multiplier: float = Field(default=2.0, description="Exponential backoff multiplier")


class ConnectorConfig(BaseSettings):
    """Root configuration for a connector instance.

    Nested configs are populated from their own env-var prefixes.
    """

    model_config = {"env_prefix": "CONNECTOR_", "frozen": True}

    name: str = Field(default="amqp", description="Connector name used in logs and health")
    health_port: int = Field(default=8080, description="Port for K8s health probe endpoints")
    log_level: str = Field(default="INFO", description="Root log level")
    log_json: bool = Field(default=True, description="Emit JSON log lines")

    amqp: AmqpConfig = Field(default_factory=AmqpConfig)
    kafka: KafkaConfig = Field(default_factory=KafkaConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
